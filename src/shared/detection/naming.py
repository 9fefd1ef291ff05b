"""
Media format and naming conventions for candidates.

- format: whitelisted video extension, or "unknown"
- naming falls back to mp4 when the format is unknown
- suggested file name: <sanitized title>.<ext>, at most 100 characters
"""

from __future__ import annotations

import re
from typing import Optional


SUPPORTED_VIDEO_EXTENSIONS = ("mp4", "webm", "ogg", "avi", "mov", "wmv", "flv", "mkv", "m4v", "3gp")
UNKNOWN_FORMAT = "unknown"
DEFAULT_NAMING_EXTENSION = "mp4"

MIME_EXTENSIONS: dict[str, str] = {
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/ogg": "ogg",
    "video/avi": "avi",
    "video/x-msvideo": "avi",
    "video/quicktime": "mov",
    "video/x-ms-wmv": "wmv",
    "video/x-flv": "flv",
    "video/x-matroska": "mkv",
    "video/x-m4v": "m4v",
    "video/3gpp": "3gp",
    # Streaming containers: recognized, but never a whitelisted format.
    "video/mp2t": "ts",
    "application/x-mpegurl": "m3u8",
    "application/vnd.apple.mpegurl": "m3u8",
    "application/dash+xml": "mpd",
}

MAX_SUGGESTED_NAME_LENGTH = 100
_MAX_STEM_LENGTH = 90

_UNSAFE_CHARS = re.compile(r"[<>:\"/\\|?*\x00-\x1f]")
_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\-.]", re.UNICODE)
_REPEATED_UNDERSCORE = re.compile(r"_{2,}")


def is_supported_extension(ext: Optional[str]) -> bool:
    return bool(ext) and ext.lower().lstrip(".") in SUPPORTED_VIDEO_EXTENSIONS


def extension_for_mime(mime_type: Optional[str]) -> Optional[str]:
    """
    Map a MIME type (parameters such as ``codecs=...`` ignored) to an extension.

    Returns None for unknown types.
    """
    if not mime_type:
        return None
    base = mime_type.split(";", 1)[0].strip().lower()
    return MIME_EXTENSIONS.get(base)


def resolve_format(mime_type: Optional[str], url_extension: Optional[str]) -> str:
    """Explicit media type first, then the URL extension; both must be whitelisted."""
    from_mime = extension_for_mime(mime_type)
    if is_supported_extension(from_mime):
        return from_mime  # type: ignore[return-value]
    if is_supported_extension(url_extension):
        return url_extension.lower().lstrip(".")  # type: ignore[union-attr]
    return UNKNOWN_FORMAT


def naming_extension(fmt: Optional[str]) -> str:
    if fmt and fmt != UNKNOWN_FORMAT and is_supported_extension(fmt):
        return fmt
    return DEFAULT_NAMING_EXTENSION


def sanitize_file_stem(raw: str) -> str:
    stem = _UNSAFE_CHARS.sub("_", raw.strip())
    stem = _WHITESPACE.sub("_", stem)
    stem = _NON_WORD.sub("_", stem)
    stem = _REPEATED_UNDERSCORE.sub("_", stem)
    return stem.strip("._")


def generate_safe_file_name(title: str, extension: str, *, fallback: str = "video") -> str:
    """
    Build a filesystem-safe ``<stem>.<ext>`` name from a human title.

    Args:
        title: Candidate title (may contain any characters).
        extension: File extension (with or without leading dot).
        fallback: Stem used when the title sanitizes to nothing.

    Returns:
        A file name of at most MAX_SUGGESTED_NAME_LENGTH characters.
    """
    ext = extension.lstrip(".") or DEFAULT_NAMING_EXTENSION
    stem = sanitize_file_stem(title) or sanitize_file_stem(fallback) or "video"

    name = f"{stem}.{ext}"
    if len(name) > MAX_SUGGESTED_NAME_LENGTH:
        name = f"{stem[:_MAX_STEM_LENGTH].rstrip('._')}.{ext}"
    return name

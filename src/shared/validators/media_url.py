"""
Validity gate for discovered media URLs.

Rules:
- http/https only, plus data:/blob: for inline media (direct media elements)
- http/https URLs longer than 2048 characters are rejected
- streaming manifest / playlist / segment / chunk / fragment paths are
  rejected unless the path also ends in a whitelisted video extension
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from src.shared.detection.naming import SUPPORTED_VIDEO_EXTENSIONS


MAX_URL_LENGTH = 2048

NETWORK_SCHEMES = frozenset({"http", "https"})
INLINE_SCHEMES = frozenset({"data", "blob"})

STREAMING_PATH_MARKERS = (
    "/segment",
    "/chunk",
    "/fragment",
    "/manifest",
    "/playlist",
    "/m3u8",
    "/mpd",
    ".m3u8",
    ".mpd",
)


@dataclass(frozen=True)
class ValidationResult:
    """Media URL validation outcome."""

    valid: bool
    url: Optional[str] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


def has_supported_extension(path: str) -> bool:
    lowered = path.lower()
    return any(lowered.endswith(f".{ext}") for ext in SUPPORTED_VIDEO_EXTENSIONS)


def is_streaming_path(path: str) -> bool:
    lowered = path.lower()
    return any(marker in lowered for marker in STREAMING_PATH_MARKERS)


def validate_media_url(url: Optional[str], *, allow_inline: bool = False) -> ValidationResult:
    """
    Check whether a URL may become a media candidate.

    Args:
        url: Effective URL of the element.
        allow_inline: Accept data:/blob: URLs (direct media elements only).

    Returns:
        ValidationResult with the stripped URL on success, or an error reason.
    """
    if not url or not url.strip():
        return ValidationResult(valid=False, error="empty URL")

    url = url.strip()

    try:
        parsed = urlsplit(url)
    except ValueError:
        return ValidationResult(valid=False, error="malformed URL")

    scheme = parsed.scheme.lower()

    if scheme in INLINE_SCHEMES:
        if allow_inline:
            return ValidationResult(valid=True, url=url)
        return ValidationResult(valid=False, error=f"{scheme}: URLs are only allowed for direct media")

    if scheme not in NETWORK_SCHEMES:
        if not scheme:
            return ValidationResult(valid=False, error="URL has no scheme")
        return ValidationResult(valid=False, error=f"unsupported scheme {scheme}://")

    if len(url) > MAX_URL_LENGTH:
        return ValidationResult(valid=False, error=f"URL too long ({len(url)} > {MAX_URL_LENGTH})")

    if not parsed.netloc:
        return ValidationResult(valid=False, error="URL has no host")

    if is_streaming_path(parsed.path) and not has_supported_extension(parsed.path):
        return ValidationResult(valid=False, error="streaming manifest or segment URL")

    return ValidationResult(valid=True, url=url)

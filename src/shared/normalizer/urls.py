"""
URL canonicalization used as the comparison key for media candidates.

Adaptive-streaming delivery mints a new URL per segment / time slice for what
is logically one asset, and CDNs add tracking or signing parameters. The
normalized form keeps only what identifies the asset.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .platforms import is_known_embed_host
from .tokens import is_hash_like_token, is_segment_or_timestamp


IDENTITY_QUERY_KEYS = frozenset({"v", "id", "video_id", "media_id"})
HASH_QUERY_KEYS = frozenset({"hash", "md5", "sha1", "sha256", "id", "token"})

HIERARCHICAL_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})
_DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21, "ws": 80, "wss": 443}


def _split(raw: str):
    """urlsplit that returns None for anything without scheme + host."""
    try:
        parts = urlsplit(raw.strip())
    except ValueError:
        return None
    if parts.scheme.lower() not in HIERARCHICAL_SCHEMES or not parts.netloc:
        return None
    return parts


def _canonical_netloc(parts) -> Optional[str]:
    try:
        host = parts.hostname or ""
        port = parts.port
    except ValueError:
        return None
    if not host:
        return None

    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme.lower()):
        netloc = f"{host}:{port}"

    userinfo, at, _ = parts.netloc.rpartition("@")
    if at:
        netloc = f"{userinfo}@{netloc}"
    return netloc


def _keep_identity_query(query: str) -> str:
    kept: dict[str, tuple[str, str]] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        folded = key.lower()
        if folded in IDENTITY_QUERY_KEYS:
            # first position wins, last value wins
            kept[folded] = (kept[folded][0] if folded in kept else key, value)
    return urlencode(list(kept.values()))


def strip_trailing_segment(path: str) -> str:
    """Drop the last path segment when it looks like a segment / timestamp."""
    if not path:
        return "/"
    head, _, last = path.rpartition("/")
    if last and is_segment_or_timestamp(last):
        return head + "/"
    return path


def normalize_url(raw: str) -> str:
    """
    Canonicalize a media URL into a comparison key.

    - fail-open: anything that does not parse as scheme://host/... is returned
      unchanged, this function never raises
    - scheme and host are lowercased, default ports and the fragment dropped
    - only the identity query keys (v, id, video_id, media_id) survive
    - a trailing segment/timestamp path component is stripped, except on known
      embed platforms where the path carries the video identity

    Idempotent: ``normalize_url(normalize_url(u)) == normalize_url(u)``.
    """
    if not isinstance(raw, str):
        return raw

    parts = _split(raw)
    if parts is None:
        return raw

    netloc = _canonical_netloc(parts)
    if netloc is None:
        return raw

    path = parts.path or "/"
    if not is_known_embed_host(raw):
        path = strip_trailing_segment(path)

    query = _keep_identity_query(parts.query)
    return urlunsplit((parts.scheme.lower(), netloc, path, query, ""))


def is_hierarchical_url(raw: str) -> bool:
    return _split(raw) is not None


def extract_file_name(url: str) -> Optional[str]:
    """Last non-empty path segment of a hierarchical URL (query and fragment excluded)."""
    parts = _split(url)
    if parts is None:
        return None
    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        return None
    return segments[-1]


def strip_extension(file_name: str) -> str:
    stem, dot, _ = file_name.rpartition(".")
    if dot and stem:
        return stem
    return file_name


def extract_extension(url: str) -> Optional[str]:
    """Lowercase extension of the URL's file name, without the dot."""
    name = extract_file_name(url)
    if not name:
        return None
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem or not ext:
        return None
    return ext.lower()


def extract_hash_tokens(url: str) -> frozenset[str]:
    """
    Collect hash-like tokens from path segments and hash-bearing query keys.

    Tokens are lowercased.
    """
    parts = _split(url)
    if parts is None:
        return frozenset()

    tokens: set[str] = set()
    for segment in parts.path.split("/"):
        if not segment:
            continue
        stem = strip_extension(segment)
        if is_hash_like_token(stem):
            tokens.add(stem.lower())

    for key, value in parse_qsl(parts.query, keep_blank_values=False):
        if key.lower() in HASH_QUERY_KEYS and is_hash_like_token(value):
            tokens.add(value.lower())

    return frozenset(tokens)

"""
Token classification for URL path segments and file names.

Two questions are answered here:
- Does a token look like an opaque hash / UUID minted by a CDN?
- Does a path segment look like a streaming segment or time slice?
"""

from __future__ import annotations

import re
from collections import Counter


UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
HEX_PATTERN = re.compile(r"^[0-9a-f]+$", re.IGNORECASE)
ALNUM_PATTERN = re.compile(r"^[A-Za-z0-9]+$")

# MD5 / SHA1 / SHA256 hex digests
HEX_DIGEST_LENGTHS = frozenset({32, 40, 64})

MIN_OPAQUE_TOKEN_LENGTH = 8
MIN_CHAR_DIVERSITY = 0.3
MAX_SINGLE_CHAR_SHARE = 0.5

_SEGMENT_STEM_PATTERNS = (
    re.compile(r"^\d+$"),
    re.compile(r"^(?:segment|chunk|fragment|part)[_-]?\d+$", re.IGNORECASE),
    re.compile(r"^\d+_\d+$"),
)
_BARE_TOKEN_SEGMENT = re.compile(r"^[A-Za-z0-9]{8,}$")


def is_hash_like_token(token: str) -> bool:
    """
    Check whether a token resembles an opaque content hash or UUID.

    Accepted shapes:
    - UUID (8-4-4-4-12 hex groups)
    - all-hex string of length 32, 40 or 64
    - alphanumeric token of length >= 8 whose distinct-character ratio is at
      least 0.3 and where no single character exceeds 50% of the token

    Examples:
        >>> is_hash_like_token("60acff2e-c00a-4acc-bc6d-d0c303a2a85a")
        True
        >>> is_hash_like_token("aaaaaaaa")
        False
        >>> is_hash_like_token("video")
        False
    """
    if not token:
        return False

    if UUID_PATTERN.match(token):
        return True

    if len(token) in HEX_DIGEST_LENGTHS and HEX_PATTERN.match(token):
        return True

    if len(token) < MIN_OPAQUE_TOKEN_LENGTH or not ALNUM_PATTERN.match(token):
        return False

    folded = token.lower()
    counts = Counter(folded)
    diversity = len(counts) / len(folded)
    top_share = max(counts.values()) / len(folded)
    return diversity >= MIN_CHAR_DIVERSITY and top_share <= MAX_SINGLE_CHAR_SHARE


def is_segment_or_timestamp(segment: str) -> bool:
    """
    Check whether a path segment is a streaming segment / time slice marker.

    Matched against the extension-stripped stem:
    - all-numeric (``42``, ``1700000000``)
    - ``segment_<n>``, ``chunk_<n>``, ``fragment_<n>``, ``part_<n>``
    - composite ``<n>_<n>``

    Matched only when the segment carries no extension:
    - a bare hex or alphanumeric token of length >= 8
    """
    if not segment:
        return False

    stem, dot, ext = segment.rpartition(".")
    if not dot or not stem:
        stem, ext = segment, ""

    for pattern in _SEGMENT_STEM_PATTERNS:
        if pattern.match(stem):
            return True

    if not ext and _BARE_TOKEN_SEGMENT.match(segment):
        return True

    return False

"""
Pure canonicalization helpers for media URLs, titles and tokens.

Provides:
- URL normalization and file-name / hash-token extraction (urls.py)
- Title normalization (titles.py)
- Hash-like and segment token classification (tokens.py)
- Embed platform recognition (platforms.py)
"""

from .platforms import (
    Platform,
    detect_platform,
    extract_platform_video_id,
    is_known_embed_host,
    platform_thumbnail_url,
)
from .titles import normalize_title
from .tokens import is_hash_like_token, is_segment_or_timestamp
from .urls import (
    extract_extension,
    extract_file_name,
    extract_hash_tokens,
    is_hierarchical_url,
    normalize_url,
    strip_extension,
)

__all__ = [
    "Platform",
    "detect_platform",
    "extract_extension",
    "extract_file_name",
    "extract_hash_tokens",
    "extract_platform_video_id",
    "is_hash_like_token",
    "is_hierarchical_url",
    "is_known_embed_host",
    "is_segment_or_timestamp",
    "normalize_title",
    "normalize_url",
    "platform_thumbnail_url",
    "strip_extension",
]

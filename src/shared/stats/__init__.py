from __future__ import annotations

from .metrics import compute_cache_hit_ratio, compute_duplicate_ratio, format_file_size

__all__ = [
    "compute_cache_hit_ratio",
    "compute_duplicate_ratio",
    "format_file_size",
]

from __future__ import annotations

from typing import Optional


_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def compute_duplicate_ratio(examined: int, duplicates: int) -> float:
    """
    duplicate_ratio = duplicates / examined
    (examined > 0)
    """
    if examined <= 0:
        return 0.0
    return max(0.0, min(1.0, float(duplicates) / float(examined)))


def compute_cache_hit_ratio(hits: int, misses: int) -> float:
    total = int(hits) + int(misses)
    if total <= 0:
        return 0.0
    return float(hits) / float(total)


def format_file_size(size_bytes: Optional[int]) -> str:
    """
    Human-readable size using 1024-based units.

    Contract:
    - None / negative -> "unknown"
    - 0 -> "0 B"
    - at most two decimals, trailing zeros dropped (1536 -> "1.5 KB")
    """
    if size_bytes is None or size_bytes < 0:
        return "unknown"
    if size_bytes == 0:
        return "0 B"

    value = float(size_bytes)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1

    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"

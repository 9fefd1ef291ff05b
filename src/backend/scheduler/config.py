from __future__ import annotations

from dataclasses import dataclass
from typing import Any


DEFAULT_COOLDOWN_S = 5.0
DEFAULT_DEBOUNCE_S = 1.0
DEFAULT_SIZE_CACHE_CAPACITY = 1000
DEFAULT_SIZE_CACHE_EVICT_FRACTION = 0.2
DEFAULT_MAX_PARALLEL_PROBES = 6
DEFAULT_SIZE_TOLERANCE_BYTES = 1024
DEFAULT_FILENAME_SIMILARITY = 0.8
DEFAULT_TITLE_SIMILARITY = 0.8
DEFAULT_URL_SIMILARITY = 0.9


def _coerce_float(value: Any, default: float, *, lo: float, hi: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    if value != value:  # NaN
        return default
    return max(lo, min(hi, value))


def _coerce_int(value: Any, default: int, *, lo: int, hi: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, value))


@dataclass
class DetectionConfig:
    """
    Tunables for scanning, duplicate detection and size enrichment.

    Attributes:
        cooldown_s: Minimum time between two non-forced scans.
        debounce_s: Quiet window before a snapshot is emitted.
        size_cache_capacity: Max entries in the file-size cache.
        size_cache_evict_fraction: Share of oldest entries dropped on overflow.
        max_parallel_probes: Concurrent HEAD probes per batch.
        size_tolerance_bytes: File-size signal tolerance.
        filename_similarity: In-pass file-name multiset threshold (>=).
        title_similarity: Cross-pass title edit-similarity threshold (>).
        url_similarity: Cross-pass weighted URL similarity threshold (>).
        enrich_file_sizes: If False, no probes are issued.
    """
    cooldown_s: float = DEFAULT_COOLDOWN_S
    debounce_s: float = DEFAULT_DEBOUNCE_S
    size_cache_capacity: int = DEFAULT_SIZE_CACHE_CAPACITY
    size_cache_evict_fraction: float = DEFAULT_SIZE_CACHE_EVICT_FRACTION
    max_parallel_probes: int = DEFAULT_MAX_PARALLEL_PROBES
    size_tolerance_bytes: int = DEFAULT_SIZE_TOLERANCE_BYTES
    filename_similarity: float = DEFAULT_FILENAME_SIMILARITY
    title_similarity: float = DEFAULT_TITLE_SIMILARITY
    url_similarity: float = DEFAULT_URL_SIMILARITY
    enrich_file_sizes: bool = True

    def in_pass_thresholds(self) -> dict[str, Any]:
        return {
            "size_tolerance_bytes": self.size_tolerance_bytes,
            "filename_similarity": self.filename_similarity,
        }

    def cross_pass_thresholds(self) -> dict[str, Any]:
        return {
            "title_similarity": self.title_similarity,
            "url_similarity_threshold": self.url_similarity,
        }

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "cooldown_s": self.cooldown_s,
            "debounce_s": self.debounce_s,
            "size_cache_capacity": self.size_cache_capacity,
            "size_cache_evict_fraction": self.size_cache_evict_fraction,
            "max_parallel_probes": self.max_parallel_probes,
            "size_tolerance_bytes": self.size_tolerance_bytes,
            "filename_similarity": self.filename_similarity,
            "title_similarity": self.title_similarity,
            "url_similarity": self.url_similarity,
            "enrich_file_sizes": self.enrich_file_sizes,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "DetectionConfig":
        return cls(
            cooldown_s=_coerce_float(data.get("cooldown_s"), DEFAULT_COOLDOWN_S, lo=0.0, hi=3600.0),
            debounce_s=_coerce_float(data.get("debounce_s"), DEFAULT_DEBOUNCE_S, lo=0.0, hi=60.0),
            size_cache_capacity=_coerce_int(
                data.get("size_cache_capacity"), DEFAULT_SIZE_CACHE_CAPACITY, lo=1, hi=1_000_000
            ),
            size_cache_evict_fraction=_coerce_float(
                data.get("size_cache_evict_fraction"), DEFAULT_SIZE_CACHE_EVICT_FRACTION, lo=0.01, hi=1.0
            ),
            max_parallel_probes=_coerce_int(
                data.get("max_parallel_probes"), DEFAULT_MAX_PARALLEL_PROBES, lo=1, hi=64
            ),
            size_tolerance_bytes=_coerce_int(
                data.get("size_tolerance_bytes"), DEFAULT_SIZE_TOLERANCE_BYTES, lo=0, hi=1 << 30
            ),
            filename_similarity=_coerce_float(
                data.get("filename_similarity"), DEFAULT_FILENAME_SIMILARITY, lo=0.0, hi=1.0
            ),
            title_similarity=_coerce_float(
                data.get("title_similarity"), DEFAULT_TITLE_SIMILARITY, lo=0.0, hi=1.0
            ),
            url_similarity=_coerce_float(data.get("url_similarity"), DEFAULT_URL_SIMILARITY, lo=0.0, hi=1.0),
            enrich_file_sizes=bool(data.get("enrich_file_sizes", True)),
        )

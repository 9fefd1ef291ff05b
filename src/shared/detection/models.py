from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterator, Optional

from src.shared.normalizer import extract_file_name, normalize_title, normalize_url
from src.shared.stats.metrics import format_file_size

from .naming import UNKNOWN_FORMAT, generate_safe_file_name, naming_extension


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_utc_z(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class MediaKind(str, Enum):
    DIRECT_MEDIA = "direct-media"          # <video>
    CONTAINER_SOURCE = "container-source"  # <source> inside a media element
    EMBEDDED_FRAME = "embedded-frame"      # <iframe>/<embed> on a known player host


@dataclass(frozen=True)
class CandidateRecord:
    """
    One discovered media resource.

    normalized_url, normalized_title and file_name are derived from
    source_url / title on every construction (including dataclasses.replace)
    and cannot be passed in.
    """

    id: str
    source_url: str
    title: str
    media_kind: MediaKind
    first_seen_at: datetime
    generation: int = 0
    format: str = UNKNOWN_FORMAT
    quality_label: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration_seconds: Optional[float] = None
    thumbnail_url: Optional[str] = None
    file_size_bytes: Optional[int] = None

    normalized_url: str = field(init=False)
    normalized_title: str = field(init=False)
    file_name: Optional[str] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "normalized_url", normalize_url(self.source_url))
        object.__setattr__(self, "normalized_title", normalize_title(self.title))
        file_name = None
        if self.media_kind != MediaKind.EMBEDDED_FRAME:
            file_name = extract_file_name(self.source_url)
        object.__setattr__(self, "file_name", file_name)

    @property
    def naming_extension(self) -> str:
        return naming_extension(self.format)

    @property
    def suggested_file_name(self) -> str:
        fallback = self.file_name.rsplit(".", 1)[0] if self.file_name else "video"
        return generate_safe_file_name(self.title, self.naming_extension, fallback=fallback)

    def with_file_size(self, size_bytes: Optional[int]) -> "CandidateRecord":
        """Return a copy with the size set; an already known size never changes."""
        if self.file_size_bytes is not None or size_bytes is None or size_bytes < 0:
            return self
        return replace(self, file_size_bytes=int(size_bytes))

    def with_thumbnail(self, thumbnail_url: Optional[str]) -> "CandidateRecord":
        if self.thumbnail_url or not thumbnail_url:
            return self
        return replace(self, thumbnail_url=thumbnail_url)

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_url": self.source_url,
            "normalized_url": self.normalized_url,
            "title": self.title,
            "media_kind": self.media_kind.value,
            "format": self.format,
            "quality_label": self.quality_label,
            "width": self.width,
            "height": self.height,
            "duration_seconds": self.duration_seconds,
            "thumbnail_url": self.thumbnail_url,
            "file_size_bytes": self.file_size_bytes,
            "file_size": format_file_size(self.file_size_bytes),
            "file_name": self.file_name,
            "suggested_file_name": self.suggested_file_name,
            "first_seen_at": format_utc_z(self.first_seen_at),
            "generation": self.generation,
        }


@dataclass(frozen=True)
class DetectionSnapshot:
    """Ordered, immutable view of the accepted records at one point in time."""

    records: tuple[CandidateRecord, ...]
    generation: int
    sequence: int
    emitted_at: datetime = field(default_factory=utc_now)

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[CandidateRecord]:
        return iter(self.records)

    @property
    def urls(self) -> list[str]:
        return [r.source_url for r in self.records]

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "sequence": self.sequence,
            "emitted_at": format_utc_z(self.emitted_at),
            "records": [r.to_public_dict() for r in self.records],
        }


@dataclass
class ScanState:
    """
    Per page-context scan bookkeeping.

    Only the scan gate writes to it. last_scan_at is a monotonic clock
    reading in seconds.
    """

    last_scan_at: Optional[float] = None
    last_content_fingerprint: Optional[str] = None
    generation: int = 0

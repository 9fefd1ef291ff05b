"""
Candidate builder: one element descriptor -> one CandidateRecord (or a reject).

Steps, identical for every element kind:
1. effective URL (direct media prefers the currently playing URL)
2. validity gate (http/https; data/blob for direct media only)
3. title / format / quality / thumbnail resolution
4. in-pass duplicate check against the records accepted so far
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from src.backend.scheduler.config import DetectionConfig
from src.shared.detection.duplicates import DuplicateMatch, find_duplicate
from src.shared.detection.models import CandidateRecord, MediaKind, utc_now
from src.shared.detection.naming import resolve_format
from src.shared.normalizer import extract_extension
from src.shared.validators.media_url import validate_media_url

from .descriptors import ElementDescriptor, PageContext


logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown Video"

# (min height, label), checked top-down
QUALITY_LADDER = (
    (2160, "4K"),
    (1440, "2K"),
    (1080, "1080p"),
    (720, "720p"),
    (480, "480p"),
    (360, "360p"),
)

_ID_PREFIXES = {
    MediaKind.DIRECT_MEDIA: "video",
    MediaKind.CONTAINER_SOURCE: "source",
    MediaKind.EMBEDDED_FRAME: "embed",
}


class BuildOutcome(str, Enum):
    ACCEPTED = "accepted"
    INVALID = "invalid"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class BuildResult:
    outcome: BuildOutcome
    record: Optional[CandidateRecord] = None
    duplicate_of: Optional[DuplicateMatch] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.outcome == BuildOutcome.ACCEPTED


def quality_label(height: Optional[int]) -> Optional[str]:
    if not height or height <= 0:
        return None
    for min_height, label in QUALITY_LADDER:
        if height >= min_height:
            return label
    return f"{height}p"


def resolve_title(descriptor: ElementDescriptor, page: Optional[PageContext] = None) -> str:
    """Element attributes, enclosing element, nearby heading, document title, then a placeholder."""
    candidates = (
        descriptor.title,
        descriptor.alt,
        descriptor.aria_label,
        descriptor.parent_title,
        descriptor.nearby_heading,
        page.document_title if page is not None else None,
    )
    for value in candidates:
        if value and value.strip():
            return " ".join(value.split())
    return UNKNOWN_TITLE


def resolve_thumbnail(descriptor: ElementDescriptor, page: Optional[PageContext] = None) -> Optional[str]:
    """
    Declared poster, then nearby image, then page preview metadata.

    Embedded frames get their platform thumbnail during enrichment instead.
    """
    if descriptor.kind == MediaKind.EMBEDDED_FRAME:
        return None
    for value in (descriptor.poster, descriptor.nearby_image, page.preview_image if page else None):
        if value and value.strip():
            return value.strip()
    return None


def _positive_int(value: Optional[int]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _finite_duration(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value) or value <= 0:
        return None
    return value


class CandidateBuilder:
    """
    Builds records for one detection pass.

    Usage:
        builder = CandidateBuilder(config=config, generation=3, pass_seq=12)
        accepted = []
        for index, element in enumerate(view.elements):
            result = builder.build(element, index=index, page=view.page, accepted=accepted)
            if result:
                accepted.append(result.record)
    """

    def __init__(
        self,
        *,
        config: Optional[DetectionConfig] = None,
        generation: int = 0,
        pass_seq: int = 0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config or DetectionConfig()
        self._generation = generation
        self._pass_seq = pass_seq
        self._clock = clock

    def record_id(self, kind: MediaKind, index: int) -> str:
        return f"{_ID_PREFIXES[kind]}_{self._pass_seq}_{index}"

    def build(
        self,
        descriptor: ElementDescriptor,
        *,
        index: int,
        page: Optional[PageContext] = None,
        accepted: Sequence[CandidateRecord] = (),
    ) -> BuildResult:
        kind = descriptor.kind

        validation = validate_media_url(
            descriptor.effective_url,
            allow_inline=kind == MediaKind.DIRECT_MEDIA,
        )
        if not validation:
            logger.debug("Rejected element %d (%s): %s", index, kind.value, validation.error)
            return BuildResult(outcome=BuildOutcome.INVALID, error=validation.error)

        url = validation.url or ""
        height = _positive_int(descriptor.height)
        record = CandidateRecord(
            id=self.record_id(kind, index),
            source_url=url,
            title=resolve_title(descriptor, page),
            media_kind=kind,
            first_seen_at=self._clock(),
            generation=self._generation,
            format=resolve_format(descriptor.media_type, extract_extension(url)),
            quality_label=quality_label(height),
            width=_positive_int(descriptor.width),
            height=height,
            duration_seconds=_finite_duration(descriptor.duration_seconds),
            thumbnail_url=resolve_thumbnail(descriptor, page),
        )

        match = find_duplicate(record, accepted, **self._config.in_pass_thresholds())
        if match is not None:
            logger.debug(
                "Element %d duplicates %s (%s)", index, match.existing.id, match.signal.value
            )
            return BuildResult(outcome=BuildOutcome.DUPLICATE, record=record, duplicate_of=match)

        return BuildResult(outcome=BuildOutcome.ACCEPTED, record=record)


def build_candidate(
    descriptor: ElementDescriptor,
    *,
    index: int = 0,
    page: Optional[PageContext] = None,
    accepted: Sequence[CandidateRecord] = (),
    config: Optional[DetectionConfig] = None,
    generation: int = 0,
    pass_seq: int = 0,
) -> BuildResult:
    """Single-element convenience wrapper around CandidateBuilder."""
    builder = CandidateBuilder(config=config, generation=generation, pass_seq=pass_seq)
    return builder.build(descriptor, index=index, page=page, accepted=accepted)

"""
Per page-context store of accepted candidate records.

- records are kept in acceptance order, keyed by id
- a pass is merged only if it was produced under the current generation
- records from a new pass that duplicate an already stored record
  (cross-pass detector) are dropped; the stored record wins
- enrichment results are applied only if their generation still matches
- clear() is the only deletion path (used on reset)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

from src.shared.detection.duplicates import DuplicateMatch
from src.shared.detection.history import filter_cross_pass
from src.shared.detection.models import CandidateRecord, ScanState


logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    added: list[CandidateRecord] = field(default_factory=list)
    duplicates: list[DuplicateMatch] = field(default_factory=list)
    stale: bool = False


class CandidateStore:
    def __init__(
        self,
        state: Optional[ScanState] = None,
        *,
        cross_pass_thresholds: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.state = state if state is not None else ScanState()
        self.cross_pass_thresholds: dict[str, Any] = dict(cross_pass_thresholds or {})
        self._records: dict[str, CandidateRecord] = {}
        self._pass_seq = 0
        self.discarded_results = 0

    @property
    def generation(self) -> int:
        return self.state.generation

    @property
    def records(self) -> tuple[CandidateRecord, ...]:
        return tuple(self._records.values())

    @property
    def pass_seq(self) -> int:
        return self._pass_seq

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> Optional[CandidateRecord]:
        return self._records.get(record_id)

    def next_pass_seq(self) -> int:
        self._pass_seq += 1
        return self._pass_seq

    def merge(self, records: Sequence[CandidateRecord], *, generation: int) -> MergeResult:
        """
        Merge one pass's accepted records.

        Returns:
            MergeResult with the records actually added; `stale` is True when
            the pass belongs to an older generation and nothing was merged.
        """
        if generation != self.generation:
            self.discarded_results += 1
            logger.debug(
                "Discarding pass for generation %d (current %d)", generation, self.generation
            )
            return MergeResult(stale=True)

        fresh, duplicates = filter_cross_pass(records, self.records, **self.cross_pass_thresholds)
        for record in fresh:
            self._records[record.id] = record
        return MergeResult(added=fresh, duplicates=duplicates)

    def apply_enrichment(
        self,
        generation: int,
        *,
        sizes_by_url: Optional[Mapping[str, Optional[int]]] = None,
        thumbnails_by_id: Optional[Mapping[str, str]] = None,
    ) -> int:
        """
        Apply async enrichment results tagged with `generation`.

        Sizes only fill absent values; a known size never changes.

        Returns:
            Number of records that changed (0 for a stale generation).
        """
        if generation != self.generation:
            self.discarded_results += 1
            logger.debug(
                "Discarding enrichment for generation %d (current %d)", generation, self.generation
            )
            return 0

        sizes_by_url = sizes_by_url or {}
        thumbnails_by_id = thumbnails_by_id or {}

        changed = 0
        for record_id, record in list(self._records.items()):
            updated = record.with_file_size(sizes_by_url.get(record.source_url))
            updated = updated.with_thumbnail(thumbnails_by_id.get(record_id))
            if updated is not record:
                self._records[record_id] = updated
                changed += 1
        return changed

    def clear(self) -> int:
        removed = len(self._records)
        self._records.clear()
        return removed

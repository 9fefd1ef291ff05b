"""
Detection engine for one page context.

Signal flow:
    mutation / refresh -> ScanGate -> DOM query -> CandidateBuilder per element
    -> CandidateStore.merge (cross-pass) -> debounced snapshot emission
    -> async enrichment (platform thumbnails, file sizes) -> maybe one more emission

Everything except the size probes runs inline on the event loop thread. Async
results are tagged with the generation they were started under; the store
drops them after a reset.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence
from urllib.parse import urlsplit

from src.backend.extractor.builder import BuildOutcome, CandidateBuilder
from src.backend.extractor.descriptors import DocumentView, DomQuery
from src.backend.net.probe import HeadRequestProber
from src.backend.net.size_cache import FileSizeCache
from src.backend.scheduler.config import DetectionConfig
from src.backend.scheduler.gate import ScanGate
from src.backend.scheduler.timers import Clock, Debouncer, LoopTaskScheduler, TaskScheduler
from src.backend.store.candidate_store import CandidateStore
from src.shared.detection.errors import DetectionError
from src.shared.detection.models import (
    CandidateRecord,
    DetectionSnapshot,
    MediaKind,
    ScanState,
    utc_now,
)
from src.shared.normalizer import platform_thumbnail_url
from src.shared.scan_phase import ScanPhase
from src.shared.stats.metrics import compute_duplicate_ratio


logger = logging.getLogger(__name__)

SnapshotConsumer = Callable[[DetectionSnapshot], None]


@dataclass
class PassStats:
    """Counters for one detection pass."""
    pass_seq: int
    generation: int
    forced: bool = False
    elements: int = 0
    accepted: int = 0
    invalid: int = 0
    duplicates: int = 0
    cross_pass_duplicates: int = 0
    failed: int = 0
    added: int = 0
    duration_s: float = 0.0

    @property
    def duplicate_ratio(self) -> float:
        return compute_duplicate_ratio(self.elements, self.duplicates + self.cross_pass_duplicates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass_seq": self.pass_seq,
            "generation": self.generation,
            "forced": self.forced,
            "elements": self.elements,
            "accepted": self.accepted,
            "invalid": self.invalid,
            "duplicates": self.duplicates,
            "cross_pass_duplicates": self.cross_pass_duplicates,
            "failed": self.failed,
            "added": self.added,
            "duplicate_ratio": self.duplicate_ratio,
            "duration_s": self.duration_s,
        }


def _is_network_url(url: str) -> bool:
    try:
        return urlsplit(url).scheme.lower() in ("http", "https")
    except ValueError:
        return False


class DetectionEngine:
    """
    Owns the candidate store, scan gate, size cache and emission debouncer
    of one page context.

    Usage:
        engine = DetectionEngine(HtmlDomQuery(html, url=page_url), consumer=print)
        engine.on_mutation()      # gated scan
        engine.on_refresh()       # forced scan
        engine.on_reset()         # navigation: clear + bump generation
        await engine.wait_idle()  # let enrichment finish
    """

    def __init__(
        self,
        dom_query: Optional[DomQuery] = None,
        *,
        consumer: Optional[SnapshotConsumer] = None,
        config: Optional[DetectionConfig] = None,
        size_cache: Optional[FileSizeCache] = None,
        prober: Optional[HeadRequestProber] = None,
        task_scheduler: Optional[TaskScheduler] = None,
        clock: Optional[Clock] = None,
        wall_clock: Callable[[], datetime] = utc_now,
        page_id: str = "",
    ) -> None:
        self.page_id = page_id
        self.dom_query = dom_query
        self.consumer = consumer
        self.config = config or DetectionConfig()
        self._wall_clock = wall_clock

        self.state = ScanState()
        self.store = CandidateStore(
            self.state, cross_pass_thresholds=self.config.cross_pass_thresholds()
        )
        self.gate = ScanGate(self.state, cooldown_s=self.config.cooldown_s, clock=clock)
        self.debouncer = Debouncer(
            self._emit,
            delay_s=self.config.debounce_s,
            scheduler=task_scheduler or LoopTaskScheduler(),
        )

        if size_cache is None:
            probe = (prober or HeadRequestProber()).probe
            size_cache = FileSizeCache(
                probe,
                capacity=self.config.size_cache_capacity,
                evict_fraction=self.config.size_cache_evict_fraction,
                max_parallel=self.config.max_parallel_probes,
            )
        self.size_cache = size_cache

        self._tasks: set[asyncio.Task[None]] = set()
        self._snapshot_seq = 0
        self._latest: Optional[DetectionSnapshot] = None
        self.last_pass: Optional[PassStats] = None
        self.detection_count = 0

    # ------------------------------------------------------------------
    # Host signals
    # ------------------------------------------------------------------

    def on_mutation(self) -> Optional[PassStats]:
        return self.scan(force=False)

    def on_refresh(self) -> Optional[PassStats]:
        return self.scan(force=True)

    def on_reset(self) -> int:
        """
        Page-context change: clear the store and bump the generation.

        Pending emission is cancelled; in-flight enrichment finishes but its
        results are discarded by the generation check. An empty snapshot is
        emitted after the debounce window.

        Returns:
            The new generation.
        """
        self.debouncer.cancel()
        generation = self.gate.reset()
        removed = self.store.clear()
        logger.info("Page %s reset to generation %d (%d records dropped)", self.page_id, generation, removed)
        self.debouncer.trigger()
        return generation

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    @property
    def phase(self) -> ScanPhase:
        return self.gate.phase

    @property
    def generation(self) -> int:
        return self.store.generation

    @property
    def records(self) -> tuple[CandidateRecord, ...]:
        return self.store.records

    @property
    def latest_snapshot(self) -> Optional[DetectionSnapshot]:
        return self._latest

    def scan(self, force: bool = False) -> Optional[PassStats]:
        """
        Run one detection pass if the gate allows it.

        Returns:
            PassStats for the pass, or None when the gate skipped it.

        Raises:
            DetectionError: if the DOM query itself fails.
        """
        if self.dom_query is None:
            logger.debug("Page %s has no document yet, nothing to scan", self.page_id)
            return None

        if not self.gate.should_scan(self.store.records, force):
            logger.debug("Page %s scan skipped by gate (%s)", self.page_id, self.gate.phase.value)
            return None

        self.gate.begin_scan()
        try:
            stats, view, added = self._run_pass(force)
        finally:
            self.gate.end_scan()

        self.detection_count += 1
        self.last_pass = stats
        logger.info(
            "Page %s pass %d: %d elements, %d added, %d duplicates, %d invalid, %d failed",
            self.page_id,
            stats.pass_seq,
            stats.elements,
            stats.added,
            stats.duplicates + stats.cross_pass_duplicates,
            stats.invalid,
            stats.failed,
        )

        if stats.added:
            self.debouncer.trigger()
            self._spawn_enrichment(added, stats.generation, view.page.preview_image)
        return stats

    def _query(self) -> DocumentView:
        try:
            return self.dom_query.query()  # type: ignore[union-attr]
        except Exception as exc:
            raise DetectionError(f"DOM query failed: {exc}") from exc

    def _run_pass(self, force: bool) -> tuple[PassStats, DocumentView, list[CandidateRecord]]:
        started = time.perf_counter()
        view = self._query()

        generation = self.store.generation
        pass_seq = self.store.next_pass_seq()
        stats = PassStats(pass_seq=pass_seq, generation=generation, forced=force)
        builder = CandidateBuilder(
            config=self.config,
            generation=generation,
            pass_seq=pass_seq,
            clock=self._wall_clock,
        )

        accepted: list[CandidateRecord] = []
        for index, element in enumerate(view.elements):
            stats.elements += 1
            try:
                result = builder.build(element, index=index, page=view.page, accepted=accepted)
            except Exception:  # noqa: BLE001
                stats.failed += 1
                logger.warning(
                    "Page %s pass %d: element %d failed", self.page_id, pass_seq, index, exc_info=True
                )
                continue

            if result.outcome == BuildOutcome.ACCEPTED and result.record is not None:
                accepted.append(result.record)
                stats.accepted += 1
            elif result.outcome == BuildOutcome.DUPLICATE:
                stats.duplicates += 1
            else:
                stats.invalid += 1

        merged = self.store.merge(accepted, generation=generation)
        stats.added = len(merged.added)
        stats.cross_pass_duplicates = len(merged.duplicates)
        stats.duration_s = time.perf_counter() - started
        return stats, view, merged.added

    # ------------------------------------------------------------------
    # Enrichment & emission
    # ------------------------------------------------------------------

    def _spawn_enrichment(
        self,
        records: Sequence[CandidateRecord],
        generation: int,
        preview_image: Optional[str],
    ) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Page %s: no running event loop, enrichment skipped", self.page_id)
            return

        task = loop.create_task(
            self._enrich(list(records), generation, preview_image),
            name=f"mrd-enrich-{self.page_id}-{generation}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _enrich(
        self,
        records: list[CandidateRecord],
        generation: int,
        preview_image: Optional[str],
    ) -> None:
        thumbnails: dict[str, str] = {}
        for record in records:
            if record.media_kind == MediaKind.EMBEDDED_FRAME and not record.thumbnail_url:
                thumbnail = platform_thumbnail_url(record.source_url) or preview_image
                if thumbnail:
                    thumbnails[record.id] = thumbnail

        sizes: dict[str, Optional[int]] = {}
        if self.config.enrich_file_sizes:
            urls = [
                r.source_url
                for r in records
                if r.file_size_bytes is None
                and r.media_kind != MediaKind.EMBEDDED_FRAME
                and _is_network_url(r.source_url)
            ]
            sizes = await self.size_cache.get_sizes(urls)

        changed = self.store.apply_enrichment(
            generation, sizes_by_url=sizes, thumbnails_by_id=thumbnails
        )
        if changed:
            logger.debug("Page %s: enrichment updated %d records", self.page_id, changed)
            self.debouncer.trigger()

    def _emit(self) -> None:
        self._snapshot_seq += 1
        snapshot = DetectionSnapshot(
            records=self.store.records,
            generation=self.store.generation,
            sequence=self._snapshot_seq,
            emitted_at=self._wall_clock(),
        )
        self._latest = snapshot
        if self.consumer is not None:
            self.consumer(snapshot)

    async def wait_idle(self) -> None:
        """Wait until no enrichment task is pending."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def update_config(self, config: DetectionConfig) -> None:
        self.config = config
        self.gate.cooldown_s = config.cooldown_s
        self.debouncer.delay_s = config.debounce_s
        self.store.cross_pass_thresholds = config.cross_pass_thresholds()

    def close(self) -> None:
        self.debouncer.cancel()
        for task in list(self._tasks):
            task.cancel()

    def stats(self) -> dict[str, Any]:
        return {
            "page_id": self.page_id,
            "generation": self.generation,
            "phase": self.phase.value,
            "records": len(self.store),
            "detection_count": self.detection_count,
            "scans_skipped": self.gate.skipped_count,
            "snapshots_emitted": self._snapshot_seq,
            "discarded_results": self.store.discarded_results,
            "pending_enrichment": len(self._tasks),
            "last_pass": self.last_pass.to_dict() if self.last_pass is not None else None,
            "size_cache": self.size_cache.stats(),
        }

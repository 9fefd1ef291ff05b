"""
Tests for src/backend/pipeline/detection_engine.py

Covers:
- gated scans (mutation) vs forced scans (refresh)
- debounced snapshot emission
- per-element failure isolation and DOM query failures
- async enrichment (sizes, platform thumbnails) and generation guard on reset
"""

import asyncio
import unittest
from dataclasses import dataclass
from datetime import datetime, timezone

from src.backend.extractor import (
    ContainerSource,
    DirectMedia,
    DocumentView,
    EmbeddedFrame,
    PageContext,
)
from src.backend.net.size_cache import FileSizeCache
from src.backend.pipeline.detection_engine import DetectionEngine
from src.backend.scheduler.config import DetectionConfig
from src.backend.scheduler.timers import ManualTaskScheduler
from src.shared.detection import DetectionError
from src.shared.scan_phase import ScanPhase


T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
PAGE = PageContext(url="https://site.example/watch", document_title="Watch page", preview_image="https://site.example/og.jpg")


class FakeDomQuery:
    def __init__(self, *elements) -> None:
        self.elements = elements
        self.calls = 0
        self.error = None

    def query(self) -> DocumentView:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return DocumentView(page=PAGE, elements=tuple(self.elements))


@dataclass(frozen=True)
class ExplodingMedia(DirectMedia):
    @property
    def effective_url(self):
        raise RuntimeError("node detached")


class FakeProbe:
    def __init__(self, sizes=None) -> None:
        self.sizes = sizes or {}
        self.calls = []
        self.release = None

    async def __call__(self, url: str):
        self.calls.append(url)
        if self.release is not None:
            await self.release.wait()
        return self.sizes.get(url)


def _engine(dom, *, probe=None, config=None):
    scheduler = ManualTaskScheduler()
    snapshots = []
    engine = DetectionEngine(
        dom,
        consumer=snapshots.append,
        config=config or DetectionConfig(),
        size_cache=FileSizeCache(probe or FakeProbe()),
        task_scheduler=scheduler,
        clock=scheduler.clock,
        wall_clock=lambda: T0,
        page_id="p1",
    )
    return engine, scheduler, snapshots


class TestScanning(unittest.TestCase):
    def test_first_mutation_scans(self) -> None:
        dom = FakeDomQuery(
            DirectMedia(src="https://cdn.example/v/intro.mp4", title="Intro"),
            DirectMedia(src="https://cdn.example/v/finale.webm", title="Finale"),
        )
        engine, _, _ = _engine(dom)

        stats = engine.on_mutation()

        self.assertIsNotNone(stats)
        self.assertEqual(stats.pass_seq, 1)
        self.assertEqual(stats.elements, 2)
        self.assertEqual(stats.added, 2)
        self.assertEqual([r.id for r in engine.records], ["video_1_0", "video_1_1"])
        self.assertEqual(engine.detection_count, 1)
        self.assertEqual(engine.phase, ScanPhase.COOLDOWN)

    def test_no_document_no_scan(self) -> None:
        engine, _, _ = _engine(None)
        self.assertIsNone(engine.on_mutation())

    def test_mutation_inside_cooldown_is_skipped(self) -> None:
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4"))
        engine, _, _ = _engine(dom)

        engine.on_mutation()
        self.assertIsNone(engine.on_mutation())
        self.assertEqual(dom.calls, 1)

    def test_refresh_bypasses_cooldown(self) -> None:
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4"))
        engine, _, _ = _engine(dom)

        engine.on_mutation()
        stats = engine.on_refresh()

        self.assertTrue(stats.forced)
        self.assertEqual(stats.added, 0)
        self.assertEqual(stats.cross_pass_duplicates, 1)
        self.assertEqual(len(engine.records), 1)

    def test_new_content_after_cooldown(self) -> None:
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4", title="Intro"))
        engine, scheduler, _ = _engine(dom)

        engine.on_mutation()
        scheduler.advance(6)
        dom.elements = dom.elements + (DirectMedia(src="https://other.example/w/finale.webm", title="Finale"),)
        stats = engine.on_mutation()

        self.assertEqual(stats.added, 1)
        self.assertEqual(stats.cross_pass_duplicates, 1)
        self.assertEqual([r.id for r in engine.records], ["video_1_0", "video_2_1"])

    def test_streaming_segments_collapse_to_one_record(self) -> None:
        dom = FakeDomQuery(
            DirectMedia(src="https://cdn.example/stream/42/segment_001.mp4"),
            ContainerSource(src="https://cdn.example/stream/42/segment_002.mp4"),
            ContainerSource(src="https://cdn.example/stream/42/segment_003.mp4"),
        )
        engine, _, _ = _engine(dom)

        stats = engine.on_mutation()

        self.assertEqual(stats.accepted, 1)
        self.assertEqual(stats.duplicates, 2)
        self.assertAlmostEqual(stats.duplicate_ratio, 2 / 3, places=6)

    def test_failing_element_does_not_abort_pass(self) -> None:
        dom = FakeDomQuery(
            ExplodingMedia(src="https://cdn.example/v/broken.mp4"),
            DirectMedia(src="https://cdn.example/v/intro.mp4"),
            DirectMedia(src="ftp://cdn.example/v/nope.mp4"),
        )
        engine, _, _ = _engine(dom)

        with self.assertLogs("src.backend.pipeline.detection_engine", level="WARNING"):
            stats = engine.on_mutation()

        self.assertEqual(stats.failed, 1)
        self.assertEqual(stats.invalid, 1)
        self.assertEqual(stats.added, 1)
        self.assertEqual(engine.records[0].id, "video_1_1")

    def test_dom_query_failure(self) -> None:
        dom = FakeDomQuery()
        dom.error = RuntimeError("document gone")
        engine, _, _ = _engine(dom)

        with self.assertRaises(DetectionError):
            engine.on_mutation()
        self.assertEqual(engine.phase, ScanPhase.COOLDOWN)
        self.assertEqual(len(engine.records), 0)


class TestEmission(unittest.TestCase):
    def test_snapshot_debounced(self) -> None:
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4", title="Intro"))
        engine, scheduler, snapshots = _engine(dom)

        engine.on_mutation()
        engine.on_refresh()
        self.assertEqual(snapshots, [])

        scheduler.advance(1.0)
        self.assertEqual(len(snapshots), 1)
        self.assertEqual(snapshots[0].urls, ["https://cdn.example/v/intro.mp4"])
        self.assertEqual(snapshots[0].sequence, 1)
        self.assertIs(engine.latest_snapshot, snapshots[0])

    def test_pass_without_additions_emits_nothing(self) -> None:
        engine, scheduler, snapshots = _engine(FakeDomQuery())
        engine.on_mutation()
        scheduler.advance(5.0)
        self.assertEqual(snapshots, [])

    def test_reset_emits_empty_snapshot(self) -> None:
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4"))
        engine, scheduler, snapshots = _engine(dom)

        engine.on_mutation()
        generation = engine.on_reset()
        scheduler.advance(1.0)

        self.assertEqual(generation, 1)
        self.assertEqual(len(snapshots), 1)
        self.assertEqual(len(snapshots[0]), 0)
        self.assertEqual(snapshots[0].generation, 1)
        self.assertEqual(engine.phase, ScanPhase.IDLE)

    def test_rescan_after_reset_uses_new_generation(self) -> None:
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4"))
        engine, _, _ = _engine(dom)

        engine.on_mutation()
        engine.on_reset()
        stats = engine.on_mutation()

        self.assertEqual(stats.added, 1)
        self.assertEqual(engine.records[0].generation, 1)

    def test_update_config(self) -> None:
        engine, _, _ = _engine(FakeDomQuery())
        engine.update_config(DetectionConfig(cooldown_s=1.0, debounce_s=0.25, title_similarity=0.5))

        self.assertEqual(engine.gate.cooldown_s, 1.0)
        self.assertEqual(engine.debouncer.delay_s, 0.25)
        self.assertEqual(engine.store.cross_pass_thresholds["title_similarity"], 0.5)


class TestEnrichment(unittest.TestCase):
    def test_sizes_and_thumbnails(self) -> None:
        probe = FakeProbe({"https://cdn.example/v/intro.mp4": 2048})
        dom = FakeDomQuery(
            DirectMedia(src="https://cdn.example/v/intro.mp4", title="Intro"),
            EmbeddedFrame(src="https://www.youtube.com/embed/dQw4w9WgXcQ", title="Song"),
            EmbeddedFrame(src="https://player.vimeo.com/channel/staff", title="Staff picks"),
        )
        engine, scheduler, snapshots = _engine(dom, probe=probe)

        async def run():
            engine.on_mutation()
            await engine.wait_idle()

        asyncio.run(run())
        records = {r.id: r for r in engine.records}

        self.assertEqual(probe.calls, ["https://cdn.example/v/intro.mp4"])
        self.assertEqual(records["video_1_0"].file_size_bytes, 2048)
        self.assertEqual(
            records["embed_1_1"].thumbnail_url, "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
        )
        self.assertEqual(records["embed_1_2"].thumbnail_url, "https://site.example/og.jpg")

        scheduler.advance(1.0)
        self.assertEqual(len(snapshots), 1)
        self.assertEqual(snapshots[0].records[0].file_size_bytes, 2048)

    def test_sizes_disabled(self) -> None:
        probe = FakeProbe({"https://cdn.example/v/intro.mp4": 2048})
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4"))
        engine, _, _ = _engine(dom, probe=probe, config=DetectionConfig(enrich_file_sizes=False))

        async def run():
            engine.on_mutation()
            await engine.wait_idle()

        asyncio.run(run())
        self.assertEqual(probe.calls, [])
        self.assertIsNone(engine.records[0].file_size_bytes)

    def test_enrichment_after_reset_is_discarded(self) -> None:
        probe = FakeProbe({"https://cdn.example/v/intro.mp4": 2048})
        dom = FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4"))
        engine, _, _ = _engine(dom, probe=probe)

        async def run():
            probe.release = asyncio.Event()
            engine.on_mutation()
            await asyncio.sleep(0)
            engine.on_reset()
            engine.on_mutation()
            probe.release.set()
            await engine.wait_idle()

        asyncio.run(run())

        self.assertEqual(engine.generation, 1)
        self.assertEqual(engine.store.discarded_results, 1)
        self.assertEqual(len(engine.records), 1)

    def test_no_running_loop_skips_enrichment(self) -> None:
        probe = FakeProbe({"https://cdn.example/v/intro.mp4": 2048})
        engine, _, _ = _engine(FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4")), probe=probe)

        engine.on_mutation()

        self.assertEqual(probe.calls, [])
        self.assertEqual(engine.stats()["pending_enrichment"], 0)

    def test_default_scheduler_outside_event_loop(self) -> None:
        snapshots = []
        engine = DetectionEngine(
            FakeDomQuery(DirectMedia(src="https://cdn.example/v/intro.mp4", title="Intro")),
            consumer=snapshots.append,
            size_cache=FileSizeCache(FakeProbe()),
            wall_clock=lambda: T0,
        )

        stats = engine.on_mutation()

        self.assertIsNotNone(stats)
        self.assertEqual(engine.detection_count, 1)
        self.assertIs(engine.last_pass, stats)
        self.assertEqual(len(snapshots), 1)
        self.assertEqual(len(snapshots[0].records), 1)
        self.assertFalse(engine.debouncer.pending)

        self.assertEqual(engine.on_reset(), 1)
        self.assertEqual(len(snapshots), 2)
        self.assertEqual(snapshots[1].records, ())
        self.assertEqual(snapshots[1].generation, 1)


if __name__ == "__main__":
    unittest.main()

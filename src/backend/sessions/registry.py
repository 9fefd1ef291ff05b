from __future__ import annotations

import logging
from typing import Callable, Optional

from src.backend.net.probe import HeadRequestProber
from src.backend.pipeline.detection_engine import DetectionEngine, SnapshotConsumer
from src.backend.scheduler.config import DetectionConfig
from src.backend.scheduler.timers import TaskScheduler
from src.backend.settings.models import GlobalSettings
from src.backend.settings.store import SettingsStore


logger = logging.getLogger(__name__)


class PageRegistry:
    """
    One DetectionEngine per page id.

    Engines are created lazily with the current settings; settings changes
    are pushed to live engines through apply_settings().
    """

    def __init__(
        self,
        *,
        store: SettingsStore,
        consumer: Optional[SnapshotConsumer] = None,
        task_scheduler: Optional[TaskScheduler] = None,
        prober_factory: Optional[Callable[[GlobalSettings], HeadRequestProber]] = None,
    ) -> None:
        self._store = store
        self._consumer = consumer
        self._task_scheduler = task_scheduler
        self._prober_factory = prober_factory or (
            lambda s: HeadRequestProber(config=s.get_probe(), proxy=s.get_proxy())
        )
        self._engines: dict[str, DetectionEngine] = {}

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    def page_ids(self) -> list[str]:
        return sorted(self._engines)

    def get(self, page_id: str) -> Optional[DetectionEngine]:
        return self._engines.get(page_id)

    def get_or_create(self, page_id: str) -> DetectionEngine:
        if not page_id or not page_id.strip():
            raise ValueError("page_id must not be empty")

        engine = self._engines.get(page_id)
        if engine is None:
            settings = self._store.load()
            engine = DetectionEngine(
                consumer=self._consumer,
                config=settings.get_detection(),
                prober=self._prober_factory(settings),
                task_scheduler=self._task_scheduler,
                page_id=page_id,
            )
            self._engines[page_id] = engine
            logger.info("Created detection engine for page %s", page_id)
        return engine

    def drop(self, page_id: str) -> bool:
        engine = self._engines.pop(page_id, None)
        if engine is None:
            return False
        engine.close()
        return True

    def apply_settings(self, settings: GlobalSettings) -> None:
        config: DetectionConfig = settings.get_detection()
        for engine in self._engines.values():
            engine.update_config(config)

    def close(self) -> None:
        for page_id in list(self._engines):
            self.drop(page_id)

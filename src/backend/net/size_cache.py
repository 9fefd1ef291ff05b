"""
Bounded cache in front of the file-size probe.

- at most one outstanding probe per URL (concurrent callers share it)
- bounded fan-out per event loop (semaphore)
- capacity-bounded; on overflow the oldest share of entries is evicted
- failures are cached as unknown (None) and never retried
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import OrderedDict
from typing import Awaitable, Callable, Iterable, Optional

from src.backend.scheduler.config import (
    DEFAULT_MAX_PARALLEL_PROBES,
    DEFAULT_SIZE_CACHE_CAPACITY,
    DEFAULT_SIZE_CACHE_EVICT_FRACTION,
)
from src.shared.stats.metrics import compute_cache_hit_ratio


logger = logging.getLogger(__name__)

SizeProbe = Callable[[str], Awaitable[Optional[int]]]


class FileSizeCache:
    def __init__(
        self,
        probe: SizeProbe,
        *,
        capacity: int = DEFAULT_SIZE_CACHE_CAPACITY,
        evict_fraction: float = DEFAULT_SIZE_CACHE_EVICT_FRACTION,
        max_parallel: int = DEFAULT_MAX_PARALLEL_PROBES,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")

        self._probe = probe
        self.capacity = capacity
        self.evict_fraction = evict_fraction
        self.max_parallel = max_parallel

        # insertion order == age
        self._entries: OrderedDict[str, Optional[int]] = OrderedDict()
        self._inflight: dict[str, asyncio.Future[Optional[int]]] = {}
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

        self.hits = 0
        self.misses = 0
        self.failures = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def peek(self, url: str) -> Optional[int]:
        """Cached size without probing (None if unknown or not cached)."""
        return self._entries.get(url)

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def get_size(self, url: str) -> Optional[int]:
        if url in self._entries:
            self.hits += 1
            return self._entries[url]

        pending = self._inflight.get(url)
        if pending is not None:
            self.hits += 1
            return await asyncio.shield(pending)

        self.misses += 1
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Optional[int]] = loop.create_future()
        self._inflight[url] = future
        try:
            size = await self._probe_bounded(url)
            self._store(url, size)
            future.set_result(size)
        except asyncio.CancelledError:
            # waiters see the cancellation, nothing is cached
            future.cancel()
            raise
        finally:
            self._inflight.pop(url, None)
        return size

    async def get_sizes(self, urls: Iterable[str]) -> dict[str, Optional[int]]:
        """
        Batched lookup. Never raises for individual probe failures.

        Returns:
            url -> size (None when unknown), one entry per distinct URL.
        """
        unique = list(dict.fromkeys(u for u in urls if u))
        if not unique:
            return {}
        sizes = await asyncio.gather(*(self.get_size(u) for u in unique))
        return dict(zip(unique, sizes))

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "capacity": self.capacity,
            "hits": self.hits,
            "misses": self.misses,
            "failures": self.failures,
            "evictions": self.evictions,
            "hit_ratio": compute_cache_hit_ratio(self.hits, self.misses),
        }

    def _get_semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.max_parallel)
            self._semaphore_loop = loop
        return self._semaphore

    async def _probe_bounded(self, url: str) -> Optional[int]:
        async with self._get_semaphore():
            try:
                size = await self._probe(url)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                logger.debug("Size probe raised for %s: %s", url, exc)
                size = None

        if size is None:
            self.failures += 1
        return size

    def _store(self, url: str, size: Optional[int]) -> None:
        self._entries[url] = size
        if len(self._entries) <= self.capacity:
            return

        evict = max(1, math.ceil(self.capacity * self.evict_fraction))
        for _ in range(min(evict, len(self._entries) - 1)):
            self._entries.popitem(last=False)
            self.evictions += 1
        logger.debug("Size cache evicted %d entries", evict)

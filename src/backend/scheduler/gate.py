"""
Re-scan gate for one page context.

should_scan() contract:
- True on the very first call, when forced, or when the current set is empty
- False while inside the cooldown window since the last scan
- Otherwise True only when the content fingerprint changed

The gate is total: an internal failure is logged and answered with True.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Iterable, Optional, Sequence

from src.shared.detection.models import CandidateRecord, ScanState, format_utc_z
from src.shared.scan_phase import ScanPhase

from .config import DEFAULT_COOLDOWN_S
from .timers import Clock, MonotonicClock


logger = logging.getLogger(__name__)


def content_fingerprint(records: Iterable[CandidateRecord]) -> str:
    """Order-independent SHA-256 over the (url, first_seen_at) pairs."""
    pairs = sorted(f"{r.source_url}:{format_utc_z(r.first_seen_at)}" for r in records)
    digest = hashlib.sha256()
    for pair in pairs:
        digest.update(pair.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


class ScanGate:
    """
    Owns the ScanState of one page context and the Idle/Scanning/Cooldown phase.

    The state object is shared with the candidate store, which only reads the
    generation from it.
    """

    def __init__(
        self,
        state: Optional[ScanState] = None,
        *,
        cooldown_s: float = DEFAULT_COOLDOWN_S,
        clock: Optional[Clock] = None,
    ) -> None:
        self.state = state if state is not None else ScanState()
        self.cooldown_s = cooldown_s
        self._clock: Clock = clock or MonotonicClock()
        self._phase = ScanPhase.IDLE
        self.allowed_count = 0
        self.skipped_count = 0

    @property
    def phase(self) -> ScanPhase:
        if self._phase == ScanPhase.COOLDOWN and not self._in_cooldown(self._clock.now()):
            self._phase = ScanPhase.IDLE
        return self._phase

    @property
    def generation(self) -> int:
        return self.state.generation

    def should_scan(self, current: Sequence[CandidateRecord], force: bool = False) -> bool:
        try:
            allowed = self._decide(current, force)
        except Exception:  # noqa: BLE001
            logger.warning("Scan gate failed, allowing scan", exc_info=True)
            allowed = True

        if allowed:
            self.allowed_count += 1
        else:
            self.skipped_count += 1
        return allowed

    def begin_scan(self) -> None:
        self._phase = ScanPhase.SCANNING

    def end_scan(self) -> None:
        self._phase = ScanPhase.COOLDOWN

    def reset(self) -> int:
        """Forget scan history and bump the generation. Returns the new generation."""
        self.state.generation += 1
        self.state.last_scan_at = None
        self.state.last_content_fingerprint = None
        self._phase = ScanPhase.IDLE
        return self.state.generation

    def _in_cooldown(self, now: float) -> bool:
        last = self.state.last_scan_at
        return last is not None and (now - last) < self.cooldown_s

    def _mark(self, now: float, fingerprint: str) -> None:
        self.state.last_scan_at = now
        self.state.last_content_fingerprint = fingerprint

    def _decide(self, current: Sequence[CandidateRecord], force: bool) -> bool:
        now = self._clock.now()
        records = list(current or ())

        if self.state.last_scan_at is None:
            logger.debug("First scan for generation %d", self.state.generation)
            self._mark(now, content_fingerprint(records))
            return True

        if force or not records:
            self._mark(now, content_fingerprint(records))
            return True

        if self._in_cooldown(now):
            return False

        fingerprint = content_fingerprint(records)
        if fingerprint == self.state.last_content_fingerprint:
            return False

        self._mark(now, fingerprint)
        return True

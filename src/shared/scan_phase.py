"""
Scan phase enum shared by the scan gate, the engine and the host API.

    Idle -> Scanning -> Cooldown -> (Idle on reset)
"""

from __future__ import annotations

from enum import Enum


class ScanPhase(str, Enum):
    IDLE = "Idle"
    SCANNING = "Scanning"
    COOLDOWN = "Cooldown"

    def is_busy(self) -> bool:
        return self is ScanPhase.SCANNING

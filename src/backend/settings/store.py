"""
Settings persistence for the detection host.

The file is a single JSON object:

    {"version": 1, "detection": {...}, "probe": {...}, "proxy": {...}}

Each section is optional; a missing section means "use defaults". Writes go
to a sibling tmp file first and are moved into place.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from .models import SETTINGS_VERSION, GlobalSettings


logger = logging.getLogger(__name__)

SECTIONS = ("detection", "probe", "proxy")


class SettingsStore:
    def __init__(self, *, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_raw(self) -> Optional[dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable settings file %s, using defaults: %s", self._path, exc)
            return None
        if not isinstance(raw, dict):
            logger.warning("Settings file %s does not hold an object, using defaults", self._path)
            return None
        return raw

    def load(self) -> GlobalSettings:
        with self._lock:
            raw = self._read_raw()
            if raw is None:
                return GlobalSettings()

            version = raw.get("version", SETTINGS_VERSION)
            if version != SETTINGS_VERSION:
                logger.warning(
                    "Settings file %s has version %r (expected %d), using defaults",
                    self._path,
                    version,
                    SETTINGS_VERSION,
                )
                return GlobalSettings()
            return GlobalSettings.from_persist_dict(raw)

    def save(self, settings: GlobalSettings) -> None:
        text = json.dumps(settings.to_persist_dict(), ensure_ascii=False, indent=2) + "\n"
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(self._path)

    def update(self, *, mutator: Callable[[GlobalSettings], GlobalSettings]) -> GlobalSettings:
        """Load, apply `mutator`, save; all under the store lock."""
        with self._lock:
            updated = mutator(self.load())
            if not isinstance(updated, GlobalSettings):
                raise TypeError("mutator must return GlobalSettings")
            self.save(updated)
            return updated

    def set_section(self, name: str, value: Any) -> GlobalSettings:
        """
        Replace one settings section.

        Args:
            name: One of SECTIONS.
            value: Section config object, or None to fall back to defaults.

        Raises:
            KeyError: for an unknown section name.
        """
        if name not in SECTIONS:
            raise KeyError(name)

        def mutate(settings: GlobalSettings) -> GlobalSettings:
            setattr(settings, name, value)
            return settings

        return self.update(mutator=mutate)

    def clear_section(self, name: str) -> GlobalSettings:
        return self.set_section(name, None)

    def reset(self) -> GlobalSettings:
        return self.update(mutator=lambda _settings: GlobalSettings())

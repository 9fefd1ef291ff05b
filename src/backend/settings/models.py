from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..net.probe import ProbeConfig
from ..net.proxy import ProxyConfig
from ..scheduler.config import DetectionConfig


SETTINGS_VERSION = 1


@dataclass
class GlobalSettings:
    detection: Optional[DetectionConfig] = None
    probe: Optional[ProbeConfig] = None
    proxy: Optional[ProxyConfig] = None

    def get_detection(self) -> DetectionConfig:
        """Get detection config, using defaults if not set."""
        return self.detection or DetectionConfig()

    def get_probe(self) -> ProbeConfig:
        """Get probe config, using defaults if not set."""
        return self.probe or ProbeConfig()

    def get_proxy(self) -> ProxyConfig:
        """Get proxy config, using defaults if not set."""
        return self.proxy or ProxyConfig()

    def to_persist_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"version": SETTINGS_VERSION}
        if self.detection is not None:
            data["detection"] = self.detection.to_persist_dict()
        if self.probe is not None:
            data["probe"] = self.probe.to_persist_dict()
        if self.proxy is not None:
            data["proxy"] = self.proxy.to_persist_dict()
        return data

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "GlobalSettings":
        raw_detection = data.get("detection")
        detection = None
        if isinstance(raw_detection, dict):
            detection = DetectionConfig.from_persist_dict(raw_detection)

        raw_probe = data.get("probe")
        probe = None
        if isinstance(raw_probe, dict):
            probe = ProbeConfig.from_persist_dict(raw_probe)

        raw_proxy = data.get("proxy")
        proxy = None
        if isinstance(raw_proxy, dict):
            proxy = ProxyConfig.from_persist_dict(raw_proxy)

        return cls(detection=detection, probe=probe, proxy=proxy)

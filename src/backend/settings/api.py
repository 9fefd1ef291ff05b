from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..net.probe import DEFAULT_TIMEOUT_S, ProbeConfig
from ..net.proxy import ProxyConfig
from ..scheduler.config import DetectionConfig
from ..sessions.registry import PageRegistry
from .models import GlobalSettings
from .store import SettingsStore


class DetectionIn(BaseModel):
    cooldown_s: float = Field(ge=0.0, le=3600.0, default=5.0)
    debounce_s: float = Field(ge=0.0, le=60.0, default=1.0)
    size_cache_capacity: int = Field(ge=1, le=1_000_000, default=1000)
    size_cache_evict_fraction: float = Field(ge=0.01, le=1.0, default=0.2)
    max_parallel_probes: int = Field(ge=1, le=64, default=6)
    size_tolerance_bytes: int = Field(ge=0, le=1 << 30, default=1024)
    filename_similarity: float = Field(ge=0.0, le=1.0, default=0.8)
    title_similarity: float = Field(ge=0.0, le=1.0, default=0.8)
    url_similarity: float = Field(ge=0.0, le=1.0, default=0.9)
    enrich_file_sizes: bool = True


class ProbeIn(BaseModel):
    timeout_s: float = Field(ge=0.5, le=120.0, default=DEFAULT_TIMEOUT_S)
    user_agent: str = ""


class ProxyIn(BaseModel):
    enabled: bool = False
    url: str = ""


class DetectionOut(BaseModel):
    cooldown_s: float
    debounce_s: float
    size_cache_capacity: int
    size_cache_evict_fraction: float
    max_parallel_probes: int
    size_tolerance_bytes: int
    filename_similarity: float
    title_similarity: float
    url_similarity: float
    enrich_file_sizes: bool


class ProbeOut(BaseModel):
    timeout_s: float
    user_agent: str


class ProxyOut(BaseModel):
    enabled: bool
    url_configured: bool  # Don't expose actual URL for security


class SettingsOut(BaseModel):
    detection: DetectionOut
    probe: ProbeOut
    proxy: ProxyOut


def _public_settings(settings: GlobalSettings) -> SettingsOut:
    proxy = settings.get_proxy()
    return SettingsOut(
        detection=DetectionOut(**settings.get_detection().to_persist_dict()),
        probe=ProbeOut(**settings.get_probe().to_persist_dict()),
        proxy=ProxyOut(
            enabled=proxy.enabled,
            url_configured=bool(proxy.url.strip()),
        ),
    )


def create_settings_router(*, store: SettingsStore, registry: PageRegistry) -> APIRouter:
    router = APIRouter(prefix="/api/settings", tags=["settings"])

    @router.get("", response_model=SettingsOut)
    def get_settings() -> SettingsOut:
        return _public_settings(store.load())

    @router.post("/detection", response_model=SettingsOut)
    async def set_detection(body: DetectionIn) -> SettingsOut:
        detection = DetectionConfig.from_persist_dict(body.model_dump())
        updated = store.set_section("detection", detection)
        registry.apply_settings(updated)
        return _public_settings(updated)

    @router.delete("/detection", response_model=SettingsOut)
    async def reset_detection() -> SettingsOut:
        updated = store.clear_section("detection")
        registry.apply_settings(updated)
        return _public_settings(updated)

    @router.post("/probe", response_model=SettingsOut)
    def set_probe(body: ProbeIn) -> SettingsOut:
        probe = ProbeConfig.from_persist_dict(body.model_dump())
        updated = store.set_section("probe", probe)
        return _public_settings(updated)

    @router.post("/proxy", response_model=SettingsOut)
    def set_proxy(body: ProxyIn) -> SettingsOut:
        proxy = ProxyConfig(
            enabled=body.enabled,
            url=body.url.strip(),
        )

        is_valid, error = proxy.validate()
        if not is_valid:
            raise HTTPException(status_code=400, detail=error)

        updated = store.set_section("proxy", proxy)
        return _public_settings(updated)

    @router.delete("/proxy", response_model=SettingsOut)
    def clear_proxy() -> SettingsOut:
        updated = store.set_section("proxy", ProxyConfig(enabled=False, url=""))
        return _public_settings(updated)

    return router

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI

from .net.probe import HeadRequestProber
from .sessions.api import create_pages_router
from .sessions.registry import PageRegistry
from .settings.api import create_settings_router
from .settings.models import GlobalSettings
from .settings.store import SettingsStore


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def create_app(
    *,
    data_dir: Optional[Path] = None,
    prober_factory: Optional[Callable[[GlobalSettings], HeadRequestProber]] = None,
) -> FastAPI:
    repo_root = _repo_root()
    data_dir = Path(data_dir) if data_dir is not None else repo_root / "data"
    config_path = data_dir / "config.json"

    store = SettingsStore(path=config_path)
    registry = PageRegistry(store=store, prober_factory=prober_factory)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        registry.close()

    app = FastAPI(title="media-resource-discovery", lifespan=lifespan)
    app.include_router(create_settings_router(store=store, registry=registry))
    app.include_router(create_pages_router(registry=registry))

    app.state.settings_store = store
    app.state.page_registry = registry
    app.state.repo_root = repo_root

    return app


app = create_app()

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from src.backend.extractor.html_query import HtmlDomQuery
from src.backend.pipeline.detection_engine import DetectionEngine, PassStats
from src.shared.detection.errors import DetectionError
from src.shared.detection.models import CandidateRecord, DetectionSnapshot
from src.shared.scan_phase import ScanPhase

from .registry import PageRegistry


class ScanSignal(str, Enum):
    MUTATION = "mutation"
    REFRESH = "refresh"


class DocumentIn(BaseModel):
    html: str
    url: str = ""
    signal: ScanSignal = ScanSignal.MUTATION


class CandidateOut(BaseModel):
    id: str
    source_url: str
    normalized_url: str
    title: str
    media_kind: str
    format: str
    quality_label: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    duration_seconds: Optional[float] = None
    thumbnail_url: Optional[str] = None
    file_size_bytes: Optional[int] = None
    file_size: str
    file_name: Optional[str] = None
    suggested_file_name: str
    first_seen_at: str
    generation: int


class PassStatsOut(BaseModel):
    pass_seq: int
    generation: int
    forced: bool
    elements: int
    accepted: int
    invalid: int
    duplicates: int
    cross_pass_duplicates: int
    failed: int
    added: int
    duplicate_ratio: float
    duration_s: float


class ScanOut(BaseModel):
    page_id: str
    scanned: bool
    phase: ScanPhase
    generation: int
    last_pass: Optional[PassStatsOut] = None
    records: list[CandidateOut]


class SnapshotOut(BaseModel):
    page_id: str
    generation: int
    sequence: int
    emitted_at: str
    records: list[CandidateOut]


class ResetOut(BaseModel):
    page_id: str
    generation: int


class PageSummaryOut(BaseModel):
    page_id: str
    generation: int
    phase: ScanPhase
    records: int


def _candidates(records: tuple[CandidateRecord, ...]) -> list[CandidateOut]:
    return [CandidateOut(**r.to_public_dict()) for r in records]


def _pass_out(stats: Optional[PassStats]) -> Optional[PassStatsOut]:
    if stats is None:
        return None
    return PassStatsOut(**stats.to_dict())


def _snapshot_out(page_id: str, snapshot: DetectionSnapshot) -> SnapshotOut:
    data = snapshot.to_public_dict()
    return SnapshotOut(
        page_id=page_id,
        generation=data["generation"],
        sequence=data["sequence"],
        emitted_at=data["emitted_at"],
        records=[CandidateOut(**r) for r in data["records"]],
    )


def _summary(engine: DetectionEngine) -> PageSummaryOut:
    return PageSummaryOut(
        page_id=engine.page_id,
        generation=engine.generation,
        phase=engine.phase,
        records=len(engine.records),
    )


def create_pages_router(*, registry: PageRegistry) -> APIRouter:
    router = APIRouter(prefix="/api/pages", tags=["pages"])

    def _require(page_id: str) -> DetectionEngine:
        engine = registry.get(page_id)
        if engine is None:
            raise HTTPException(status_code=404, detail=f"unknown page {page_id}")
        return engine

    @router.get("", response_model=list[PageSummaryOut])
    async def list_pages() -> list[PageSummaryOut]:
        return [_summary(registry.get(pid)) for pid in registry.page_ids()]  # type: ignore[arg-type]

    @router.post("/{page_id}/document", response_model=ScanOut)
    async def submit_document(page_id: str, body: DocumentIn) -> ScanOut:
        try:
            engine = registry.get_or_create(page_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        engine.dom_query = HtmlDomQuery(body.html, url=body.url)
        try:
            if body.signal == ScanSignal.REFRESH:
                stats = engine.on_refresh()
            else:
                stats = engine.on_mutation()
        except DetectionError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        return ScanOut(
            page_id=page_id,
            scanned=stats is not None,
            phase=engine.phase,
            generation=engine.generation,
            last_pass=_pass_out(stats),
            records=_candidates(engine.records),
        )

    @router.get("/{page_id}/records", response_model=list[CandidateOut])
    async def get_records(page_id: str) -> list[CandidateOut]:
        return _candidates(_require(page_id).records)

    @router.get("/{page_id}/snapshot", response_model=SnapshotOut)
    async def get_snapshot(page_id: str) -> SnapshotOut:
        engine = _require(page_id)
        snapshot = engine.latest_snapshot
        if snapshot is None:
            raise HTTPException(status_code=404, detail="no snapshot emitted yet")
        return _snapshot_out(page_id, snapshot)

    @router.get("/{page_id}/stats")
    async def get_stats(page_id: str) -> dict[str, Any]:
        return _require(page_id).stats()

    @router.post("/{page_id}/reset", response_model=ResetOut)
    async def reset_page(page_id: str) -> ResetOut:
        engine = _require(page_id)
        generation = engine.on_reset()
        return ResetOut(page_id=page_id, generation=generation)

    @router.delete("/{page_id}")
    async def drop_page(page_id: str) -> dict[str, bool]:
        if not registry.drop(page_id):
            raise HTTPException(status_code=404, detail=f"unknown page {page_id}")
        return {"dropped": True}

    return router

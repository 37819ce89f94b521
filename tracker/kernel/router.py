"""Tracker HTTP router — targets, history, config and content events."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from tracker.auth import verify_api_key
from tracker.kernel.errors import TargetNotFoundError, ValidationError
from tracker.kernel.models import (
    ARCHIVED_PERIODS,
    ConfigEdit,
    DocumentEvent,
    FocusEvent,
    Period,
    RenameEvent,
    TargetEdit,
    TargetKind,
    TargetView,
    TrackerConfig,
    YearProgressDay,
)
from tracker.kernel.service import TrackerService

router = APIRouter(prefix="/tracker", tags=["tracker"], dependencies=[Depends(verify_api_key)])


def get_service(request: Request) -> TrackerService:
    service = getattr(request.app.state, "tracker_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Tracker is not running")
    return service


def _not_found(exc: TargetNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


# ---------------------------------------------------------------------------
# /tracker/targets
# ---------------------------------------------------------------------------


@router.get("/targets", response_model=list[TargetView])
async def list_targets(service: TrackerService = Depends(get_service)) -> list[TargetView]:
    return [service.target_view(t) for t in service.registry]


@router.post("/targets", response_model=TargetView, status_code=201)
async def create_target(
    kind: TargetKind = Query(..., description="wordCount or time"),
    service: TrackerService = Depends(get_service),
) -> TargetView:
    target = await service.create_target(kind)
    return service.target_view(target)


@router.get("/targets/{target_id}", response_model=TargetView)
async def get_target(target_id: str, service: TrackerService = Depends(get_service)) -> TargetView:
    target = service.registry.get(target_id)
    if target is None:
        raise HTTPException(status_code=404, detail=f"Unknown target: {target_id}")
    return service.target_view(target)


@router.put("/targets/{target_id}", response_model=TargetView)
async def edit_target(
    target_id: str,
    edit: TargetEdit,
    service: TrackerService = Depends(get_service),
) -> TargetView:
    try:
        target = await service.edit_target(target_id, edit)
    except TargetNotFoundError as exc:
        raise _not_found(exc)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail={"field": exc.field, "message": exc.message})
    return service.target_view(target)


@router.delete("/targets/{target_id}", status_code=204)
async def delete_target(target_id: str, service: TrackerService = Depends(get_service)) -> None:
    try:
        await service.delete_target(target_id)
    except TargetNotFoundError as exc:
        raise _not_found(exc)


# ---------------------------------------------------------------------------
# /tracker/history
# ---------------------------------------------------------------------------


@router.get("/history/year", response_model=list[YearProgressDay])
async def year_progress(
    year: int = Query(..., ge=1, le=9999),
    period: Period = Query(Period.daily),
    kind: TargetKind = Query(TargetKind.word_count),
    service: TrackerService = Depends(get_service),
) -> list[YearProgressDay]:
    if period not in ARCHIVED_PERIODS:
        raise HTTPException(status_code=422, detail=f"Period '{period.value}' has no history")
    return service.get_year_progress(year, period, kind)


# ---------------------------------------------------------------------------
# /tracker/config
# ---------------------------------------------------------------------------


@router.get("/config", response_model=TrackerConfig)
async def get_config(service: TrackerService = Depends(get_service)) -> TrackerConfig:
    return service.config


@router.put("/config", response_model=TrackerConfig)
async def update_config(edit: ConfigEdit, service: TrackerService = Depends(get_service)) -> TrackerConfig:
    return await service.update_config(edit)


# ---------------------------------------------------------------------------
# /tracker/events
# ---------------------------------------------------------------------------


@router.post("/events/created", status_code=202)
async def document_created(event: DocumentEvent, service: TrackerService = Depends(get_service)) -> dict:
    await service.tracker.on_document_created(event.path)
    return {"status": "accepted"}


@router.post("/events/modified", status_code=202)
async def document_modified(event: DocumentEvent, service: TrackerService = Depends(get_service)) -> dict:
    await service.tracker.on_document_modified(event.path)
    return {"status": "accepted"}


@router.post("/events/deleted", status_code=202)
async def document_deleted(event: DocumentEvent, service: TrackerService = Depends(get_service)) -> dict:
    service.tracker.on_document_deleted(event.path)
    return {"status": "accepted"}


@router.post("/events/renamed", status_code=202)
async def document_renamed(event: RenameEvent, service: TrackerService = Depends(get_service)) -> dict:
    await service.tracker.on_document_renamed(event.old_path, event.path)
    return {"status": "accepted"}


@router.post("/events/focus", status_code=202)
async def focus_changed(event: FocusEvent, service: TrackerService = Depends(get_service)) -> dict:
    await service.tracker.on_focus_changed(event.path)
    return {"status": "accepted"}

"""HTTP API layer: snapshot and hourly history read endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from portal.api.deps import get_container, require_token
from portal.core.container import AppContainer
from portal.protocol.messages import HistoryResponse, SnapshotDto
from portal.telemetry.queries import clamp_hours

router = APIRouter(prefix="/api", tags=["metrics"], dependencies=[Depends(require_token)])


@router.get("/snapshot", response_model=SnapshotDto)
def get_snapshot(container: AppContainer = Depends(get_container)) -> SnapshotDto:
    return container.queries.snapshot()


@router.get("/history", response_model=HistoryResponse)
def get_history(
    hours: str | None = Query(default=None),
    container: AppContainer = Depends(get_container),
) -> HistoryResponse:
    # Bad values are clamped, not rejected, so the raw string is parsed here.
    hours_back = clamp_hours(hours)
    return HistoryResponse(hours=hours_back, rows=container.queries.history(hours_back))

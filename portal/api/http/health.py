"""HTTP API layer: unauthenticated liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from portal.protocol.messages import HealthResponse
from portal.telemetry.normalizer import utc_now_iso

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(ok=True, now=utc_now_iso())

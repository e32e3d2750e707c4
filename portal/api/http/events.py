"""HTTP API layer: ingestion boundary for single events, arrays, or `{events: [...]}` batches."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from portal.api.deps import get_container, require_token
from portal.api.errors import RequestBodyError
from portal.core.container import AppContainer
from portal.infra.observability.logger import get_logger
from portal.protocol.messages import IngestResponse

router = APIRouter(prefix="/api", tags=["events"], dependencies=[Depends(require_token)])
logger = get_logger(__name__)


async def _read_json_body(request: Request, max_bytes: int) -> Any:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise RequestBodyError("Request too large")

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise RequestBodyError("Request too large")
        chunks.append(chunk)

    body = b"".join(chunks)
    if not body.strip():
        return {}
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RequestBodyError("Invalid JSON") from exc


def _batch_items(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("events"), list):
        return payload["events"]
    return [payload]


@router.post("/events", response_model=IngestResponse)
async def ingest_events(
    request: Request,
    container: AppContainer = Depends(get_container),
) -> IngestResponse:
    payload = await _read_json_body(request, container.settings.max_body_bytes)
    items = _batch_items(payload)
    # SQLite writes and the state lock block; keep them off the event loop
    ingested = await run_in_threadpool(container.engine.ingest_batch, items)
    logger.info("api.events.ingested received=%s ingested=%s", len(items), ingested)
    snapshot = await run_in_threadpool(container.queries.snapshot)
    return IngestResponse(ok=True, ingested=ingested, snapshot=snapshot)

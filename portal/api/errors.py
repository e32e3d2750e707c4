"""API layer: error types and handlers rendering the `{ok: false, error}` envelope."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from portal.infra.db.event_log import EventLogError
from portal.infra.observability.logger import get_logger

logger = get_logger(__name__)


class RequestBodyError(ValueError):
    """Ingestion body is oversized or not valid JSON."""


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": message},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def _http_error(_: Request, exc: HTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestBodyError)
    async def _body_error(_: Request, exc: RequestBodyError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(EventLogError)
    async def _log_error(request: Request, exc: EventLogError) -> JSONResponse:
        logger.error("api.event_log.failed path=%s error=%s", request.url.path, exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, f"Event log unavailable: {exc}")

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("api.unhandled path=%s", request.url.path, exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

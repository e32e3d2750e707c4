"""FastAPI entrypoint: wires config, container, routes, and lifecycle hooks."""

from __future__ import annotations

from contextlib import asynccontextmanager
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from portal.api.errors import install_error_handlers
from portal.api.http.events import router as events_router
from portal.api.http.health import router as health_router
from portal.api.http.metrics import router as metrics_router
from portal.core.config import Settings
from portal.core.container import build_container
from portal.core.lifecycle import on_shutdown, on_startup
from portal.infra.observability.logger import get_logger, setup_logging

access_logger = get_logger("uvicorn.access")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    container = build_container(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        on_startup(container)
        try:
            yield
        finally:
            on_shutdown(container)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        start = perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers.setdefault("Cache-Control", "no-store")
            return response
        finally:
            duration_ms = (perf_counter() - start) * 1000
            # tokens may travel in the query string; log the path only
            client_ip = request.client.host if request.client else "-"
            access_logger.info(
                '%s "%s %s" %s %.2fms',
                client_ip,
                request.method,
                request.url.path,
                status_code,
                duration_ms,
            )

    install_error_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(events_router)

    return app

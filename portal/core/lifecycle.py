"""Lifecycle hooks: state recovery on startup, log close on shutdown."""

from __future__ import annotations

from portal.core.container import AppContainer
from portal.infra.observability.logger import get_logger
from portal.telemetry.recovery import recover

logger = get_logger(__name__)


def on_startup(container: AppContainer) -> None:
    settings = container.settings
    report = recover(
        container.engine,
        container.event_log,
        seed_path=settings.seed_path,
        limit=settings.recovery_limit,
    )
    logger.info(
        "Portal ready: db=%s restored=%s seeded=%s auth=%s",
        container.event_log.path,
        report.restored,
        report.seeded,
        "on" if settings.auth_enabled else "off",
    )


def on_shutdown(container: AppContainer) -> None:
    container.event_log.close()
    logger.info("OpenClaw metrics portal shutdown complete.")

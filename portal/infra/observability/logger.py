"""Observability layer: centralized logger setup for API, ingestion and collector tracing."""

from __future__ import annotations

import logging

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def resolve_level(level: str | None) -> str:
    """Map an env-provided level name onto a logging level, INFO when unrecognized."""
    normalized = (level or "").strip().upper()
    if normalized == "WARN":
        return "WARNING"
    return normalized if normalized in _LEVELS else "INFO"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger once for single-line console output shared with uvicorn."""
    normalized = resolve_level(level)
    logging.basicConfig(
        level=normalized,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        force=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(normalized)
        logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Return a module-level logger instance."""
    return logging.getLogger(name)

"""Run the portal API with uvicorn using env-driven settings."""

from __future__ import annotations

import uvicorn

from portal.core.config import Settings
from portal.infra.observability.logger import resolve_level


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run(
        "portal.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=resolve_level(settings.log_level).lower(),
    )


if __name__ == "__main__":
    main()

"""CLI: `python -m portal.collector [--once]`."""

from __future__ import annotations

import argparse

from portal.collector.forwarder import CollectorSettings, HttpEventPoster, LogForwarder
from portal.infra.observability.logger import setup_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Forward OpenClaw log lines to the metrics portal.")
    parser.add_argument("--once", action="store_true", help="ship pending lines once and exit")
    args = parser.parse_args(argv)

    settings = CollectorSettings.from_env()
    setup_logging(settings.log_level)
    forwarder = LogForwarder(settings.log_file, HttpEventPoster(settings))
    if args.once:
        forwarder.tick()
        return 0
    try:
        forwarder.run(settings.poll_seconds)
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

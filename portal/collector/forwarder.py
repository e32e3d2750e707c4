"""Collector: tail an OpenClaw log file and forward parsed events to the portal."""

from __future__ import annotations

import json
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib import error, request

from portal.collector.parser import parse_line
from portal.infra.observability.logger import get_logger

logger = get_logger(__name__)

PostEvents = Callable[[list[dict[str, Any]]], None]


class ForwardError(RuntimeError):
    """Raised when the portal rejects or cannot receive a batch."""


@dataclass(frozen=True)
class CollectorSettings:
    """Runtime config for the log forwarder."""

    log_file: Path = Path("openclaw.log")
    portal_url: str = "http://localhost:4040/api/events"
    api_token: str = ""
    poll_seconds: float = 1.0
    timeout_seconds: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "CollectorSettings":
        return cls(
            log_file=Path(os.getenv("OPENCLAW_LOG_FILE", str(Path.cwd() / cls.log_file))),
            portal_url=os.getenv("PORTAL_URL", cls.portal_url),
            api_token=os.getenv("PORTAL_API_TOKEN", cls.api_token).strip(),
            poll_seconds=float(os.getenv("OPENCLAW_LOG_POLL_MS", str(cls.poll_seconds * 1000))) / 1000,
            timeout_seconds=float(os.getenv("PORTAL_TIMEOUT_SECONDS", str(cls.timeout_seconds))),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


class HttpEventPoster:
    """POST `{events: [...]}` batches to the portal ingestion endpoint."""

    def __init__(self, settings: CollectorSettings) -> None:
        self._settings = settings

    def __call__(self, events: list[dict[str, Any]]) -> None:
        if not events:
            return
        body = json.dumps({"events": events}).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self._settings.api_token:
            headers["Authorization"] = f"Bearer {self._settings.api_token}"

        req = request.Request(self._settings.portal_url, data=body, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self._settings.timeout_seconds) as resp:
                resp.read()
        except error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ForwardError(f"portal responded {exc.code}: {detail}") from exc
        except (error.URLError, TimeoutError) as exc:
            raise ForwardError(f"portal unreachable: {exc}") from exc


class LogForwarder:
    """Ship complete new lines since the last successful post.

    The offset only advances after the portal accepted the batch, so a failed
    post is retried on the next poll (at-least-once delivery).
    """

    def __init__(self, log_file: Path, post: PostEvents, *, position: int = 0) -> None:
        self._log_file = log_file
        self._post = post
        self._position = position

    @property
    def position(self) -> int:
        return self._position

    def ship_new_lines(self) -> int:
        """Forward events from lines appended since the last call; return how many were sent."""
        if not self._log_file.exists():
            return 0

        size = self._log_file.stat().st_size
        if size < self._position:
            logger.info("collector.truncated path=%s resetting offset", self._log_file)
            self._position = 0
        if size == self._position:
            return 0

        with self._log_file.open("rb") as handle:
            handle.seek(self._position)
            chunk = handle.read(size - self._position)

        end = chunk.rfind(b"\n")
        if end < 0:
            return 0
        complete = chunk[: end + 1]

        events = []
        for line in complete.decode("utf-8", errors="replace").splitlines():
            event = parse_line(line)
            if event is not None:
                events.append(event)

        if events:
            self._post(events)
            logger.info("collector.shipped count=%s", len(events))
        self._position += len(complete)
        return len(events)

    def tick(self) -> None:
        try:
            self.ship_new_lines()
        except (ForwardError, OSError) as exc:
            logger.error("collector.tick.failed error=%s", exc)

    def run(self, poll_seconds: float) -> None:
        logger.info("collector.watching path=%s", self._log_file)
        while True:
            self.tick()
            time.sleep(poll_seconds)

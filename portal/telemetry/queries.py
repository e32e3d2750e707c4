"""Query layer: snapshot and hourly history views; never mutates state."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from portal.infra.db.event_log import SqliteEventLog
from portal.protocol.messages import (
    AgentDto,
    CountsDto,
    EventDto,
    HistoryRowDto,
    JobDto,
    SessionDto,
    SnapshotDto,
    UsageDto,
)
from portal.telemetry.normalizer import CanonicalEvent, Usage, utc_now
from portal.telemetry.state import AgentRecord, AggregationState, JobRecord, SessionRecord

MIN_HISTORY_HOURS = 1
MAX_HISTORY_HOURS = 168
DEFAULT_HISTORY_HOURS = 24


def clamp_hours(value: object, default: int = DEFAULT_HISTORY_HOURS) -> int:
    """Lenient `hours` parsing: non-numeric -> default, rounded, clamped to [1, 168]."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    return max(MIN_HISTORY_HOURS, min(MAX_HISTORY_HOURS, int(round(number))))


def _usage_dto(usage: Usage) -> UsageDto:
    return UsageDto(
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        cached_tokens=usage.cached_tokens,
    )


def _event_dto(event: CanonicalEvent) -> EventDto:
    return EventDto(
        ts=event.ts,
        type=event.type,
        agent_id=event.agent_id,
        model=event.model,
        host=event.host,
        status=event.status,
        job_id=event.job_id,
        job_status=event.job_status,
        session_id=event.session_id,
        session_status=event.session_status,
        usage=_usage_dto(event.usage),
    )


def _agent_dto(agent: AgentRecord) -> AgentDto:
    return AgentDto(
        agent_id=agent.agent_id,
        model=agent.model,
        host=agent.host,
        status=agent.status,
        job_id=agent.job_id,
        session_id=agent.session_id,
        updated_at=agent.updated_at,
        usage_total=_usage_dto(agent.usage_total),
        usage_by_model={model: _usage_dto(usage) for model, usage in agent.usage_by_model.items()},
    )


def _job_dto(job: JobRecord) -> JobDto:
    return JobDto(
        job_id=job.job_id,
        status=job.status,
        started_at=job.started_at,
        updated_at=job.updated_at,
        agent_ids=list(job.agent_ids),
        session_ids=list(job.session_ids),
    )


def _session_dto(session: SessionRecord) -> SessionDto:
    return SessionDto(
        session_id=session.session_id,
        status=session.status,
        created_at=session.created_at,
        updated_at=session.updated_at,
        usage_total=_usage_dto(session.usage_total),
        agent_ids=list(session.agent_ids),
    )


class QueryService:
    """Read-side assembly over the aggregation state and the durable log."""

    def __init__(
        self,
        state: AggregationState,
        event_log: SqliteEventLog,
        *,
        recent_limit: int = 50,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._state = state
        self._event_log = event_log
        self._recent_limit = max(0, recent_limit)
        self._clock = clock

    def snapshot(self) -> SnapshotDto:
        with self._state.lock:
            agents = list(self._state.agents.values())
            totals = Usage()
            by_model: dict[str, Usage] = {}
            for agent in agents:
                totals = totals + agent.usage_total
                for model, usage in agent.usage_by_model.items():
                    by_model[model] = by_model.get(model, Usage()) + usage
            recent = list(self._state.recent_events)[: self._recent_limit]
            return SnapshotDto(
                last_updated=self._state.last_updated,
                totals=_usage_dto(totals),
                counts=CountsDto(
                    agents=len(agents),
                    jobs=len(self._state.jobs),
                    sessions=len(self._state.sessions),
                ),
                by_model={model: _usage_dto(usage) for model, usage in by_model.items()},
                agents=[_agent_dto(agent) for agent in agents],
                jobs=[_job_dto(job) for job in self._state.jobs.values()],
                sessions=[_session_dto(session) for session in self._state.sessions.values()],
                recent_events=[_event_dto(event) for event in recent],
            )

    def history(self, hours_back: int) -> list[HistoryRowDto]:
        hours = clamp_hours(hours_back)
        rows = self._event_log.history(hours, now=self._clock())
        return [
            HistoryRowDto(
                hour=row.hour,
                model=row.model,
                input_tokens=row.input_tokens,
                output_tokens=row.output_tokens,
                cached_tokens=row.cached_tokens,
            )
            for row in rows
        ]

"""Derived state: in-memory agent/job/session projections folded from canonical events.

Field rules per entity:

- Agent: model/host/status/job_id/session_id are last-write-wins, but only when
  the event supplies a value; updated_at follows the event ts; usage_total and
  usage_by_model only ever accumulate.
- Job: status takes job_status, else status, else keeps the prior value;
  started_at is fixed at creation; agent_ids/session_ids only grow.
- Session: status takes session_status only; created_at is fixed at creation;
  usage_total accumulates; agent_ids only grow.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from threading import Lock

from portal.telemetry.normalizer import UNKNOWN_MODEL, CanonicalEvent, Usage

DEFAULT_AGENT_HOST = "local"
DEFAULT_AGENT_STATUS = "idle"
DEFAULT_JOB_STATUS = "queued"
DEFAULT_SESSION_STATUS = "active"


def _add_member(members: dict[str, None], value: str | None) -> None:
    # dict keys act as an insertion-ordered set
    if value:
        members.setdefault(value, None)


@dataclass
class AgentRecord:
    agent_id: str
    model: str
    host: str
    status: str
    job_id: str | None
    session_id: str | None
    updated_at: str
    usage_total: Usage = field(default_factory=Usage)
    usage_by_model: dict[str, Usage] = field(default_factory=dict)


@dataclass
class JobRecord:
    job_id: str
    status: str
    started_at: str
    updated_at: str
    agent_ids: dict[str, None] = field(default_factory=dict)
    session_ids: dict[str, None] = field(default_factory=dict)


@dataclass
class SessionRecord:
    session_id: str
    status: str
    created_at: str
    updated_at: str
    usage_total: Usage = field(default_factory=Usage)
    agent_ids: dict[str, None] = field(default_factory=dict)


class AggregationState:
    """Owned container for derived tables, the recent-events ring and its lock.

    Writers (the aggregation engine) and readers (the query service) must hold
    `lock` for the whole of one event's mutation or one snapshot's read.
    """

    def __init__(self, max_recent_events: int = 500) -> None:
        self.lock = Lock()
        self.agents: dict[str, AgentRecord] = {}
        self.jobs: dict[str, JobRecord] = {}
        self.sessions: dict[str, SessionRecord] = {}
        self.recent_events: deque[CanonicalEvent] = deque(maxlen=max(1, max_recent_events))
        self.last_updated: str | None = None

    def upsert_agent(self, event: CanonicalEvent) -> AgentRecord | None:
        if not event.agent_id:
            return None
        agent = self.agents.get(event.agent_id)
        if agent is None:
            agent = AgentRecord(
                agent_id=event.agent_id,
                model=event.model or UNKNOWN_MODEL,
                host=event.host or DEFAULT_AGENT_HOST,
                status=event.status or DEFAULT_AGENT_STATUS,
                job_id=event.job_id,
                session_id=event.session_id,
                updated_at=event.ts,
            )
            self.agents[event.agent_id] = agent

        agent.model = event.model or agent.model
        agent.host = event.host or agent.host
        agent.status = event.status or agent.status
        agent.job_id = event.job_id or agent.job_id
        agent.session_id = event.session_id or agent.session_id
        agent.updated_at = event.ts
        agent.usage_total = agent.usage_total + event.usage

        model_key = agent.model or UNKNOWN_MODEL
        agent.usage_by_model[model_key] = agent.usage_by_model.get(model_key, Usage()) + event.usage
        return agent

    def upsert_job(self, event: CanonicalEvent) -> JobRecord | None:
        if not event.job_id:
            return None
        job = self.jobs.get(event.job_id)
        if job is None:
            job = JobRecord(
                job_id=event.job_id,
                status=event.job_status or DEFAULT_JOB_STATUS,
                started_at=event.ts,
                updated_at=event.ts,
            )
            self.jobs[event.job_id] = job

        job.status = event.job_status or event.status or job.status
        job.updated_at = event.ts
        _add_member(job.agent_ids, event.agent_id)
        _add_member(job.session_ids, event.session_id)
        return job

    def upsert_session(self, event: CanonicalEvent) -> SessionRecord | None:
        if not event.session_id:
            return None
        session = self.sessions.get(event.session_id)
        if session is None:
            session = SessionRecord(
                session_id=event.session_id,
                status=event.session_status or DEFAULT_SESSION_STATUS,
                created_at=event.ts,
                updated_at=event.ts,
            )
            self.sessions[event.session_id] = session

        session.status = event.session_status or session.status
        session.updated_at = event.ts
        session.usage_total = session.usage_total + event.usage
        _add_member(session.agent_ids, event.agent_id)
        return session

    def apply(self, event: CanonicalEvent) -> None:
        """Fold one event into all three tables, agent -> job -> session."""
        self.upsert_agent(event)
        self.upsert_job(event)
        self.upsert_session(event)

    def remember(self, event: CanonicalEvent) -> None:
        """Push onto the newest-first ring; the deque evicts the oldest on overflow."""
        self.recent_events.appendleft(event)

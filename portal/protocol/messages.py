"""Protocol layer: response DTOs shared by the API routes and the query service."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base DTO: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UsageDto(CamelModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cached_tokens: int = 0


class EventDto(CamelModel):
    """Canonical event as exposed in `recentEvents`."""

    ts: str
    type: str
    agent_id: str | None = None
    model: str | None = None
    host: str | None = None
    status: str | None = None
    job_id: str | None = None
    job_status: str | None = None
    session_id: str | None = None
    session_status: str | None = None
    usage: UsageDto = Field(default_factory=UsageDto)


class AgentDto(CamelModel):
    agent_id: str
    model: str
    host: str
    status: str
    job_id: str | None = None
    session_id: str | None = None
    updated_at: str
    usage_total: UsageDto
    usage_by_model: dict[str, UsageDto] = Field(default_factory=dict)


class JobDto(CamelModel):
    job_id: str
    status: str
    started_at: str
    updated_at: str
    agent_ids: list[str] = Field(default_factory=list)
    session_ids: list[str] = Field(default_factory=list)


class SessionDto(CamelModel):
    session_id: str
    status: str
    created_at: str
    updated_at: str
    usage_total: UsageDto
    agent_ids: list[str] = Field(default_factory=list)


class CountsDto(BaseModel):
    agents: int = 0
    jobs: int = 0
    sessions: int = 0


class SnapshotDto(CamelModel):
    """Point-in-time read of derived state plus totals and recent activity."""

    last_updated: str | None = None
    totals: UsageDto
    counts: CountsDto
    by_model: dict[str, UsageDto] = Field(default_factory=dict)
    agents: list[AgentDto] = Field(default_factory=list)
    jobs: list[JobDto] = Field(default_factory=list)
    sessions: list[SessionDto] = Field(default_factory=list)
    recent_events: list[EventDto] = Field(default_factory=list)


class HistoryRowDto(CamelModel):
    hour: str
    model: str
    input_tokens: int
    output_tokens: int
    cached_tokens: int


class HistoryResponse(BaseModel):
    hours: int
    rows: list[HistoryRowDto]


class IngestResponse(BaseModel):
    ok: bool = True
    ingested: int
    snapshot: SnapshotDto


class HealthResponse(BaseModel):
    ok: bool = True
    now: str


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar, Generic, Literal, Optional, TypeVar, Union, get_args

from pydantic import BaseModel, ConfigDict, Field as PydanticField, TypeAdapter, ValidationInfo, field_validator
from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

ToolName = Literal["stopwatch", "countdown", "laptimer", "interval", "chess"]
TOOLS: tuple[str, ...] = get_args(ToolName)


# --- Persistence ---


class TimerSessionRecord(SQLModel, table=True):
    """Row in the remote document store. `details` is stored in the `metadata` column."""

    __tablename__ = "timer_sessions"

    id: str = Field(primary_key=True, index=True)
    user_id: str = Field(index=True)
    tool: str
    duration: int
    started_at: datetime = Field(index=True)
    details: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON, nullable=False))


# --- Tool metadata, one schema per tool ---


class ToolMetadata(BaseModel):
    """Base for tool metadata. Unknown keys are kept, null fields fall back to their defaults."""

    model_config = ConfigDict(extra="allow")

    @field_validator("*", mode="before", check_fields=False)
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name in cls.model_fields:
            return cls.model_fields[info.field_name].default
        return value


class StopwatchMetadata(ToolMetadata):
    pass


class LapTimerMetadata(ToolMetadata):
    lapCount: int = 0
    averageLap: float = 0
    consistency: float = 0  # population std-dev of lap durations
    fastestLap: float = 0
    slowestLap: float = 0


class CountdownMetadata(ToolMetadata):
    completed: bool = False
    pauses: int = 0
    target_duration: int = 0


class IntervalMetadata(ToolMetadata):
    rounds_completed: int = 0
    work_setting: int = 0  # seconds
    rest_setting: int = 0  # seconds
    completed: bool = False


class ChessMetadata(ToolMetadata):
    result: str = "reset"  # player_<n>_won | reset


METADATA_MODELS: dict[str, type[ToolMetadata]] = {
    "stopwatch": StopwatchMetadata,
    "laptimer": LapTimerMetadata,
    "countdown": CountdownMetadata,
    "interval": IntervalMetadata,
    "chess": ChessMetadata,
}


def parse_metadata(tool: str, metadata: Optional[dict]) -> ToolMetadata:
    try:
        model = METADATA_MODELS[tool]
    except KeyError:
        raise ValueError(f"Unknown tool: {tool!r}") from None
    return model.model_validate(metadata or {})


# --- Sessions: tagged union keyed by tool ---


class _SessionBase(BaseModel):
    id: str
    user_id: Optional[str] = None
    duration: int = PydanticField(ge=0)
    started_at: datetime

    @field_validator("started_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class StopwatchSession(_SessionBase):
    tool: Literal["stopwatch"]
    metadata: StopwatchMetadata = PydanticField(default_factory=StopwatchMetadata)


class LapTimerSession(_SessionBase):
    tool: Literal["laptimer"]
    metadata: LapTimerMetadata = PydanticField(default_factory=LapTimerMetadata)


class CountdownSession(_SessionBase):
    tool: Literal["countdown"]
    metadata: CountdownMetadata = PydanticField(default_factory=CountdownMetadata)


class IntervalSession(_SessionBase):
    tool: Literal["interval"]
    metadata: IntervalMetadata = PydanticField(default_factory=IntervalMetadata)


class ChessSession(_SessionBase):
    tool: Literal["chess"]
    metadata: ChessMetadata = PydanticField(default_factory=ChessMetadata)


TimerSession = Annotated[
    Union[StopwatchSession, LapTimerSession, CountdownSession, IntervalSession, ChessSession],
    PydanticField(discriminator="tool"),
]

_session_adapter: TypeAdapter = TypeAdapter(TimerSession)


def parse_session(data: dict) -> TimerSession:
    """Validate a stored mapping into its tool-specific session variant."""
    data = dict(data)
    if data.get("metadata") is None:
        data["metadata"] = {}
    return _session_adapter.validate_python(data)


def dump_session(session: TimerSession) -> dict:
    """JSON-ready mapping of a session; `user_id` is omitted when unset."""
    return session.model_dump(mode="json", exclude_none=True)


# --- Identity and degradable results ---


@dataclass(frozen=True)
class Identity:
    uid: str
    email: Optional[str] = None


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T
    degraded: ClassVar[bool] = False
    reason: ClassVar[Optional[str]] = None


@dataclass(frozen=True)
class Degraded(Generic[T]):
    """Best-available data after a store failure."""

    data: T
    reason: str
    degraded: ClassVar[bool] = True


StoreResult = Union[Ok[T], Degraded[T]]


# --- Analytics output ---


class ChartPoint(BaseModel):
    name: str
    date: str
    sessions: int
    hours: float
    conversion_rate: float = 0
    avg_lap_seconds: float = 0
    total_rounds: int = 0


class Metric(BaseModel):
    label: str
    value: str


class SummaryStats(BaseModel):
    total_sessions: int
    total_time: str
    avg_time: str


class AnalyticsReport(BaseModel):
    chart_series: list[ChartPoint]
    summary_stats: SummaryStats
    tool_metrics: list[Metric]
    brief: str


class SessionLogEntry(BaseModel):
    id: str
    date: str
    time: str
    tool: str
    duration: str
    details: list[Metric]

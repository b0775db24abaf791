"""
Analytics over recorded sessions: merged history, date-range filtering,
per-day buckets, summary stats, per-tool metrics and the performance brief.
"""
import re
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Literal, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from models import (
    AnalyticsReport,
    ChartPoint,
    Degraded,
    Identity,
    Metric,
    Ok,
    SessionLogEntry,
    StoreResult,
    SummaryStats,
    TimerSession,
    parse_session,
)
from stores import LocalSessionCache, SessionStore

RangeMode = Literal["week", "month", "all-time", "custom"]

ALL_TOOLS = "all"
ALL_TIME_FALLBACK = date(2020, 1, 1)
END_OF_DAY = time(23, 59, 59, 999000)

NO_SESSIONS_BRIEF = "Ready to start tracking? Complete a session to see your performance summary here."

COUNT_KEYS = {"lapCount", "rounds_completed", "pauses", "rounds"}
MS_KEYS = {"averageLap", "fastestLap", "slowestLap", "consistency", "target_duration", "duration", "total_time"}


def format_duration(ms: float) -> str:
    """Milliseconds as H:MM:SS."""
    ms = max(0, int(ms))
    hours, rest = divmod(ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds = rest // 1000
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def session_date(session: TimerSession) -> date:
    return session.started_at.astimezone(timezone.utc).date()


def session_time(session: TimerSession) -> str:
    return session.started_at.astimezone(timezone.utc).strftime("%H:%M:%S")


def sort_newest_first(sessions: Iterable[TimerSession]) -> list[TimerSession]:
    return sorted(sessions, key=lambda s: s.started_at, reverse=True)


def _parse_all(records: Iterable[dict], source: str) -> list[TimerSession]:
    sessions = []
    for record in records:
        try:
            sessions.append(parse_session(record))
        except (ValidationError, ValueError) as e:
            logger.warning("Skipping malformed {} session {}: {}", source, record.get("id"), e)
    return sessions


class AnalyticsAggregator:
    def __init__(self, remote: SessionStore, local: LocalSessionCache):
        self.remote = remote
        self.local = local

    def get_sessions(self, identity: Optional[Identity] = None) -> StoreResult[list[TimerSession]]:
        """All visible sessions, newest first. Remote failures degrade to local-only."""
        local = _parse_all(self.local.load(), "local")
        if identity is None:
            return Ok(sort_newest_first(local))

        try:
            remote_records = self.remote.fetch_by_owner(identity.uid)
        except Exception as e:
            logger.warning("Analytics fetch failed, falling back to local cache: {}", e)
            return Degraded(sort_newest_first(local), f"Remote query failed: {e}")

        merged, seen = [], set()
        for session in _parse_all(remote_records, "remote") + local:
            if session.id in seen:
                continue
            seen.add(session.id)
            merged.append(session)
        return Ok(sort_newest_first(merged))


def resolve_range(
    mode: RangeMode,
    sessions: Sequence[TimerSession],
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> tuple[date, date]:
    """Start and end dates for a dashboard range preset."""
    if mode == "week":
        return today - timedelta(days=7), today
    if mode == "month":
        return today - timedelta(days=30), today
    if mode == "all-time":
        if not sessions:
            return ALL_TIME_FALLBACK, today
        return min(session_date(s) for s in sessions), today
    if mode == "custom":
        if start is None or end is None:
            raise ValueError("Custom range needs both start and end dates")
        # no ordering check: start after end simply yields no buckets
        return start, end
    raise ValueError(f"Unknown range mode: {mode!r}")


def filter_sessions(sessions: Sequence[TimerSession], tool: str, start: date, end: date) -> list[TimerSession]:
    """Sessions of `tool` (or all tools) inside [start, end], whole end day included."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end, END_OF_DAY, tzinfo=timezone.utc)
    return sort_newest_first(
        s for s in sessions
        if (tool == ALL_TOOLS or s.tool == tool) and lower <= s.started_at <= upper
    )


@dataclass
class _DayBucket:
    day: date
    count: int = 0
    duration: int = 0
    completed: int = 0
    pauses: int = 0
    lap_count: int = 0
    avg_lap: float = 0
    consistency: float = 0
    rounds: int = 0


def _day_buckets(start: date, end: date) -> dict[str, _DayBucket]:
    buckets = {}
    day = start
    while day <= end:
        buckets[day.isoformat()] = _DayBucket(day)
        day += timedelta(days=1)
    return buckets


MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _short_label(day: date) -> str:
    return f"{MONTH_ABBR[day.month - 1]} {day.day}"


@dataclass
class _Totals:
    count: int = 0
    duration: int = 0
    completed: int = 0
    pauses: int = 0
    laps: int = 0
    avg_lap_sum: float = 0
    consistency_sum: float = 0
    rounds: int = 0


def _accumulate(bucket: _DayBucket, totals: _Totals, session: TimerSession, tool: str) -> None:
    bucket.count += 1
    bucket.duration += session.duration
    totals.count += 1
    totals.duration += session.duration
    if tool != session.tool:
        return

    meta = session.metadata
    if session.tool == "countdown":
        if meta.completed:
            bucket.completed += 1
            totals.completed += 1
        bucket.pauses += meta.pauses
        totals.pauses += meta.pauses
    elif session.tool == "laptimer":
        bucket.lap_count += meta.lapCount
        bucket.avg_lap += meta.averageLap
        bucket.consistency += meta.consistency
        totals.laps += meta.lapCount
        totals.avg_lap_sum += meta.averageLap
        totals.consistency_sum += meta.consistency
    elif session.tool == "interval":
        bucket.rounds += meta.rounds_completed
        totals.rounds += meta.rounds_completed
        if meta.completed:
            bucket.completed += 1
            totals.completed += 1


def _chart_point(bucket: _DayBucket) -> ChartPoint:
    count = bucket.count
    return ChartPoint(
        name=_short_label(bucket.day),
        date=bucket.day.isoformat(),
        sessions=count,
        hours=round(bucket.duration / 3_600_000, 2),
        conversion_rate=round(bucket.completed / count * 100, 1) if count else 0,
        avg_lap_seconds=round(bucket.avg_lap / count / 1000, 2) if count else 0,
        total_rounds=bucket.rounds,
    )


def tool_metrics(tool: str, totals: _Totals) -> list[Metric]:
    """The three headline figures shown for the selected tool."""
    count = totals.count
    total_time = format_duration(totals.duration)
    avg_time = format_duration(totals.duration / count if count else 0)

    if tool == "countdown":
        rate = f"{totals.completed / count * 100:.1f}" if count else "0"
        return [
            Metric(label="Completion Rate", value=f"{rate}%"),
            Metric(label="Avg Interruptions", value=f"{totals.pauses / count:.1f}" if count else "0"),
            Metric(label="Focused Time", value=total_time),
        ]
    if tool == "laptimer":
        return [
            Metric(label="Avg Lap Time", value=format_duration(totals.avg_lap_sum / count if count else 0)),
            Metric(label="Consistency", value=format_duration(totals.consistency_sum / count if count else 0)),
            Metric(label="Total Laps", value=str(totals.laps)),
        ]
    if tool == "interval":
        return [
            Metric(label="Total Rounds", value=str(totals.rounds)),
            Metric(label="Workouts", value=str(count)),
            Metric(label="Active Time", value=total_time),
        ]
    if tool == "chess":
        return [
            Metric(label="Games Played", value=str(count)),
            Metric(label="Total Playtime", value=total_time),
            Metric(label="Avg Game Length", value=avg_time),
        ]
    return [
        Metric(label="Total Frequency", value=str(count)),
        Metric(label="Accumulated Time", value=total_time),
        Metric(label="Avg Duration", value=avg_time),
    ]


def intensity_tier(total_ms: int) -> str:
    hours = total_ms / 3_600_000
    if hours > 10:
        return "High Intensity"
    if hours > 2:
        return "Moderate"
    return "Light"


def performance_brief(totals: _Totals, usage: Counter) -> str:
    if totals.count == 0:
        return NO_SESSIONS_BRIEF
    top_tool = usage.most_common(1)[0][0]
    avg = format_duration(totals.duration / totals.count)
    return (
        f"You've had a {intensity_tier(totals.duration)} period with {totals.count} sessions. "
        f"Your primary focus was the {top_tool}, averaging {avg} per session."
    )


def aggregate(sessions: Sequence[TimerSession], tool: str, start: date, end: date) -> AnalyticsReport:
    """Chart series, summary stats, tool metrics and brief for one tool and date range."""
    buckets = _day_buckets(start, end)
    totals = _Totals()
    usage: Counter = Counter()

    for session in filter_sessions(sessions, tool, start, end):
        bucket = buckets.get(session_date(session).isoformat())
        if bucket is None:
            continue
        _accumulate(bucket, totals, session, tool)
        usage[session.tool] += 1

    return AnalyticsReport(
        chart_series=[_chart_point(b) for b in buckets.values()],
        summary_stats=SummaryStats(
            total_sessions=totals.count,
            total_time=format_duration(totals.duration),
            avg_time=format_duration(totals.duration / totals.count if totals.count else 0),
        ),
        tool_metrics=tool_metrics(tool, totals),
        brief=performance_brief(totals, usage),
    )


# --- Session log ---


def format_metadata_key(key: str) -> str:
    """`lapCount` -> `Lap Count`, `rounds_completed` -> `Rounds completed`."""
    label = re.sub(r"([A-Z])", r" \1", key).replace("_", " ").strip()
    return label[:1].upper() + label[1:]


def format_metadata_value(key: str, value) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if not isinstance(value, (int, float)):
        return str(value)
    if key in COUNT_KEYS:
        return str(int(value))
    if key in MS_KEYS or "lap" in key.lower():
        return f"{value / 1000:.2f}s"
    return f"{value:.2f}s"


def session_log(sessions: Iterable[TimerSession]) -> list[SessionLogEntry]:
    entries = []
    for session in sessions:
        details = [
            Metric(label=format_metadata_key(key), value=format_metadata_value(key, value))
            for key, value in session.metadata.model_dump().items()
        ]
        entries.append(
            SessionLogEntry(
                id=session.id,
                date=session_date(session).isoformat(),
                time=session_time(session),
                tool=session.tool,
                duration=format_duration(session.duration),
                details=details,
            )
        )
    return entries

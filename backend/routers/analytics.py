"""
Dashboard analytics: per-day chart series, summary stats, tool metrics,
performance brief, session log and CSV download.
"""
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from aggregator import ALL_TOOLS, aggregate, filter_sessions, resolve_range, session_log
from config import Settings, get_settings
from deps import get_history
from export import export_csv, export_filename
from models import TOOLS, StoreResult
from routers.sessions import LOCAL_ONLY_NOTICE

router = APIRouter(prefix="/api", tags=["analytics"])

RANGE_MODES = ("week", "month", "all-time", "custom")


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _resolve(tool: str, range_mode: str, start: Optional[date], end: Optional[date], sessions) -> tuple[date, date]:
    if tool != ALL_TOOLS and tool not in TOOLS:
        raise HTTPException(status_code=400, detail=f"Unknown tool: {tool}")
    if range_mode not in RANGE_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown range: {range_mode}")
    try:
        return resolve_range(range_mode, sessions, _today(), start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/analytics")
def get_analytics(
    tool: str = ALL_TOOLS,
    range_mode: str = Query(default="week", alias="range"),
    start: Optional[date] = None,
    end: Optional[date] = None,
    history: StoreResult = Depends(get_history),
):
    """Everything the dashboard renders for one tool filter and date range."""
    start_date, end_date = _resolve(tool, range_mode, start, end, history.data)
    report = aggregate(history.data, tool, start_date, end_date)
    filtered = filter_sessions(history.data, tool, start_date, end_date)
    return {
        "tool": tool,
        "range": {"mode": range_mode, "start": start_date, "end": end_date},
        **report.model_dump(),
        "sessions": [entry.model_dump() for entry in session_log(filtered)],
        "degraded": history.degraded,
        "notice": LOCAL_ONLY_NOTICE if history.degraded else None,
    }


@router.get("/analytics/export")
def export_analytics(
    tool: str = ALL_TOOLS,
    range_mode: str = Query(default="week", alias="range"),
    start: Optional[date] = None,
    end: Optional[date] = None,
    history: StoreResult = Depends(get_history),
    settings: Settings = Depends(get_settings),
):
    """Download the filtered sessions as CSV."""
    start_date, end_date = _resolve(tool, range_mode, start, end, history.data)
    filtered = filter_sessions(history.data, tool, start_date, end_date)
    filename = export_filename(settings.export_prefix, tool, _today())
    return Response(
        content=export_csv(filtered),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

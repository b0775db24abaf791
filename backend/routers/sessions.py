"""
Timer sessions: record a finished timing run and list the visible history.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from deps import get_history, get_identity, get_recorder
from models import Identity, StoreResult, ToolName, dump_session
from recorder import SessionRecorder, lap_analytics

router = APIRouter(prefix="/api", tags=["sessions"])

LOCAL_ONLY_NOTICE = "Showing local history only."


class RecordSessionRequest(BaseModel):
    tool: ToolName
    duration: float = Field(ge=0, allow_inf_nan=False, description="Elapsed milliseconds")
    metadata: dict[str, Any] = Field(default_factory=dict)
    # Cumulative lap marks, most recent first; laptimer only
    laps: Optional[list[float]] = None


@router.post("/sessions", status_code=201)
def record_session(
    req: RecordSessionRequest,
    recorder: SessionRecorder = Depends(get_recorder),
    identity: Optional[Identity] = Depends(get_identity),
):
    """Record a stopped, finished or reset timer run. Runs under a second are ignored."""
    metadata = req.metadata
    if req.tool == "laptimer" and req.laps is not None:
        metadata = {**metadata, **lap_analytics(req.laps).model_dump()}
    try:
        result = recorder.record(req.tool, req.duration, metadata, identity)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    session = result.data
    return {
        "recorded": session is not None,
        "session": dump_session(session) if session is not None else None,
        "degraded": result.degraded,
        "notice": result.reason,
    }


@router.get("/sessions")
def list_sessions(
    limit: Optional[int] = Query(default=None, ge=1),
    history: StoreResult = Depends(get_history),
):
    """List visible sessions (newest first): remote and local merged when signed in."""
    sessions = history.data if limit is None else history.data[:limit]
    return {
        "sessions": [dump_session(s) for s in sessions],
        "degraded": history.degraded,
        "notice": LOCAL_ONLY_NOTICE if history.degraded else None,
    }

"""
Session recording: turns a finished timing run into at most one stored
TimerSession, falling back to the local cache when the remote store fails.
"""
import math
import statistics
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from loguru import logger

from models import (
    Degraded,
    Identity,
    LapTimerMetadata,
    Ok,
    StoreResult,
    TimerSession,
    dump_session,
    parse_metadata,
    parse_session,
)
from stores import LocalSessionCache, SessionStore

# Shorter runs are accidental start/stop taps
MIN_SESSION_MS = 1000


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def lap_durations(marks: Sequence[float]) -> list[float]:
    """Per-lap durations from cumulative marks given most-recent-first."""
    chronological = list(reversed(marks))
    return [
        mark if i == 0 else mark - chronological[i - 1]
        for i, mark in enumerate(chronological)
    ]


def lap_analytics(marks: Sequence[float]) -> LapTimerMetadata:
    """Lap count, mean, population std-dev and extremes of the lap durations."""
    durations = lap_durations(marks)
    if not durations:
        return LapTimerMetadata()
    return LapTimerMetadata(
        lapCount=len(durations),
        averageLap=statistics.fmean(durations),
        consistency=statistics.pstdev(durations),
        fastestLap=min(durations),
        slowestLap=max(durations),
    )


class SessionRecorder:
    def __init__(
        self,
        remote: SessionStore,
        local: LocalSessionCache,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.remote = remote
        self.local = local
        self.clock = clock

    def record(
        self,
        tool: str,
        elapsed_ms: float,
        metadata: Optional[dict] = None,
        identity: Optional[Identity] = None,
    ) -> StoreResult[Optional[TimerSession]]:
        """
        Store one session for `tool`. Runs under MIN_SESSION_MS are ignored.
        Store failures never raise; they come back as Degraded.
        """
        meta = parse_metadata(tool, metadata)
        if not math.isfinite(elapsed_ms):
            raise ValueError(f"Elapsed time must be a finite number, got {elapsed_ms}")
        if elapsed_ms < MIN_SESSION_MS:
            logger.debug("Skipping {} session of {}ms", tool, elapsed_ms)
            return Ok(None)

        record = {
            "tool": tool,
            "duration": int(elapsed_ms),
            # time of recording, not of the run's start
            "started_at": self.clock().isoformat(),
            "metadata": meta.model_dump(),
        }

        if identity is None:
            return self._save_locally(record)

        try:
            doc_id = self.remote.add({**record, "user_id": identity.uid})
        except Exception as e:
            logger.warning("Remote write failed, saving session locally: {}", e)
            return self._save_locally(record, reason=f"Remote write failed: {e}")
        logger.debug("Recorded {} session {} for {}", tool, doc_id, identity.uid)
        return Ok(parse_session({**record, "id": doc_id, "user_id": identity.uid}))

    def _save_locally(self, record: dict, reason: Optional[str] = None) -> StoreResult[Optional[TimerSession]]:
        session = parse_session({**record, "id": str(uuid.uuid4())})
        try:
            self.local.append(dump_session(session))
        except Exception as e:
            logger.error("Failed to save session locally, dropping it: {}", e)
            return Degraded(None, f"Session could not be saved: {e}")
        if reason is not None:
            return Degraded(session, reason)
        return Ok(session)

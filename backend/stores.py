"""
Storage collaborators: the remote document store (SQLModel) and the local
key-value cache (a JSON file standing in for browser local storage).
"""
import json
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from loguru import logger
from sqlmodel import Session, select

from models import TimerSessionRecord

LOCAL_SESSIONS_KEY = "timetools_sessions"
SEEDED_FLAG_KEY = "timetools_visited"


class SessionStore(Protocol):
    """Remote document collection of session records."""

    def add(self, record: dict) -> str: ...

    def fetch_by_owner(self, user_id: str) -> list[dict]: ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class SqlSessionStore:
    """SessionStore backed by the `timer_sessions` table."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, record: dict) -> str:
        row = TimerSessionRecord(
            id=str(uuid.uuid4()),
            user_id=record["user_id"],
            tool=record["tool"],
            duration=int(record["duration"]),
            started_at=_to_utc(record["started_at"]),
            details=record.get("metadata") or {},
        )
        try:
            self.db.add(row)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return row.id

    def fetch_by_owner(self, user_id: str) -> list[dict]:
        statement = select(TimerSessionRecord).where(TimerSessionRecord.user_id == user_id)
        rows = self.db.exec(statement).all()
        return [
            {
                "id": row.id,
                "user_id": row.user_id,
                "tool": row.tool,
                "duration": row.duration,
                "started_at": row.started_at,
                "metadata": row.details,
            }
            for row in rows
        ]


def _to_utc(value) -> datetime:
    """Timezone-aware UTC datetime. Naive input is taken as UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class JsonFileStore:
    """KeyValueStore persisted as a single JSON object on disk."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                # the next set() overwrites the corrupt file
                logger.warning("Local store {} is corrupt, reading as empty: {}", self.path, e)
                return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)


class LocalSessionCache:
    """Append-only list of session records kept in a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._lock = threading.RLock()

    def load(self) -> list[dict]:
        """All cached records. Unreadable or corrupt data reads as empty."""
        try:
            raw = self.store.get(LOCAL_SESSIONS_KEY)
            data = json.loads(raw) if raw else []
        except (OSError, ValueError) as e:
            logger.warning("Local session cache unreadable, treating as empty: {}", e)
            return []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    def append(self, record: dict) -> None:
        self.extend([record])

    def extend(self, records: list[dict]) -> None:
        with self._lock:
            sessions = self.load()
            sessions.extend(records)
            self.store.set(LOCAL_SESSIONS_KEY, json.dumps(sessions))

    def extend_if_empty(self, factory: Callable[[], list[dict]]) -> int:
        """Write `factory()` only when the cache holds no records. Returns how many were written."""
        with self._lock:
            if self.load():
                return 0
            records = factory()
            self.extend(records)
            return len(records)

    def seed_once(self, factory: Callable[[], list[dict]]) -> int:
        """Fill an empty cache once per store, then set the seeded flag."""
        with self._lock:
            if self.is_seeded():
                return 0
            written = self.extend_if_empty(factory)
            self.mark_seeded()
            return written

    def is_seeded(self) -> bool:
        return self.store.get(SEEDED_FLAG_KEY) == "true"

    def mark_seeded(self) -> None:
        self.store.set(SEEDED_FLAG_KEY, "true")

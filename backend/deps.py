"""
FastAPI dependencies: caller identity and the stores, recorder and aggregator
built for each request.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from loguru import logger
from sqlmodel import Session

from aggregator import AnalyticsAggregator
from config import Settings, get_settings
from db import get_session
from models import Identity, StoreResult, TimerSession
from recorder import SessionRecorder
from seeder import seed_first_visit
from stores import JsonFileStore, LocalSessionCache, SessionStore, SqlSessionStore


def get_identity(
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    email: Optional[str] = Header(default=None, alias="X-User-Email"),
) -> Optional[Identity]:
    """Signed-in user from the auth proxy headers; None means anonymous."""
    user_id = (user_id or "").strip()
    if not user_id:
        return None
    return Identity(uid=user_id, email=email)


@lru_cache
def _local_cache(path: str) -> LocalSessionCache:
    return LocalSessionCache(JsonFileStore(path))


def get_local_cache(settings: Settings = Depends(get_settings)) -> LocalSessionCache:
    return _local_cache(settings.local_store_path)


def get_remote_store(db: Session = Depends(get_session)) -> SessionStore:
    return SqlSessionStore(db)


def get_recorder(
    remote: SessionStore = Depends(get_remote_store),
    local: LocalSessionCache = Depends(get_local_cache),
) -> SessionRecorder:
    return SessionRecorder(remote, local)


def get_aggregator(
    remote: SessionStore = Depends(get_remote_store),
    local: LocalSessionCache = Depends(get_local_cache),
) -> AnalyticsAggregator:
    return AnalyticsAggregator(remote, local)


def get_history(
    identity: Optional[Identity] = Depends(get_identity),
    aggregator: AnalyticsAggregator = Depends(get_aggregator),
    local: LocalSessionCache = Depends(get_local_cache),
    settings: Settings = Depends(get_settings),
) -> StoreResult[list[TimerSession]]:
    """Visible session history, seeding mock data on an anonymous first visit."""
    if identity is None and settings.seed_mock_data:
        try:
            seed_first_visit(local)
        except (OSError, ValueError) as e:
            logger.error("Could not seed mock data: {}", e)
    return aggregator.get_sessions(identity)

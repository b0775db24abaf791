"""
Synthetic history for a first visit, so the dashboard has something to show.
"""
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from loguru import logger

from models import dump_session, parse_session
from stores import LocalSessionCache

MOCK_TOOLS = ["stopwatch", "countdown", "interval", "laptimer"]
MOCK_DAYS = 30
MOCK_COUNT = 70


def _mock_session(rng: random.Random, now: datetime) -> dict:
    tool = rng.choice(MOCK_TOOLS)
    started_at = now - timedelta(days=rng.randrange(MOCK_DAYS))
    duration = rng.randrange(45 * 60 * 1000) + 5000
    metadata: dict = {}

    if tool == "interval":
        rounds = rng.randint(1, 8)
        metadata = {
            "rounds_completed": rounds,
            "work_setting": 20,
            "rest_setting": 10,
            "completed": rounds == 8,
        }
    elif tool == "countdown":
        metadata = {
            "completed": rng.random() > 0.4,
            "pauses": rng.randrange(5),
            "target_duration": 300_000,
        }
    elif tool == "laptimer":
        lap_count = rng.randint(1, 10)
        avg = rng.randrange(50_000) + 20_000
        metadata = {
            "lapCount": lap_count,
            "averageLap": avg,
            "consistency": rng.randrange(2_000_000) ** 0.5,
            "fastestLap": avg - 5000,
            "slowestLap": avg + 5000,
        }
        duration = lap_count * avg

    return dump_session(parse_session({
        "id": str(uuid.uuid4()),
        "tool": tool,
        "duration": duration,
        "started_at": started_at,
        "metadata": metadata,
    }))


def mock_sessions(
    count: int = MOCK_COUNT,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> list[dict]:
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    return [_mock_session(rng, now) for _ in range(count)]


def seed_mock_data(
    cache: LocalSessionCache,
    count: int = MOCK_COUNT,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> int:
    """Fill an empty local cache with `count` sessions. Returns how many were written."""
    written = cache.extend_if_empty(lambda: mock_sessions(count, now, rng))
    if written:
        logger.info("Seeded {} mock sessions into the local cache", written)
    return written


def seed_first_visit(cache: LocalSessionCache) -> int:
    """Seed once per local cache, guarded by the persistent seeded flag."""
    written = cache.seed_once(mock_sessions)
    if written:
        logger.info("Seeded {} mock sessions for a first visit", written)
    return written

"""
Tests for session recording and lap analytics.
"""
import uuid

import pytest
from pydantic import ValidationError

from models import Degraded, Identity, LapTimerMetadata, Ok
from recorder import SessionRecorder, lap_analytics, lap_durations
from stores import LocalSessionCache
from tests.conftest import FIXED_NOW
from tests.fakes import ReadOnlyKeyValueStore

USER = Identity(uid="user_1", email="ada@example.com")


class TestThreshold:
    @pytest.mark.parametrize("elapsed", [0, 1, 500, 999, 999.9])
    def test_sub_second_runs_are_ignored(self, recorder, remote, local_cache, elapsed):
        result = recorder.record("stopwatch", elapsed)

        assert result == Ok(None)
        assert local_cache.load() == []
        assert remote.docs == []

    def test_sub_second_with_identity_never_reaches_remote(self, recorder, remote):
        recorder.record("stopwatch", 999, identity=USER)
        assert remote.add_calls == 0

    @pytest.mark.parametrize("elapsed", [1000, 1500, 3_600_000])
    def test_one_second_or_more_is_recorded(self, recorder, local_cache, elapsed):
        result = recorder.record("stopwatch", elapsed)

        assert isinstance(result, Ok)
        assert result.data.duration == int(elapsed)
        assert len(local_cache.load()) == 1

    @pytest.mark.parametrize("elapsed", [float("inf"), float("nan")])
    def test_non_finite_elapsed_is_rejected(self, recorder, local_cache, elapsed):
        with pytest.raises(ValueError):
            recorder.record("stopwatch", elapsed)
        assert local_cache.load() == []


class TestDestination:
    def test_anonymous_writes_locally_only(self, recorder, remote, local_cache):
        result = recorder.record("stopwatch", 5000)

        assert result.degraded is False
        assert remote.add_calls == 0
        [stored] = local_cache.load()
        assert stored["tool"] == "stopwatch"
        assert stored["duration"] == 5000
        assert stored["metadata"] == {}
        assert "user_id" not in stored
        uuid.UUID(stored["id"])

    def test_identity_writes_remotely_only(self, recorder, remote, local_cache):
        result = recorder.record("countdown", 60_000, {"completed": True}, identity=USER)

        assert isinstance(result, Ok)
        assert local_cache.load() == []
        [doc] = remote.docs
        assert doc["user_id"] == "user_1"
        assert result.data.id == doc["id"]
        assert result.data.user_id == "user_1"

    def test_remote_failure_falls_back_to_local(self, failing_remote, local_cache):
        recorder = SessionRecorder(failing_remote, local_cache, clock=lambda: FIXED_NOW)

        result = recorder.record("interval", 120_000, {"rounds_completed": 4}, identity=USER)

        assert isinstance(result, Degraded)
        assert "permissions" in result.reason
        assert failing_remote.add_calls == 1
        assert failing_remote.docs == []
        [stored] = local_cache.load()
        assert stored["id"] == result.data.id
        assert stored["metadata"]["rounds_completed"] == 4

    def test_local_failure_drops_the_record(self, remote):
        cache = LocalSessionCache(ReadOnlyKeyValueStore())
        recorder = SessionRecorder(remote, cache, clock=lambda: FIXED_NOW)

        result = recorder.record("stopwatch", 5000)

        assert isinstance(result, Degraded)
        assert result.data is None
        assert cache.load() == []

    def test_started_at_is_time_of_recording(self, recorder):
        result = recorder.record("stopwatch", 90_000)
        assert result.data.started_at == FIXED_NOW


class TestMetadata:
    def test_unknown_tool_is_rejected(self, recorder):
        with pytest.raises(ValueError):
            recorder.record("metronome", 5000)

    def test_bad_metadata_is_rejected(self, recorder):
        with pytest.raises(ValidationError):
            recorder.record("countdown", 5000, {"pauses": "many"})

    def test_missing_fields_take_defaults(self, recorder, local_cache):
        recorder.record("countdown", 5000, {"completed": True})

        [stored] = local_cache.load()
        assert stored["metadata"] == {"completed": True, "pauses": 0, "target_duration": 0}

    def test_extra_fields_are_kept(self, recorder, local_cache):
        recorder.record("chess", 300_000, {"result": "player_2_won", "increment": 5})

        [stored] = local_cache.load()
        assert stored["metadata"] == {"result": "player_2_won", "increment": 5}


class TestLapAnalytics:
    def test_equal_laps(self):
        assert lap_durations([30000, 20000, 10000]) == [10000, 10000, 10000]
        meta = lap_analytics([30000, 20000, 10000])

        assert meta.lapCount == 3
        assert meta.averageLap == 10000
        assert meta.consistency == 0
        assert meta.fastestLap == meta.slowestLap == 10000

    def test_uneven_laps(self):
        # chronological marks 10s, 15s, 25s -> laps 10s, 5s, 10s
        meta = lap_analytics([25000, 15000, 10000])

        assert lap_durations([25000, 15000, 10000]) == [10000, 5000, 10000]
        assert meta.averageLap == pytest.approx(25000 / 3)
        assert meta.consistency == pytest.approx(2357.0226, rel=1e-6)
        assert meta.fastestLap == 5000
        assert meta.slowestLap == 10000

    def test_single_lap_is_its_own_mark(self):
        meta = lap_analytics([42000])
        assert meta.lapCount == 1
        assert meta.averageLap == 42000
        assert meta.consistency == 0

    def test_no_laps(self):
        assert lap_analytics([]) == LapTimerMetadata()

    def test_laptimer_round_trip(self, recorder, aggregator):
        recorder.record("laptimer", 30_000, lap_analytics([30000, 20000, 10000]).model_dump())

        [session] = aggregator.get_sessions().data
        assert session.metadata.lapCount == 3
        assert session.metadata.averageLap == 10000

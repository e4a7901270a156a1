from __future__ import annotations

from datetime import UTC, datetime

from aioturntable.models.track import Track
from aioturntable.server.history import HISTORY_CAPACITY, HistoryLog


def _track(n: int) -> Track:
    return Track(id=str(n), title=f"Track {n}")


def test_capacity_evicts_oldest() -> None:
    log = HistoryLog()
    for n in range(HISTORY_CAPACITY + 5):
        log.record(_track(n))
    assert len(log) == HISTORY_CAPACITY
    assert log.tail(HISTORY_CAPACITY)[0].track.id == "5"


def test_tail_is_oldest_first_and_recent_is_newest_first() -> None:
    log = HistoryLog()
    for n in range(30):
        log.record(_track(n))
    assert [e.track.id for e in log.tail()] == [str(n) for n in range(20, 30)]
    recent = log.recent()
    assert len(recent) == 20
    assert recent[0].track.id == "29"
    assert recent[-1].track.id == "10"


def test_short_history() -> None:
    log = HistoryLog()
    log.record(_track(1))
    assert [e.track.id for e in log.tail()] == ["1"]
    assert [e.track.id for e in log.recent()] == ["1"]
    assert log.tail(0) == []


def test_record_keeps_played_at() -> None:
    played_at = datetime(2024, 1, 1, tzinfo=UTC)
    entry = HistoryLog(capacity=3).record(_track(1), played_at)
    assert entry.played_at == played_at
    assert entry.to_dict()["played_at"] == "2024-01-01T00:00:00+00:00"

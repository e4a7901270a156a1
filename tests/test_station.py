from __future__ import annotations

import asyncio
import random

import orjson
import pytest

from aioturntable.exceptions import EmptyPlaylist, InvalidRange, NotFound
from aioturntable.models.core import ListenerCountMessage, RadioStateMessage, RadioStatePayload
from aioturntable.models.station import StationProfileUpdate
from aioturntable.models.track import Track, TrackUpdate
from aioturntable.models.types import PlaybackStateType, ServerMessage
from aioturntable.server.events import (
    PlaybackStateChangedEvent,
    PlaylistChangedEvent,
    StationEvent,
    StationProfileChangedEvent,
    TrackChangedEvent,
)
from aioturntable.server.station import RadioStation


class RecordingObserver:
    def __init__(self, connection_id: str) -> None:
        self._connection_id = connection_id
        self.messages: list[ServerMessage] = []

    @property
    def connection_id(self) -> str:
        return self._connection_id

    def send_message(self, message: ServerMessage) -> None:
        self.messages.append(message)

    def states(self) -> list[RadioStatePayload]:
        return [m.payload for m in self.messages if isinstance(m, RadioStateMessage)]

    def listener_counts(self) -> list[int]:
        return [m.payload.listeners for m in self.messages if isinstance(m, ListenerCountMessage)]


def _track(name: str, duration: float = 0) -> Track:
    return Track(id=name, title=name.upper(), duration=duration)


def _station(*tracks: Track) -> RadioStation:
    return RadioStation(asyncio.get_running_loop(), tracks=tracks, rng=random.Random(1))


def _current_id(station: RadioStation) -> str | None:
    return station.current_track.id if station.current_track else None


@pytest.mark.asyncio
async def test_play_on_empty_playlist_fails_then_plays_first_append() -> None:
    station = _station()
    with pytest.raises(EmptyPlaylist):
        await station.play()
    assert not station.is_playing

    await station.add_track(_track("a"))
    await station.play()
    assert station.is_playing
    assert station.current_index == 0
    assert _current_id(station) == "a"
    await station.close()


@pytest.mark.asyncio
async def test_timer_advances_and_resume_continues_after_cursor() -> None:
    station = _station(_track("a", 0.05), _track("b", 0))
    await station.play()
    assert _current_id(station) == "a"
    assert station.advance_pending

    await asyncio.sleep(0.2)
    assert _current_id(station) == "b"
    assert station.current_index == 1
    assert [entry.track.id for entry in station.recent_history()] == ["a"]
    # Unknown duration disables auto-advance
    assert not station.advance_pending

    await station.pause()
    assert not station.is_playing
    assert station.elapsed_time() == 0
    assert station.current_index == 1

    await station.play()
    assert _current_id(station) == "a"
    await station.close()


@pytest.mark.asyncio
async def test_advances_cycle_through_playlist() -> None:
    station = _station(_track("a"), _track("b"), _track("c"))
    await station.play()
    seen = [station.current_index]
    for _ in range(3):
        await station.next()
        seen.append(station.current_index)
    assert seen == [0, 1, 2, 0]
    await station.close()


@pytest.mark.asyncio
async def test_next_on_stopped_station_starts_playing() -> None:
    station = _station(_track("a"), _track("b"))
    await station.next()
    assert station.is_playing
    assert _current_id(station) == "a"
    await station.close()


@pytest.mark.asyncio
async def test_play_while_playing_is_a_noop() -> None:
    station = _station(_track("a"), _track("b"))
    await station.play()
    await station.play()
    assert _current_id(station) == "a"
    assert station.recent_history() == []
    await station.close()


@pytest.mark.asyncio
async def test_previous_arithmetic() -> None:
    station = _station(_track("a"), _track("b"), _track("c"))
    await station.play()
    await station.next()
    assert _current_id(station) == "b"
    await station.previous()
    assert _current_id(station) == "a"
    # From the first track previous wraps around to the last one
    await station.previous()
    assert _current_id(station) == "c"
    await station.close()


@pytest.mark.asyncio
async def test_play_track() -> None:
    station = _station(_track("a"), _track("b"), _track("c"))
    track = await station.play_track("c")
    assert track.id == "c"
    assert station.current_index == 2
    assert station.is_playing
    with pytest.raises(NotFound):
        await station.play_track("missing")
    await station.close()


@pytest.mark.asyncio
async def test_remove_current_while_playing_advances_and_records_once() -> None:
    station = _station(_track("a", 10), _track("b", 10), _track("c", 10))
    await station.play()
    removed = await station.remove_track("a")
    assert removed.id == "a"
    assert station.is_playing
    assert _current_id(station) == "b"
    assert station.current_index == 0
    assert [entry.track.id for entry in station.recent_history()] == ["a"]
    await station.close()


@pytest.mark.asyncio
async def test_remove_last_current_wraps_to_first() -> None:
    station = _station(_track("a"), _track("b"), _track("c"))
    await station.play_track("c")
    await station.remove_track("c")
    assert _current_id(station) == "a"
    assert station.current_index == 0
    await station.close()


@pytest.mark.asyncio
async def test_remove_before_cursor_keeps_current_track() -> None:
    station = _station(_track("a"), _track("b"), _track("c"))
    await station.play_track("c")
    await station.remove_track("a")
    assert station.current_index == 1
    assert _current_id(station) == "c"
    await station.remove_track("b")
    assert station.current_index == 0
    assert station.tracks[station.current_index].id == "c"
    await station.close()


@pytest.mark.asyncio
async def test_removing_every_track_stops_playback() -> None:
    station = _station(_track("a", 10), _track("b", 10))
    await station.play()
    await station.remove_track("b")
    assert station.is_playing
    await station.remove_track("a")
    assert not station.is_playing
    assert station.current_index is None
    assert station.current_track is None
    assert not station.advance_pending
    assert station.state == PlaybackStateType.STOPPED
    with pytest.raises(NotFound):
        await station.remove_track("a")
    await station.close()


@pytest.mark.asyncio
async def test_remove_current_while_paused_resumes_at_successor() -> None:
    station = _station(_track("a"), _track("b"), _track("c"))
    await station.play_track("b")
    await station.pause()
    await station.remove_track("b")
    assert not station.is_playing
    assert station.current_track is None
    await station.play()
    assert _current_id(station) == "c"
    await station.close()


@pytest.mark.asyncio
async def test_move_keeps_current_track_identity() -> None:
    station = _station(*(_track(n) for n in "abcde"))
    await station.play_track("c")
    await station.move_track(2, 0)
    assert station.current_index == 0
    await station.move_track(4, 0)
    assert station.current_index == 1
    await station.move_track(0, 4)
    assert station.current_index == 0
    assert station.tracks[station.current_index].id == "c"
    with pytest.raises(InvalidRange):
        await station.move_track(0, 5)
    await station.close()


@pytest.mark.asyncio
async def test_shuffle_resets_cursor_and_keeps_current_track_playing() -> None:
    station = _station(*(_track(n, 10) for n in "abcdef"))
    await station.play_track("d")
    ids_before = sorted(track.id for track in station.tracks)
    await station.shuffle()
    assert sorted(track.id for track in station.tracks) == ids_before
    assert station.current_index == 0
    assert _current_id(station) == "d"
    assert station.is_playing
    assert station.advance_pending
    await station.close()


@pytest.mark.asyncio
async def test_pause_cancels_pending_advance() -> None:
    station = _station(_track("a", 0.05), _track("b", 10))
    await station.play()
    await station.pause()
    await asyncio.sleep(0.15)
    assert not station.is_playing
    assert _current_id(station) == "a"
    assert station.recent_history() == []
    await station.close()


@pytest.mark.asyncio
async def test_manual_advance_discards_old_timer() -> None:
    station = _station(_track("a", 0.05), _track("b", 10), _track("c", 10))
    await station.play()
    await station.next()
    await asyncio.sleep(0.15)
    # The timer armed for "a" must not skip "b"
    assert _current_id(station) == "b"
    await station.close()


@pytest.mark.asyncio
async def test_join_sends_snapshot_then_listener_count() -> None:
    station = _station(_track("a", 10), _track("b", 10))
    await station.play()
    await asyncio.sleep(0.05)

    first = RecordingObserver("first")
    station.join(first)
    assert isinstance(first.messages[0], RadioStateMessage)
    snapshot = first.states()[0]
    assert snapshot.listeners == 1
    assert snapshot.current_track is not None
    assert snapshot.current_track.id == "a"
    assert 0.04 <= snapshot.elapsed_time < 1
    assert [summary.id for summary in snapshot.playlist] == ["a", "b"]
    assert first.listener_counts() == [1]

    second = RecordingObserver("second")
    station.join(second)
    assert second.states()[0].listeners == 2
    assert first.listener_counts() == [1, 2]
    assert station.listener_count == 2

    station.leave(second)
    station.leave(second)
    assert first.listener_counts() == [1, 2, 1]
    assert station.listener_count == 1
    await station.close()


@pytest.mark.asyncio
async def test_every_mutation_broadcasts_one_snapshot() -> None:
    station = _station(_track("a"), _track("b"), _track("c"))
    observer = RecordingObserver("obs")
    station.join(observer)
    observer.messages.clear()

    await station.play()
    await station.next()
    await station.previous()
    await station.move_track(0, 2)
    await station.shuffle()
    await station.update_track("a", TrackUpdate(title="Renamed"))
    await station.add_track(_track("d"))
    await station.add_tracks([_track("e"), _track("f")])
    await station.remove_track("f")
    await station.pause()
    await station.update_profile(StationProfileUpdate(name="Night Radio"))

    states = observer.states()
    assert len(states) == 11
    assert len(observer.messages) == 11
    assert states[-1].is_playing is False
    assert len(states[-1].playlist) == 5
    await station.close()


@pytest.mark.asyncio
async def test_snapshot_history_holds_last_ten_oldest_first() -> None:
    station = _station(*(_track(str(n)) for n in range(15)))
    await station.play()
    for _ in range(14):
        await station.next()
    history = station.snapshot().history
    assert [entry.track.id for entry in history] == [str(n) for n in range(4, 14)]
    assert len(station.recent_history()) == 14
    await station.close()


@pytest.mark.asyncio
async def test_editing_a_played_track_keeps_history_unchanged() -> None:
    station = _station(_track("a"), _track("b"))
    await station.play()
    await station.next()
    await station.update_track("a", TrackUpdate(title="Renamed later"))
    assert station.get_track("a").title == "Renamed later"
    assert station.recent_history()[0].track.title == "A"
    assert station.snapshot().history[0].track.title == "A"
    await station.close()


@pytest.mark.asyncio
async def test_queued_snapshot_is_not_affected_by_later_edits() -> None:
    station = _station(_track("a"), _track("b"))
    observer = RecordingObserver("one")
    station.join(observer)
    await station.play()
    queued = observer.messages[-1]
    assert isinstance(queued, RadioStateMessage)

    await station.update_track("a", TrackUpdate(title="Later"))
    assert station.current_track is not None
    assert station.current_track.title == "Later"
    assert queued.payload.current_track is not None
    assert queued.payload.current_track.title == "A"
    assert orjson.loads(queued.to_json())["payload"]["current_track"]["title"] == "A"
    assert observer.states()[-1].current_track.title == "Later"
    await station.close()


@pytest.mark.asyncio
async def test_events_are_signaled() -> None:
    station = _station(_track("a"))
    events: list[StationEvent] = []
    remove = station.add_event_listener(lambda _station, event: events.append(event))

    await station.play()
    await station.update_track("a", TrackUpdate(artist="Someone"))
    await station.update_profile(StationProfileUpdate(description="Late night"))
    await station.pause()
    remove()
    await station.play()

    assert [type(event) for event in events] == [
        PlaybackStateChangedEvent,
        TrackChangedEvent,
        PlaylistChangedEvent,
        StationProfileChangedEvent,
        PlaybackStateChangedEvent,
    ]
    assert events[0] == PlaybackStateChangedEvent(PlaybackStateType.PLAYING)
    assert events[-1] == PlaybackStateChangedEvent(PlaybackStateType.STOPPED)
    assert station.profile.description == "Late night"
    await station.close()


@pytest.mark.asyncio
async def test_concurrent_mutations_keep_cursor_valid() -> None:
    station = _station(*(_track(str(n), 0.01) for n in range(8)))
    await station.play()

    async def _churn(n: int) -> None:
        for _ in range(5):
            await station.next()
            await station.move_track(n % 8, (n * 3) % 8)
            await asyncio.sleep(0.005)

    await asyncio.gather(*(_churn(n) for n in range(4)))
    assert station.current_index is not None
    assert 0 <= station.current_index < len(station.tracks)
    assert station.is_playing
    await station.close()


@pytest.mark.asyncio
async def test_restore_replaces_state() -> None:
    station = _station(_track("a"))
    await station.play()
    await station.restore([_track("x"), _track("y")], None)
    assert not station.is_playing
    assert station.current_index is None
    assert [track.id for track in station.tracks] == ["x", "y"]
    assert station.profile.name == "My Radio Station"
    await station.close()

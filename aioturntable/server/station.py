"""The single global station: playlist, play cursor, history and their broadcast."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Iterable
from contextlib import suppress
from dataclasses import replace

from aioturntable.exceptions import EmptyPlaylist
from aioturntable.models.core import RadioStateMessage, RadioStatePayload, StatusPayload
from aioturntable.models.station import StationProfile, StationProfileUpdate
from aioturntable.models.track import HistoryEntry, Track, TrackUpdate
from aioturntable.models.types import PlaybackStateType

from .clock import PlaybackClock
from .events import (
    ListenerJoinedEvent,
    ListenerLeftEvent,
    PlaybackStateChangedEvent,
    PlaylistChangedEvent,
    StationEvent,
    StationProfileChangedEvent,
    TrackChangedEvent,
)
from .history import RECENT_HISTORY_SIZE, HistoryLog
from .playlist import PlaylistStore, cursor_after_move, cursor_after_remove
from .registry import ConnectionRegistry, Observer
from .scheduler import AdvanceScheduler

logger = logging.getLogger(__name__)


class RadioStation:
    """
    A virtual turntable that advances through the playlist on a wall-clock schedule.

    The station owns the playlist, the play cursor, the history and the pending
    advance timer as one aggregate. Every mutating operation holds the station lock
    for its whole read-modify-write and ends with exactly one broadcast of the new
    snapshot to all observers. No operation awaits while holding the lock.
    """

    _loop: asyncio.AbstractEventLoop
    _rng: random.Random | None
    _playlist: PlaylistStore
    _clock: PlaybackClock
    _history: HistoryLog
    _scheduler: AdvanceScheduler
    _connections: ConnectionRegistry
    _profile: StationProfile
    _lock: asyncio.Lock
    """Serializes all mutations, including timer-driven advances."""
    _event_cbs: list[Callable[[RadioStation, StationEvent], None]]

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        *,
        tracks: Iterable[Track] = (),
        profile: StationProfile | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize a stopped station.

        Args:
            loop: The asyncio event loop used for timers and elapsed time.
            tracks: Initial playlist.
            profile: Initial station profile, defaults are used if None.
            rng: Optional random source for shuffling.
        """
        self._loop = loop
        self._rng = rng
        self._playlist = PlaylistStore(tracks, rng=rng)
        self._clock = PlaybackClock()
        self._history = HistoryLog()
        self._scheduler = AdvanceScheduler(loop, self._on_advance_timer)
        self._connections = ConnectionRegistry()
        self._profile = profile or StationProfile()
        self._lock = asyncio.Lock()
        self._event_cbs = []
        logger.debug("RadioStation initialized with %d track(s)", len(self._playlist))

    # Read access

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """Read-only access to the event loop used by this station."""
        return self._loop

    @property
    def is_playing(self) -> bool:
        """Whether the station is advancing through the playlist."""
        return self._clock.is_playing

    @property
    def state(self) -> PlaybackStateType:
        """Current playback state."""
        return self._clock.state

    @property
    def current_index(self) -> int | None:
        """Index of the current track."""
        return self._clock.current_index

    @property
    def current_track(self) -> Track | None:
        """Record of the current track."""
        return self._clock.current_track

    @property
    def tracks(self) -> list[Track]:
        """All tracks in play order."""
        return self._playlist.tracks

    @property
    def profile(self) -> StationProfile:
        """Station profile."""
        return self._profile

    @property
    def connections(self) -> ConnectionRegistry:
        """Registry of connected observers."""
        return self._connections

    @property
    def listener_count(self) -> int:
        """Number of connected observers."""
        return self._connections.listener_count

    @property
    def advance_pending(self) -> bool:
        """Whether an automatic advance is scheduled."""
        return self._scheduler.armed

    def get_track(self, track_id: str) -> Track:
        """Return a track by id, raising NotFound if it is absent."""
        return self._playlist.get(track_id)

    def elapsed_time(self) -> float:
        """Seconds since the current track started, 0 when stopped."""
        return self._clock.elapsed(self._loop.time())

    def _current_track_copy(self) -> Track | None:
        track = self._clock.current_track
        return replace(track) if track is not None else None

    def snapshot(self) -> RadioStatePayload:
        """
        Build the serializable view of the station that observers receive.

        The view shares no mutable state with the station, so a message queued for
        a slow observer still shows the station as it was when it was built.
        """
        return RadioStatePayload(
            is_playing=self._clock.is_playing,
            current_track=self._current_track_copy(),
            listeners=self._connections.listener_count,
            playlist=self._playlist.summaries(),
            current_index=self._clock.current_index,
            elapsed_time=self.elapsed_time(),
            history=self._history.tail(),
        )

    def status(self) -> StatusPayload:
        """Build the short status summary."""
        return StatusPayload(
            is_playing=self._clock.is_playing,
            current_track=self._current_track_copy(),
            listeners=self._connections.listener_count,
            playlist_length=len(self._playlist),
            elapsed_time=self.elapsed_time(),
        )

    def recent_history(self, count: int = RECENT_HISTORY_SIZE) -> list[HistoryEntry]:
        """Return the last count played tracks, most recent first."""
        return self._history.recent(count)

    # Observers

    def join(self, observer: Observer) -> None:
        """Attach an observer, send it the current snapshot and announce the new count."""
        if self._connections.join(observer, self._state_message):
            self._signal_event(ListenerJoinedEvent(observer.connection_id))

    def leave(self, observer: Observer) -> None:
        """Detach an observer and announce the new count."""
        if self._connections.leave(observer):
            self._signal_event(ListenerLeftEvent(observer.connection_id))

    # Playback control

    async def play(self) -> None:
        """
        Start playback with the track after the last known position.

        Raises:
            EmptyPlaylist: If there is nothing to play.
        """
        async with self._lock:
            if len(self._playlist) == 0:
                raise EmptyPlaylist
            if self._clock.is_playing:
                logger.debug("Ignoring play, already playing")
                return
            self._advance()
            self._broadcast_state()

    async def pause(self) -> None:
        """Stop advancing, keeping the cursor."""
        async with self._lock:
            self._scheduler.cancel()
            was_playing = self._clock.is_playing
            self._clock.pause()
            if was_playing:
                logger.info("Playback paused")
                self._signal_event(PlaybackStateChangedEvent(PlaybackStateType.STOPPED))
            self._broadcast_state()

    async def next(self) -> None:
        """Skip to the next track."""
        async with self._lock:
            self._advance()
            self._broadcast_state()

    async def previous(self) -> None:
        """
        Go back to the track before the current one.

        The cursor is moved two positions back and then advanced by one. On
        playlists of one or two tracks this can replay the current track.
        """
        async with self._lock:
            cursor = self._clock.current_index
            target = (cursor if cursor is not None else -1) - 2
            if target < -1:
                target = len(self._playlist) - 2
            self._advance(from_index=target)
            self._broadcast_state()

    async def play_track(self, track_id: str) -> Track:
        """
        Jump to a specific track and start playing it.

        Raises:
            NotFound: If the track does not exist.
        """
        async with self._lock:
            index = self._playlist.index_of(track_id)
            self._advance(from_index=index - 1)
            self._broadcast_state()
            return self._playlist[index]

    # Playlist mutation

    async def add_track(self, track: Track) -> Track:
        """Append a track to the playlist."""
        async with self._lock:
            self._playlist.append(track)
            self._playlist_changed()
            return track

    async def add_tracks(self, tracks: Iterable[Track]) -> list[Track]:
        """Append several tracks with a single broadcast."""
        async with self._lock:
            added = self._playlist.insert_many(tracks)
            self._playlist_changed()
            return added

    async def remove_track(self, track_id: str) -> Track:
        """
        Remove a track from the playlist.

        Removing the current track while playing advances to the track that followed
        it, recording the removed track in the history. Emptying the playlist stops
        the station.

        Raises:
            NotFound: If the track does not exist.
        """
        async with self._lock:
            index, track = self._playlist.remove(track_id)
            cursor = self._clock.current_index
            if len(self._playlist) == 0:
                self._stop_empty()
            elif cursor is not None and index == cursor:
                if self._clock.is_playing:
                    self._advance(from_index=index - 1)
                else:
                    # Paused on the removed track, the next play starts at its successor
                    self._clock.current_index = index - 1 if index > 0 else None
                    self._clock.current_track = None
            else:
                self._clock.current_index = cursor_after_remove(cursor, index)
            logger.info("Removed track %s (%s)", track.title, track.id)
            self._playlist_changed()
            return track

    async def move_track(self, from_index: int, to_index: int) -> None:
        """
        Move the track at from_index to to_index, keeping the current track.

        Raises:
            InvalidRange: If either index is outside the playlist.
        """
        async with self._lock:
            self._playlist.move(from_index, to_index)
            self._clock.current_index = cursor_after_move(
                self._clock.current_index, from_index, to_index
            )
            self._playlist_changed()

    async def shuffle(self) -> None:
        """
        Shuffle the playlist and reset the cursor to the first position.

        The current track keeps playing until it ends; the cursor does not follow it.
        """
        async with self._lock:
            self._playlist.shuffle()
            self._clock.current_index = 0 if len(self._playlist) else None
            logger.info("Playlist shuffled")
            self._playlist_changed()

    async def update_track(self, track_id: str, update: TrackUpdate) -> Track:
        """
        Apply a partial display metadata update.

        Raises:
            NotFound: If the track does not exist.
        """
        async with self._lock:
            track = self._playlist.update_metadata(track_id, update)
            self._playlist_changed()
            return track

    async def update_profile(self, update: StationProfileUpdate) -> StationProfile:
        """Apply a partial station profile update and notify observers."""
        async with self._lock:
            self._profile.apply_update(update)
            self._signal_event(StationProfileChangedEvent())
            self._broadcast_state()
            return self._profile

    async def restore(self, tracks: Iterable[Track], profile: StationProfile | None) -> None:
        """Replace the playlist and profile with persisted state while stopped."""
        async with self._lock:
            self._scheduler.cancel()
            self._clock.reset()
            self._playlist = PlaylistStore(tracks, rng=self._rng)
            if profile is not None:
                self._profile = profile
            logger.info("Restored %d track(s)", len(self._playlist))
            self._broadcast_state()

    async def close(self) -> None:
        """Stop timers and wait for any running timer callbacks."""
        await self._scheduler.close()

    # Internals, called with the lock held

    def _advance(self, from_index: int | None = None) -> None:
        """
        Make the track after from_index (default: the cursor) current and play it.

        The previous current track goes to the history. The pending advance timer is
        always replaced, so there is never more than one.
        """
        self._scheduler.cancel()
        if len(self._playlist) == 0:
            self._stop_empty()
            return

        if self._clock.current_track is not None:
            self._history.record(self._clock.current_track)

        if from_index is None:
            from_index = self._clock.current_index if self._clock.current_index is not None else -1
        index = (from_index + 1) % len(self._playlist)
        track = self._playlist[index]
        was_playing = self._clock.is_playing
        self._clock.start(index, track, self._loop.time())

        if track.duration > 0:
            self._scheduler.arm(track.duration)

        logger.info("Now playing: %s by %s", track.title, track.artist)
        if not was_playing:
            self._signal_event(PlaybackStateChangedEvent(PlaybackStateType.PLAYING))
        self._signal_event(TrackChangedEvent(track=track, index=index))

    def _stop_empty(self) -> None:
        """Force the stopped state because there is nothing left to play."""
        self._scheduler.cancel()
        was_playing = self._clock.is_playing
        self._clock.reset()
        if was_playing:
            logger.info("Playlist is empty, playback stopped")
            self._signal_event(PlaybackStateChangedEvent(PlaybackStateType.STOPPED))

    def _playlist_changed(self) -> None:
        self._signal_event(PlaylistChangedEvent())
        self._broadcast_state()

    def _state_message(self) -> RadioStateMessage:
        return RadioStateMessage(payload=self.snapshot())

    def _broadcast_state(self) -> None:
        """Push the current snapshot to every observer."""
        self._connections.broadcast(self._state_message())

    async def _on_advance_timer(self, generation: int) -> None:
        """Advance because the current track ended, unless the timer went stale."""
        async with self._lock:
            if not self._scheduler.is_current(generation):
                logger.debug("Discarding stale advance #%d", generation)
                return
            if not self._clock.is_playing:
                return
            self._advance()
            self._broadcast_state()

    # Events

    def add_event_listener(
        self, callback: Callable[[RadioStation, StationEvent], None]
    ) -> Callable[[], None]:
        """
        Register a callback to listen for state changes of the station.

        State changes include:
        - Playback started or stopped
        - A new track became current
        - The playlist or the station profile changed
        - An observer joined or left

        Returns a function to remove the listener.
        """
        self._event_cbs.append(callback)

        def _remove() -> None:
            with suppress(ValueError):
                self._event_cbs.remove(callback)

        return _remove

    def _signal_event(self, event: StationEvent) -> None:
        """Signal an event to all registered listeners."""
        for cb in self._event_cbs:
            try:
                cb(self, event)
            except Exception:
                logger.exception("Error in event listener")

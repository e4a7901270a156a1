"""Play cursor of the station and derived elapsed time."""

from __future__ import annotations

from aioturntable.models.track import Track
from aioturntable.models.types import PlaybackStateType


class PlaybackClock:
    """
    Tracks whether the station is playing, which index is current and when it started.

    Instants are taken from a monotonic clock (the event loop time), so elapsed time
    is unaffected by wall-clock adjustments.
    """

    current_index: int | None
    """Index into the playlist, None before the first play or after the playlist emptied."""
    current_track: Track | None
    """Record of the current track, kept while paused."""
    started_at: float | None
    """Monotonic instant the current track started, None when not playing."""

    def __init__(self) -> None:
        """Initialize in the stopped state."""
        self.current_index = None
        self.current_track = None
        self.started_at = None

    @property
    def is_playing(self) -> bool:
        """Whether the current track is advancing."""
        return self.started_at is not None

    @property
    def state(self) -> PlaybackStateType:
        """Current playback state."""
        return PlaybackStateType.PLAYING if self.is_playing else PlaybackStateType.STOPPED

    def start(self, index: int, track: Track, now: float) -> None:
        """Make track at index current and start it at now."""
        self.current_index = index
        self.current_track = track
        self.started_at = now

    def pause(self) -> None:
        """Stop advancing, keeping the cursor and current track."""
        self.started_at = None

    def reset(self) -> None:
        """Forget the cursor and current track entirely."""
        self.current_index = None
        self.current_track = None
        self.started_at = None

    def elapsed(self, now: float) -> float:
        """Return seconds since the current track started, 0 when stopped."""
        if self.started_at is None:
            return 0.0
        return max(0.0, now - self.started_at)

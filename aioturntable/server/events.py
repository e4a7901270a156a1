"""Events emitted by the station to in-process listeners."""

from __future__ import annotations

from dataclasses import dataclass

from aioturntable.models.track import Track
from aioturntable.models.types import PlaybackStateType


class StationEvent:
    """Base event type used by RadioStation.add_event_listener()."""


@dataclass
class PlaybackStateChangedEvent(StationEvent):
    """The station started or stopped advancing."""

    state: PlaybackStateType


@dataclass
class TrackChangedEvent(StationEvent):
    """A new track became current."""

    track: Track
    index: int


@dataclass
class PlaylistChangedEvent(StationEvent):
    """Tracks were added, removed, reordered or edited."""


@dataclass
class StationProfileChangedEvent(StationEvent):
    """The station profile was updated."""


@dataclass
class ListenerJoinedEvent(StationEvent):
    """An observer connected."""

    connection_id: str


@dataclass
class ListenerLeftEvent(StationEvent):
    """An observer disconnected."""

    connection_id: str

"""Public interface for the aioturntable server package."""

from .events import (
    ListenerJoinedEvent,
    ListenerLeftEvent,
    PlaybackStateChangedEvent,
    PlaylistChangedEvent,
    StationEvent,
    StationProfileChangedEvent,
    TrackChangedEvent,
)
from .listener import ListenerConnection
from .registry import ConnectionRegistry, Observer
from .server import DEFAULT_HOST, DEFAULT_PORT, RadioServer
from .station import RadioStation

__all__ = [
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "ConnectionRegistry",
    "ListenerConnection",
    "ListenerJoinedEvent",
    "ListenerLeftEvent",
    "Observer",
    "PlaybackStateChangedEvent",
    "PlaylistChangedEvent",
    "RadioServer",
    "RadioStation",
    "StationEvent",
    "StationProfileChangedEvent",
    "TrackChangedEvent",
]

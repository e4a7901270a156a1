"""Models for the aioturntable station and its observer channel."""

from __future__ import annotations

__all__ = [
    "AddPlaylistRequest",
    "AddUrlRequest",
    "HistoryEntry",
    "ListenerCountMessage",
    "ListenerCountPayload",
    "PlaybackStateType",
    "RadioStateMessage",
    "RadioStatePayload",
    "ReorderRequest",
    "ServerMessage",
    "StationProfile",
    "StationProfileUpdate",
    "StatusPayload",
    "Track",
    "TrackSummary",
    "TrackUpdate",
    "UndefinedField",
    "core",
    "station",
    "track",
    "types",
    "undefined_field",
]

from . import core, station, track, types
from .core import (
    AddPlaylistRequest,
    AddUrlRequest,
    ListenerCountMessage,
    ListenerCountPayload,
    RadioStateMessage,
    RadioStatePayload,
    ReorderRequest,
    StatusPayload,
)
from .station import StationProfile, StationProfileUpdate
from .track import HistoryEntry, Track, TrackSummary, TrackUpdate
from .types import (
    PlaybackStateType,
    ServerMessage,
    UndefinedField,
    undefined_field,
)

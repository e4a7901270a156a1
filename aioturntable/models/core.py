"""
Core messages and payloads of aioturntable.

This module contains the snapshot pushed to every observer, the listener count
update, the status summary returned by the control surface, and the request
bodies accepted by the control surface.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .track import HistoryEntry, Track, TrackSummary
from .types import ServerMessage

_CAMEL_CASE_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake_case_keys(d: dict[str, Any]) -> dict[str, Any]:
    """Accept camelCase keys sent by browser clients next to snake_case ones."""
    converted: dict[str, Any] = {}
    for key, value in d.items():
        snake = _CAMEL_CASE_BOUNDARY.sub("_", key).lower()
        if snake != key and snake in d:
            # Explicit snake_case key wins
            continue
        converted[snake] = value
    return converted


# Server -> Observer: radioState
@dataclass
class RadioStatePayload(DataClassORJSONMixin):
    """Snapshot of the station as seen by every observer."""

    is_playing: bool
    """Whether the turntable is currently advancing."""
    current_track: Track | None
    """Full record of the current track, None when nothing was played yet."""
    listeners: int
    """Number of connected observers."""
    playlist: list[TrackSummary]
    """Ordered playlist, reduced to display-safe fields."""
    current_index: int | None
    """Position of the current track in the playlist."""
    elapsed_time: float
    """Seconds since the current track started, 0 when stopped."""
    history: list[HistoryEntry]
    """Most recent history entries, oldest first."""


@dataclass
class RadioStateMessage(ServerMessage):
    """Message sent to observers after every mutation and on join."""

    payload: RadioStatePayload
    type: Literal["radioState"] = "radioState"


# Server -> Observer: listenerCount
@dataclass
class ListenerCountPayload(DataClassORJSONMixin):
    """Updated listener count."""

    listeners: int


@dataclass
class ListenerCountMessage(ServerMessage):
    """Message sent to observers whenever an observer joins or leaves."""

    payload: ListenerCountPayload
    type: Literal["listenerCount"] = "listenerCount"


# Control surface: GET /status
@dataclass
class StatusPayload(DataClassORJSONMixin):
    """Short status summary of the station."""

    is_playing: bool
    current_track: Track | None
    listeners: int
    playlist_length: int
    elapsed_time: float


# Control surface request bodies
@dataclass
class ReorderRequest(DataClassORJSONMixin):
    """Move the track at from_index to to_index."""

    from_index: int
    to_index: int

    @classmethod
    def __pre_deserialize__(cls, d: dict[str, Any]) -> dict[str, Any]:
        """Accept both snake_case and camelCase field names."""
        return _snake_case_keys(d)


@dataclass
class AddUrlRequest(DataClassORJSONMixin):
    """Add a track that plays from an external URL."""

    url: str | None = None
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    genre: str | None = None
    duration: float | None = None
    cover: str | None = None

    @classmethod
    def __pre_deserialize__(cls, d: dict[str, Any]) -> dict[str, Any]:
        """Accept both snake_case and camelCase field names."""
        return _snake_case_keys(d)


@dataclass
class AddPlaylistRequest(DataClassORJSONMixin):
    """Add several online tracks at once."""

    tracks: list[AddUrlRequest] = field(default_factory=list)

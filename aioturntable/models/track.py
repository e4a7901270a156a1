"""
Track models.

A track is one playable item of the station playlist, either a file stored by
the media library or an external URL. Display metadata can be edited after
creation; the source location cannot.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from mashumaro.mixins.orjson import DataClassORJSONMixin

from .types import UndefinedField, undefined_field

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
UNKNOWN_GENRE = "Unknown"
ONLINE_TITLE = "Online Track"
ONLINE_ALBUM = "Online"
ONLINE_GENRE = "Online"
IMPORTED_ALBUM = "Imported Playlist"


def new_track_id() -> str:
    """Return a fresh unique track identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current wall-clock time in UTC."""
    return datetime.now(UTC)


@dataclass
class Track(DataClassORJSONMixin):
    """An entry in the station playlist."""

    id: str
    """Opaque unique identifier, assigned at creation."""
    title: str
    artist: str = UNKNOWN_ARTIST
    album: str = UNKNOWN_ALBUM
    genre: str = UNKNOWN_GENRE
    year: int | None = None
    duration: float = 0
    """Duration in seconds, 0 means unknown and disables auto-advance."""
    bitrate: int = 0
    sample_rate: int = 0
    cover: str | None = None
    """Cover art as data URI or external image URL."""
    filename: str | None = None
    """Name of the stored media file, None for online tracks."""
    original_name: str = ""
    path: str = ""
    """Public location of the audio: /uploads/<filename> or the external URL."""
    is_online: bool = False
    added_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Clamp negative durations to unknown."""
        if self.duration < 0:
            self.duration = 0

    @classmethod
    def online(
        cls,
        url: str,
        *,
        title: str | None = None,
        artist: str | None = None,
        album: str | None = None,
        genre: str | None = None,
        duration: float | None = None,
        cover: str | None = None,
    ) -> Track:
        """Create a track that plays from an external URL."""
        return cls(
            id=new_track_id(),
            title=title or ONLINE_TITLE,
            artist=artist or UNKNOWN_ARTIST,
            album=album or ONLINE_ALBUM,
            genre=genre or ONLINE_GENRE,
            duration=duration or 0,
            cover=cover or None,
            original_name=url,
            path=url,
            is_online=True,
        )

    def summary(self) -> TrackSummary:
        """Reduce the track to the fields that are safe to show to observers."""
        return TrackSummary(
            id=self.id,
            title=self.title,
            artist=self.artist,
            album=self.album,
            duration=self.duration,
            cover=self.cover,
        )

    def apply_update(self, update: TrackUpdate) -> None:
        """Apply the fields present in a partial metadata update."""
        if not isinstance(update.title, UndefinedField):
            self.title = update.title
        if not isinstance(update.artist, UndefinedField):
            self.artist = update.artist
        if not isinstance(update.album, UndefinedField):
            self.album = update.album
        if not isinstance(update.genre, UndefinedField):
            self.genre = update.genre
        if not isinstance(update.year, UndefinedField):
            self.year = update.year


@dataclass
class TrackSummary(DataClassORJSONMixin):
    """Display-safe view of a track, without storage details."""

    id: str
    title: str
    artist: str
    album: str
    duration: float
    cover: str | None = None


@dataclass
class HistoryEntry(DataClassORJSONMixin):
    """A track that was played, with the moment it stopped being current."""

    track: Track
    played_at: datetime


@dataclass
class TrackUpdate(DataClassORJSONMixin):
    """
    Partial update of display metadata.

    Fields missing from the request body stay undefined and leave the track
    unchanged. An empty string is a regular value and is applied.
    """

    title: str | UndefinedField = field(default_factory=undefined_field)
    artist: str | UndefinedField = field(default_factory=undefined_field)
    album: str | UndefinedField = field(default_factory=undefined_field)
    genre: str | UndefinedField = field(default_factory=undefined_field)
    year: int | None | UndefinedField = field(default_factory=undefined_field)

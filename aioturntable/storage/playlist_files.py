"""Parsing of M3U and PLS playlist files into online track entries."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath

from aioturntable.exceptions import InvalidUpload
from aioturntable.models.track import (
    IMPORTED_ALBUM,
    ONLINE_GENRE,
    ONLINE_TITLE,
    UNKNOWN_ARTIST,
    Track,
)

M3U_EXTENSIONS = frozenset({".m3u", ".m3u8"})
PLS_EXTENSIONS = frozenset({".pls"})

_EXTINF = re.compile(r"#EXTINF:(-?\d+),(.+)")
_PLS_FILE = re.compile(r"^File(\d+)=(.+)$", re.IGNORECASE)
_PLS_TITLE = re.compile(r"^Title(\d+)=(.+)$", re.IGNORECASE)
_PLS_LENGTH = re.compile(r"^Length(\d+)=(-?\d+)", re.IGNORECASE)


@dataclass
class PlaylistEntry:
    """One entry of an imported playlist file."""

    url: str
    title: str | None = None
    """Display title as found in the file, possibly "Artist - Title"."""
    duration: float = 0

    def to_track(self) -> Track:
        """Create an online track, splitting "Artist - Title" when present."""
        title = self.title or ONLINE_TITLE
        artist = UNKNOWN_ARTIST
        if self.title and " - " in self.title:
            artist, _, title = self.title.partition(" - ")
            artist = artist.strip()
            title = title.strip()
        return Track.online(
            self.url,
            title=title,
            artist=artist,
            album=IMPORTED_ALBUM,
            genre=ONLINE_GENRE,
            duration=self.duration,
        )


def _lines(content: str) -> list[str]:
    return [line.strip() for line in content.splitlines() if line.strip()]


def parse_m3u(content: str) -> list[PlaylistEntry]:
    """Parse an (extended) M3U playlist, keeping only http(s) entries."""
    entries: list[PlaylistEntry] = []
    title: str | None = None
    duration = 0
    for line in _lines(content):
        if line.startswith("#EXTINF:"):
            if match := _EXTINF.match(line):
                duration = max(int(match.group(1)), 0)
                title = match.group(2).strip()
        elif line.startswith(("http://", "https://")):
            entries.append(PlaylistEntry(url=line, title=title, duration=duration))
            title = None
            duration = 0
    return entries


def parse_pls(content: str) -> list[PlaylistEntry]:
    """Parse a PLS playlist, ordering entries by their number."""
    raw: dict[int, dict[str, str | int]] = {}
    for line in _lines(content):
        if match := _PLS_FILE.match(line):
            raw.setdefault(int(match.group(1)), {})["url"] = match.group(2).strip()
        elif match := _PLS_TITLE.match(line):
            raw.setdefault(int(match.group(1)), {})["title"] = match.group(2).strip()
        elif match := _PLS_LENGTH.match(line):
            raw.setdefault(int(match.group(1)), {})["duration"] = max(int(match.group(2)), 0)

    entries: list[PlaylistEntry] = []
    for number in sorted(raw):
        fields = raw[number]
        url = fields.get("url")
        if not isinstance(url, str):
            continue
        title = fields.get("title")
        entries.append(
            PlaylistEntry(
                url=url,
                title=title if isinstance(title, str) else None,
                duration=int(fields.get("duration", 0)),
            )
        )
    return entries


def is_playlist_file(name: str) -> bool:
    """Check if a file name has a supported playlist extension."""
    return PurePath(name).suffix.lower() in M3U_EXTENSIONS | PLS_EXTENSIONS


def parse_playlist(name: str, content: str) -> list[PlaylistEntry]:
    """
    Parse a playlist file, choosing the format by its extension.

    Raises:
        InvalidUpload: If the extension is not .m3u, .m3u8 or .pls.
    """
    extension = PurePath(name).suffix.lower()
    if extension in M3U_EXTENSIONS:
        return parse_m3u(content)
    if extension in PLS_EXTENSIONS:
        return parse_pls(content)
    raise InvalidUpload("Unsupported playlist format, expected .m3u, .m3u8 or .pls")

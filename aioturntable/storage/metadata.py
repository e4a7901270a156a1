"""Metadata extraction from stored audio files."""

from __future__ import annotations

import asyncio
import base64
import logging
import re
import types
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path, PurePath
from typing import TYPE_CHECKING, Any

from PIL import Image

from aioturntable.models.track import (
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    UNKNOWN_GENRE,
    Track,
    new_track_id,
)

if TYPE_CHECKING:
    from .media import StoredFile

logger = logging.getLogger(__name__)

COVER_SIZE = 300
_YEAR_PATTERN = re.compile(r"\d{4}")


def _get_av() -> types.ModuleType:
    """Lazy import of av module to avoid slow startup."""
    import av as _av  # noqa: PLC0415

    return _av


@dataclass
class AudioMetadata:
    """Display metadata and technical properties read from an audio file."""

    title: str
    artist: str = UNKNOWN_ARTIST
    album: str = UNKNOWN_ALBUM
    genre: str = UNKNOWN_GENRE
    year: int | None = None
    duration: float = 0
    """Duration in seconds, 0 if it could not be determined."""
    bitrate: int = 0
    sample_rate: int = 0
    cover: str | None = None
    """Embedded cover art as JPEG data URI."""

    @classmethod
    def defaults(cls, original_name: str) -> AudioMetadata:
        """Metadata used when the file has no readable tags."""
        return cls(title=PurePath(original_name).stem or original_name)

    def to_track(self, stored: StoredFile) -> Track:
        """Create the playlist entry for a stored upload."""
        return Track(
            id=new_track_id(),
            title=self.title,
            artist=self.artist,
            album=self.album,
            genre=self.genre,
            year=self.year,
            duration=self.duration,
            bitrate=self.bitrate,
            sample_rate=self.sample_rate,
            cover=self.cover,
            filename=stored.filename,
            original_name=stored.original_name,
            path=stored.public_path,
            is_online=False,
        )


def _parse_year(value: str | None) -> int | None:
    if not value:
        return None
    match = _YEAR_PATTERN.search(value)
    return int(match.group()) if match else None


def _encode_cover(data: bytes) -> str | None:
    """
    Shrink embedded artwork to a JPEG data URI.

    NOTE: This method is not async friendly.
    """
    with Image.open(BytesIO(data)) as image:
        image.thumbnail((COVER_SIZE, COVER_SIZE), Image.Resampling.LANCZOS)
        with BytesIO() as img_bytes:
            image.convert("RGB").save(img_bytes, format="JPEG", quality=85)
            encoded = base64.b64encode(img_bytes.getvalue()).decode()
    return f"data:image/jpeg;base64,{encoded}"


def _read_cover(container: Any) -> str | None:
    """Return the attached picture of the container, if any."""
    for stream in container.streams.video:
        for packet in container.demux(stream):
            data = bytes(packet)
            if data:
                return _encode_cover(data)
            break
    return None


def extract_metadata(path: Path, original_name: str) -> AudioMetadata:
    """
    Read tags, duration and cover art of an audio file.

    Never raises: unreadable files yield the defaults (title from the file name).

    NOTE: This method is not async friendly.
    """
    metadata = AudioMetadata.defaults(original_name)
    av = _get_av()
    try:
        with av.open(str(path)) as container:
            tags: dict[str, str] = {}
            audio = container.streams.audio[0] if container.streams.audio else None
            if audio is not None:
                tags.update({k.lower(): v for k, v in audio.metadata.items()})
            # Container tags take precedence over stream tags
            tags.update({k.lower(): v for k, v in container.metadata.items()})

            metadata.title = tags.get("title") or metadata.title
            metadata.artist = tags.get("artist") or tags.get("album_artist") or metadata.artist
            metadata.album = tags.get("album") or metadata.album
            metadata.genre = tags.get("genre") or metadata.genre
            metadata.year = _parse_year(tags.get("date") or tags.get("year"))

            if container.duration is not None:
                metadata.duration = container.duration / av.time_base
            elif audio is not None and audio.duration is not None and audio.time_base:
                metadata.duration = float(audio.duration * audio.time_base)
            metadata.bitrate = int(container.bit_rate or 0)
            if audio is not None:
                metadata.sample_rate = int(audio.codec_context.sample_rate or 0)

            try:
                metadata.cover = _read_cover(container)
            except Exception:  # noqa: BLE001
                logger.debug("Could not read cover art of %s", original_name, exc_info=True)
    except Exception as err:  # noqa: BLE001
        logger.warning("Could not read metadata of %s: %s", original_name, err)
        return AudioMetadata.defaults(original_name)

    logger.debug(
        "Extracted metadata of %s: %s by %s (%.1fs)",
        original_name,
        metadata.title,
        metadata.artist,
        metadata.duration,
    )
    return metadata


async def async_extract_metadata(path: Path, original_name: str) -> AudioMetadata:
    """Extract metadata in a worker thread."""
    return await asyncio.to_thread(extract_metadata, path, original_name)

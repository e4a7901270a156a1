"""HTTP control surface of the station."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar
from urllib.parse import unquote

import orjson
from aiohttp import BodyPartReader, web
from mashumaro.exceptions import InvalidFieldValue, MissingField
from mashumaro.mixins.orjson import DataClassORJSONMixin

from aioturntable.exceptions import InvalidRequest, InvalidUpload, InvalidURL, TurntableError
from aioturntable.models.core import AddPlaylistRequest, AddUrlRequest, ReorderRequest
from aioturntable.models.station import StationProfileUpdate
from aioturntable.models.track import Track, TrackUpdate
from aioturntable.storage.media import CHUNK_SIZE, MediaLibrary
from aioturntable.storage.metadata import async_extract_metadata
from aioturntable.storage.playlist_files import is_playlist_file, parse_playlist
from aioturntable.util import validate_url

from .station import RadioStation

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
MAX_FILES_PER_UPLOAD = 50
MAX_PLAYLIST_FILE_SIZE = 1024 * 1024
UPLOAD_FIELD = "audio"
PLAYLIST_FIELD = "playlist"

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]
_ModelT = TypeVar("_ModelT", bound=DataClassORJSONMixin)


def json_response(data: Any, status: int = 200) -> web.Response:
    """Serialize plain data or models with orjson."""
    if isinstance(data, DataClassORJSONMixin):
        body = data.to_jsonb()
    else:
        body = orjson.dumps(data)
    return web.Response(body=body, status=status, content_type="application/json")


def error_response(message: str, status: int) -> web.Response:
    """Render an error the way every endpoint reports failures."""
    return json_response({"error": message}, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Translate station errors into JSON error responses."""
    try:
        return await handler(request)
    except TurntableError as err:
        if err.status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, err)
        else:
            logger.debug("%s %s rejected: %s", request.method, request.path, err)
        return error_response(str(err), err.status)
    except web.HTTPException:
        raise
    except Exception:
        logger.exception("Unexpected error handling %s %s", request.method, request.path)
        return error_response("Internal server error", 500)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        data = await request.json(loads=orjson.loads)
    except ValueError as err:
        raise InvalidRequest("Invalid JSON body") from err
    if not isinstance(data, dict):
        raise InvalidRequest("Expected a JSON object")
    return data


def _parse_body(model: type[_ModelT], data: dict[str, Any]) -> _ModelT:
    try:
        return model.from_dict(data)
    except (MissingField, InvalidFieldValue, TypeError, ValueError) as err:
        raise InvalidRequest(str(err)) from err


async def _iter_chunks(part: BodyPartReader) -> AsyncIterator[bytes]:
    while chunk := await part.read_chunk(CHUNK_SIZE):
        yield chunk


async def _file_parts(
    request: web.Request, field_name: str
) -> AsyncIterator[tuple[str, BodyPartReader]]:
    """
    Yield the file parts of a multipart request that belong to field_name.

    Each part comes with its decoded file name, clients may percent-encode it.
    """
    if not request.content_type.startswith("multipart/"):
        return
    reader = await request.multipart()
    async for part in reader:
        if not isinstance(part, BodyPartReader):
            continue
        if part.name != field_name or not part.filename:
            continue
        yield unquote(part.filename), part


def _success(**data: Any) -> web.Response:
    return json_response({"success": True, **data})


def _track_list(tracks: list[Track]) -> list[dict[str, Any]]:
    return [track.to_dict() for track in tracks]


class ControlRoutes:
    """Request handlers of the control surface, bound to one station."""

    _station: RadioStation
    _media: MediaLibrary

    def __init__(self, station: RadioStation, media: MediaLibrary) -> None:
        """
        Initialize the handlers.

        Args:
            station: The station every request operates on.
            media: Storage for uploaded audio files.
        """
        self._station = station
        self._media = media

    def register(self, app: web.Application, prefix: str = API_PREFIX) -> None:
        """Add all control routes to app under prefix."""
        app.router.add_get(f"{prefix}/status", self.get_status)
        app.router.add_get(f"{prefix}/playlist", self.get_playlist)
        app.router.add_post(f"{prefix}/upload", self.upload)
        app.router.add_post(f"{prefix}/upload-multiple", self.upload_multiple)
        app.router.add_put(f"{prefix}/track/{{track_id}}", self.update_track)
        app.router.add_delete(f"{prefix}/track/{{track_id}}", self.delete_track)
        app.router.add_post(f"{prefix}/playlist/reorder", self.reorder)
        app.router.add_post(f"{prefix}/playlist/shuffle", self.shuffle)
        app.router.add_post(f"{prefix}/control/play", self.play)
        app.router.add_post(f"{prefix}/control/pause", self.pause)
        app.router.add_post(f"{prefix}/control/next", self.next)
        app.router.add_post(f"{prefix}/control/previous", self.previous)
        app.router.add_post(f"{prefix}/control/play/{{track_id}}", self.play_track)
        app.router.add_post(f"{prefix}/add-url", self.add_url)
        app.router.add_post(f"{prefix}/add-playlist", self.add_playlist)
        app.router.add_post(f"{prefix}/import-playlist", self.import_playlist)
        app.router.add_get(f"{prefix}/history", self.get_history)
        app.router.add_get(f"{prefix}/station", self.get_station)
        app.router.add_put(f"{prefix}/station", self.update_station)

    # Read endpoints

    async def get_status(self, request: web.Request) -> web.Response:
        """Return the short status summary."""
        return json_response(self._station.status())

    async def get_playlist(self, request: web.Request) -> web.Response:
        """Return all tracks with their full records."""
        return json_response(_track_list(self._station.tracks))

    async def get_history(self, request: web.Request) -> web.Response:
        """Return the most recently played tracks, newest first."""
        return json_response([entry.to_dict() for entry in self._station.recent_history()])

    async def get_station(self, request: web.Request) -> web.Response:
        """Return the station profile."""
        return json_response(self._station.profile)

    # Uploads

    async def _store_and_describe(self, filename: str, part: BodyPartReader) -> Track:
        stored = await self._media.store(filename, _iter_chunks(part))
        metadata = await async_extract_metadata(stored.path, stored.original_name)
        return metadata.to_track(stored)

    async def upload(self, request: web.Request) -> web.Response:
        """Store one audio file and append it to the playlist."""
        async for filename, part in _file_parts(request, UPLOAD_FIELD):
            track = await self._store_and_describe(filename, part)
            await self._station.add_track(track)
            return _success(track=track.to_dict())
        raise InvalidUpload("No file uploaded")

    async def upload_multiple(self, request: web.Request) -> web.Response:
        """Store several audio files and append them with a single broadcast."""
        tracks: list[Track] = []
        try:
            async for filename, part in _file_parts(request, UPLOAD_FIELD):
                if len(tracks) >= MAX_FILES_PER_UPLOAD:
                    raise InvalidUpload(f"Too many files, at most {MAX_FILES_PER_UPLOAD} allowed")
                tracks.append(await self._store_and_describe(filename, part))
        except Exception:
            # Nothing was added to the playlist, do not leave orphaned files behind,
            # also when the client aborts mid-request
            for track in tracks:
                if track.filename is not None:
                    await self._media.delete(track.filename)
            raise
        if not tracks:
            raise InvalidUpload("No files uploaded")
        added = await self._station.add_tracks(tracks)
        return _success(tracks=_track_list(added), count=len(added))

    # Track and playlist mutation

    async def update_track(self, request: web.Request) -> web.Response:
        """Apply a partial metadata update to one track."""
        update = _parse_body(TrackUpdate, await _read_json(request))
        track = await self._station.update_track(request.match_info["track_id"], update)
        return _success(track=track.to_dict())

    async def delete_track(self, request: web.Request) -> web.Response:
        """Remove a track and delete its stored file."""
        track = await self._station.remove_track(request.match_info["track_id"])
        if track.filename is not None:
            await self._media.delete(track.filename)
        return _success()

    async def reorder(self, request: web.Request) -> web.Response:
        """Move one track to another position."""
        body = _parse_body(ReorderRequest, await _read_json(request))
        await self._station.move_track(body.from_index, body.to_index)
        return _success()

    async def shuffle(self, request: web.Request) -> web.Response:
        """Shuffle the playlist."""
        await self._station.shuffle()
        return _success()

    # Playback control

    async def play(self, request: web.Request) -> web.Response:
        """Start playback."""
        await self._station.play()
        return _success()

    async def pause(self, request: web.Request) -> web.Response:
        """Stop playback, keeping the position."""
        await self._station.pause()
        return _success()

    async def next(self, request: web.Request) -> web.Response:
        """Skip to the next track."""
        await self._station.next()
        return _success()

    async def previous(self, request: web.Request) -> web.Response:
        """Go back one track."""
        await self._station.previous()
        return _success()

    async def play_track(self, request: web.Request) -> web.Response:
        """Jump to a specific track."""
        track = await self._station.play_track(request.match_info["track_id"])
        return _success(track=track.to_dict())

    # Online tracks

    async def add_url(self, request: web.Request) -> web.Response:
        """Append a track that plays from an external URL."""
        body = _parse_body(AddUrlRequest, await _read_json(request))
        if not body.url:
            raise InvalidRequest("URL is required")
        track = Track.online(
            validate_url(body.url),
            title=body.title,
            artist=body.artist,
            album=body.album,
            genre=body.genre,
            duration=body.duration,
            cover=body.cover,
        )
        await self._station.add_track(track)
        return _success(track=track.to_dict())

    async def add_playlist(self, request: web.Request) -> web.Response:
        """Append several online tracks, skipping entries without a valid URL."""
        body = _parse_body(AddPlaylistRequest, await _read_json(request))
        if not body.tracks:
            raise InvalidRequest("Tracks array is required")
        tracks: list[Track] = []
        for entry in body.tracks:
            if not entry.url:
                continue
            try:
                url = validate_url(entry.url)
            except InvalidURL:
                logger.debug("Skipping playlist entry with invalid URL %r", entry.url)
                continue
            tracks.append(
                Track.online(
                    url,
                    title=entry.title,
                    artist=entry.artist,
                    album=entry.album,
                    genre=entry.genre,
                    duration=entry.duration,
                    cover=entry.cover,
                )
            )
        added = await self._station.add_tracks(tracks)
        return _success(tracks=_track_list(added), count=len(added))

    async def import_playlist(self, request: web.Request) -> web.Response:
        """Parse an uploaded M3U or PLS file and append its entries."""
        async for filename, part in _file_parts(request, PLAYLIST_FIELD):
            if not is_playlist_file(filename):
                raise InvalidUpload("Unsupported playlist format, expected .m3u, .m3u8 or .pls")
            content = bytearray()
            async for chunk in _iter_chunks(part):
                content.extend(chunk)
                if len(content) > MAX_PLAYLIST_FILE_SIZE:
                    raise InvalidUpload("Playlist file is too large")
            entries = parse_playlist(filename, content.decode("utf-8", errors="replace"))
            if not entries:
                raise InvalidUpload("No valid tracks found in playlist file")
            added = await self._station.add_tracks(entry.to_track() for entry in entries)
            logger.info("Imported %d track(s) from %s", len(added), filename)
            return _success(tracks=_track_list(added), count=len(added))
        raise InvalidUpload("No playlist file uploaded")

    # Station profile

    async def update_station(self, request: web.Request) -> web.Response:
        """Apply a partial station profile update."""
        update = _parse_body(StationProfileUpdate, await _read_json(request))
        profile = await self._station.update_profile(update)
        return _success(station=profile.to_dict())

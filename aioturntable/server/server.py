"""Radio server: serves the station over HTTP and WebSocket and persists its state."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Any

from aiohttp import web
from mashumaro.exceptions import InvalidFieldValue, MissingField
from zeroconf import InterfaceChoice, IPVersion, NonUniqueNameException
from zeroconf.asyncio import AsyncServiceInfo, AsyncZeroconf

from aioturntable.models.station import StationProfile
from aioturntable.models.track import Track
from aioturntable.storage.documents import JsonDocument
from aioturntable.storage.media import MAX_UPLOAD_SIZE, MediaLibrary
from aioturntable.util import get_local_ip

from .events import PlaylistChangedEvent, StationEvent, StationProfileChangedEvent
from .listener import ListenerConnection
from .routes import ControlRoutes, error_middleware
from .station import RadioStation

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
MDNS_SERVICE_TYPE = "_turntable._tcp.local."

_DECODE_ERRORS = (MissingField, InvalidFieldValue, TypeError, ValueError)


def _decode_tracks(data: Any) -> list[Track]:
    """Decode a persisted track list, skipping entries that cannot be read."""
    if not isinstance(data, list):
        if data is not None:
            logger.warning("Ignoring playlist document that is not a list")
        return []
    tracks: list[Track] = []
    for item in data:
        try:
            tracks.append(Track.from_dict(item))
        except _DECODE_ERRORS as err:
            logger.warning("Skipping unreadable track in playlist document: %s", err)
    return tracks


def _decode_profile(data: Any) -> StationProfile | None:
    if data is None:
        return None
    try:
        return StationProfile.from_dict(data)
    except _DECODE_ERRORS as err:
        logger.warning("Ignoring unreadable station document: %s", err)
        return None


class RadioServer:
    """Serves one RadioStation to any number of listeners."""

    WS_PATH = "/ws"
    STREAM_PATH = "/stream"
    UPLOADS_PATH = "/uploads"

    _loop: asyncio.AbstractEventLoop
    _id: str
    _station: RadioStation
    _media: MediaLibrary
    _routes: ControlRoutes
    _playlist_document: JsonDocument
    """Persisted track list."""
    _profile_document: JsonDocument
    """Persisted station profile."""
    _listeners: set[ListenerConnection]
    """All listeners with an open WebSocket."""
    _app: web.Application | None
    _app_runner: web.AppRunner | None
    _tcp_site: web.TCPSite | None
    _zc: AsyncZeroconf | None
    """AsyncZeroconf instance."""
    _mdns_service: AsyncServiceInfo | None
    """Registered mDNS service."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        server_id: str,
        data_dir: Path,
        uploads_dir: Path | None = None,
        max_upload_size: int = MAX_UPLOAD_SIZE,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize a new Radio Server.

        Args:
            loop: The asyncio event loop to use for asynchronous operations.
            server_id: Unique identifier for this server instance, used for mDNS.
            data_dir: Directory holding the persisted playlist and station profile.
            uploads_dir: Directory for uploaded audio, defaults to data_dir/uploads.
            max_upload_size: Maximum size of one uploaded file in bytes.
            rng: Optional random source for shuffling.
        """
        self._loop = loop
        self._id = server_id
        self._station = RadioStation(loop, rng=rng)
        self._media = MediaLibrary(uploads_dir or data_dir / "uploads", max_upload_size)
        self._routes = ControlRoutes(self._station, self._media)
        playlists_dir = data_dir / "playlists"
        self._playlist_document = JsonDocument(loop, playlists_dir / "main.json")
        self._profile_document = JsonDocument(loop, playlists_dir / "station.json")
        self._listeners = set()
        self._app = None
        self._app_runner = None
        self._tcp_site = None
        self._zc = None
        self._mdns_service = None
        self._station.add_event_listener(self._on_station_event)
        logger.debug("RadioServer initialized: id=%s, data_dir=%s", server_id, data_dir)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """Read-only access to the event loop used by this server."""
        return self._loop

    @property
    def id(self) -> str:
        """Get the unique identifier of this server."""
        return self._id

    @property
    def station(self) -> RadioStation:
        """The station served by this server."""
        return self._station

    @property
    def media(self) -> MediaLibrary:
        """Storage for uploaded audio files."""
        return self._media

    def _create_web_application(self) -> web.Application:
        """
        Create and configure the aiohttp web application.

        Returns:
            Configured aiohttp web.Application instance.
        """
        app = web.Application(middlewares=[error_middleware])
        self._routes.register(app)
        app.router.add_get(self.WS_PATH, self.on_listener_connect)
        app.router.add_get(self.STREAM_PATH, self.stream_current_track)
        app.router.add_static(self.UPLOADS_PATH, self._media.directory)
        return app

    async def on_listener_connect(self, request: web.Request) -> web.StreamResponse:
        """Handle an incoming WebSocket connection from a listener."""
        logger.debug("Incoming listener connection from %s", request.remote)
        listener = ListenerConnection(self._station, request)
        self._listeners.add(listener)
        try:
            return await listener.handle()
        finally:
            self._listeners.discard(listener)

    async def stream_current_track(self, request: web.Request) -> web.StreamResponse:
        """Serve the audio of the current track with byte-range support."""
        track = self._station.current_track
        if track is None or track.is_online or track.filename is None:
            raise web.HTTPNotFound(text="No track playing")
        path = self._media.path_for(track.filename)
        if path is None or not await asyncio.to_thread(path.is_file):
            raise web.HTTPNotFound(text="Audio file not found")
        return web.FileResponse(path)

    async def load_state(self) -> None:
        """Restore the playlist and station profile from disk."""
        tracks = _decode_tracks(await self._playlist_document.async_load())
        profile = _decode_profile(await self._profile_document.async_load())
        await self._station.restore(tracks, profile)

    def _on_station_event(self, station: RadioStation, event: StationEvent) -> None:
        """Persist every playlist and profile mutation."""
        if isinstance(event, PlaylistChangedEvent):
            self._playlist_document.save([track.to_dict() for track in station.tracks])
        elif isinstance(event, StationProfileChangedEvent):
            self._profile_document.save(station.profile.to_dict())

    async def start_server(
        self,
        port: int = DEFAULT_PORT,
        host: str = DEFAULT_HOST,
        advertise_addresses: list[str] | None = None,
        *,
        advertise_mdns: bool = True,
    ) -> None:
        """
        Restore the saved playlist and profile, then open the station to listeners.

        Args:
            port: TCP port for HTTP, the push channel and the stream.
            host: Address to bind, DEFAULT_HOST binds every interface.
            advertise_addresses: Addresses published over mDNS, the detected local
                address when None.
            advertise_mdns: Publish the station as a _turntable._tcp service.
        """
        if self._app is not None:
            logger.warning("Radio server already started, ignoring start request")
            return

        await self.load_state()
        await asyncio.to_thread(self._media.directory.mkdir, parents=True, exist_ok=True)
        logger.info(
            "Restored %d track(s) for station '%s'",
            len(self._station.tracks),
            self._station.profile.name,
        )

        try:
            await self._bind(host, port)
        except OSError as err:
            logger.error("Cannot listen on %s:%d: %s", host, port, err)
            await self._teardown_web()
            raise
        logger.info("Station '%s' on air at %s:%d", self._station.profile.name, host, port)

        if advertise_mdns:
            await self._advertise(host, port, advertise_addresses)

    async def _bind(self, host: str, port: int) -> None:
        self._app = self._create_web_application()
        self._app_runner = web.AppRunner(self._app)
        await self._app_runner.setup()
        self._tcp_site = web.TCPSite(
            self._app_runner, host=None if host == DEFAULT_HOST else host, port=port
        )
        await self._tcp_site.start()

    async def _advertise(
        self, host: str, port: int, advertise_addresses: list[str] | None
    ) -> None:
        if advertise_addresses is None:
            local_ip = get_local_ip()
            advertise_addresses = [local_ip] if local_ip else []
        if not advertise_addresses:
            logger.warning("No address to publish over mDNS, pass advertise_addresses")
            return
        self._zc = AsyncZeroconf(
            ip_version=IPVersion.V4Only,
            interfaces=InterfaceChoice.Default if host == DEFAULT_HOST else [host],
        )
        await self._start_mdns_advertising(
            addresses=advertise_addresses, port=port, path=self.WS_PATH
        )

    async def _teardown_web(self) -> None:
        # Runner cleanup stops every started site
        self._tcp_site = None
        if self._app_runner is not None:
            await self._app_runner.cleanup()
            self._app_runner = None
        if self._app is not None:
            await self._app.shutdown()
            self._app = None

    async def stop_server(self) -> None:
        """Withdraw the mDNS record and stop accepting requests."""
        await self._stop_mdns()
        if self._app is None:
            return
        await self._teardown_web()
        logger.info("Radio server stopped")

    async def close(self) -> None:
        """Disconnect all listeners, stop the server and write pending state."""
        listeners = list(self._listeners)
        if listeners:
            results = await asyncio.gather(
                *(listener.disconnect() for listener in listeners), return_exceptions=True
            )
            for listener, result in zip(listeners, results, strict=True):
                if isinstance(result, Exception):
                    logger.warning(
                        "Error disconnecting listener %s: %s", listener.connection_id, result
                    )

        await self.stop_server()
        await self._station.close()
        await self._playlist_document.flush()
        await self._profile_document.flush()

    async def _start_mdns_advertising(self, addresses: list[str], port: int, path: str) -> None:
        """Start advertising this server via mDNS."""
        assert self._zc is not None
        if self._mdns_service is not None:
            await self._zc.async_unregister_service(self._mdns_service)

        properties = {"path": path, "name": self._station.profile.name}

        info = AsyncServiceInfo(
            type_=MDNS_SERVICE_TYPE,
            name=f"{self._id}.{MDNS_SERVICE_TYPE}",
            server=f"{self._id}.local.",
            parsed_addresses=addresses,
            port=port,
            properties=properties,
        )
        try:
            await self._zc.async_register_service(info)
            self._mdns_service = info
            logger.debug("mDNS advertising server on port %d with path %s", port, path)
        except NonUniqueNameException:
            logger.error("Radio server with identical name present in the local network!")

    async def _stop_mdns(self) -> None:
        """Stop mDNS advertising if active."""
        if self._zc is None:
            return
        try:
            if self._mdns_service is not None:
                await self._zc.async_unregister_service(self._mdns_service)
        finally:
            await self._zc.async_close()
            self._zc = None
            self._mdns_service = None

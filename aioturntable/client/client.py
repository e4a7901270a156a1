"""Observer client that follows a radio station over its WebSocket."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import suppress

from aiohttp import ClientSession, ClientWebSocketResponse, WSMessage, WSMsgType

from aioturntable.models.core import (
    ListenerCountMessage,
    ListenerCountPayload,
    RadioStateMessage,
    RadioStatePayload,
)
from aioturntable.models.types import ServerMessage

logger = logging.getLogger(__name__)

# Callback invoked whenever a new station snapshot is received.
StateCallback = Callable[[RadioStatePayload], None]

# Callback invoked when the number of listeners changes.
ListenerCountCallback = Callable[[ListenerCountPayload], None]

# Callback invoked when the client disconnects from the server.
DisconnectCallback = Callable[[], None]


class RadioClient:
    """
    Listener of a radio station.

    Keeps the latest snapshot and listener count pushed by the server and
    forwards them to registered callbacks. The client never sends messages.
    """

    _session: ClientSession | None
    _owns_session: bool
    """Whether this client owns and should close the session."""
    _ws: ClientWebSocketResponse | None = None
    """WebSocket connection to the server."""
    _connected: bool = False
    _reader_task: asyncio.Task[None] | None = None
    """Background task reading messages from server."""
    _state: RadioStatePayload | None = None
    """Latest snapshot received from server."""
    _listeners: int | None = None
    """Latest listener count received from server."""

    _state_callbacks: list[StateCallback]
    _listener_count_callbacks: list[ListenerCountCallback]
    _disconnect_callbacks: list[DisconnectCallback]

    def __init__(self, session: ClientSession | None = None) -> None:
        """
        Create a new radio client.

        Args:
            session: Optional aiohttp ClientSession. If None, a session is created
                and managed by this client.
        """
        self._session = session
        self._owns_session = session is None
        self._state_callbacks = []
        self._listener_count_callbacks = []
        self._disconnect_callbacks = []

    @property
    def connected(self) -> bool:
        """Return True if the client currently has an active connection."""
        return self._connected and self._ws is not None and not self._ws.closed

    @property
    def state(self) -> RadioStatePayload | None:
        """Latest station snapshot, None before the first one arrived."""
        return self._state

    @property
    def listeners(self) -> int | None:
        """Latest known number of listeners."""
        return self._listeners

    async def connect(self, url: str) -> None:
        """Connect to the WebSocket of a radio server, e.g. ws://host:3000/ws."""
        if self.connected:
            logger.debug("Already connected")
            return

        if self._session is None:
            self._session = ClientSession()

        logger.info("Connecting to radio server at %s", url)
        self._ws = await self._session.ws_connect(url, heartbeat=30)
        self._connected = True
        self._reader_task = asyncio.get_running_loop().create_task(self._reader_loop())

    async def disconnect(self) -> None:
        """Disconnect from the server and release resources."""
        was_connected = self._connected
        self._connected = False
        current_task = asyncio.current_task()

        if self._reader_task is not None:
            if self._reader_task is not current_task:
                self._reader_task.cancel()
                with suppress(asyncio.CancelledError):
                    await self._reader_task
            self._reader_task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._state = None
        self._listeners = None

        if was_connected:
            self._notify_disconnect_callback()

    def add_state_listener(self, callback: StateCallback) -> Callable[[], None]:
        """Add a listener for station snapshots.

        Returns:
            A function that removes this listener when called.
        """
        self._state_callbacks.append(callback)
        return lambda: (
            self._state_callbacks.remove(callback) if callback in self._state_callbacks else None
        )

    def add_listener_count_listener(self, callback: ListenerCountCallback) -> Callable[[], None]:
        """Add a listener for listener count updates.

        Returns:
            A function that removes this listener when called.
        """
        self._listener_count_callbacks.append(callback)
        return lambda: (
            self._listener_count_callbacks.remove(callback)
            if callback in self._listener_count_callbacks
            else None
        )

    def add_disconnect_listener(self, callback: DisconnectCallback) -> Callable[[], None]:
        """Add a listener invoked when the connection ends.

        Returns:
            A function that removes this listener when called.
        """
        self._disconnect_callbacks.append(callback)
        return lambda: (
            self._disconnect_callbacks.remove(callback)
            if callback in self._disconnect_callbacks
            else None
        )

    async def _reader_loop(self) -> None:
        assert self._ws is not None
        try:
            async for msg in self._ws:
                await self._handle_ws_message(msg)
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("WebSocket reader encountered an error")
        finally:
            if self._connected:
                await self.disconnect()

    async def _handle_ws_message(self, msg: WSMessage) -> None:
        if msg.type is WSMsgType.TEXT:
            self._handle_json_message(msg.data)
        elif msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
            logger.info("WebSocket closed by server")
            await self.disconnect()
        elif msg.type is WSMsgType.ERROR:
            logger.error("WebSocket error: %s", self._ws.exception() if self._ws else "unknown")
            await self.disconnect()

    def _handle_json_message(self, data: str) -> None:
        try:
            message = ServerMessage.from_json(data)
        except Exception:
            logger.exception("Failed to parse server message: %s", data)
            return

        match message:
            case RadioStateMessage(payload=payload):
                self._state = payload
                self._listeners = payload.listeners
                self._notify_state_callback(payload)
            case ListenerCountMessage(payload=payload):
                self._listeners = payload.listeners
                self._notify_listener_count_callback(payload)
            case _:
                logger.debug("Unhandled server message type: %s", type(message).__name__)

    def _notify_state_callback(self, payload: RadioStatePayload) -> None:
        for callback in list(self._state_callbacks):
            try:
                callback(payload)
            except Exception:
                logger.exception("Error in state callback %s", callback)

    def _notify_listener_count_callback(self, payload: ListenerCountPayload) -> None:
        for callback in list(self._listener_count_callbacks):
            try:
                callback(payload)
            except Exception:
                logger.exception("Error in listener count callback %s", callback)

    def _notify_disconnect_callback(self) -> None:
        for callback in list(self._disconnect_callbacks):
            try:
                callback()
            except Exception:
                logger.exception("Error in disconnect callback %s", callback)

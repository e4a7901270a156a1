"""Represents a single observer connected to the station over a WebSocket."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import suppress
from typing import TYPE_CHECKING

from aiohttp import WSMsgType, web

from aioturntable.models.types import ServerMessage

MAX_PENDING_MSG = 4096
HEARTBEAT_INTERVAL = 55
PREPARE_TIMEOUT = 10

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from .station import RadioStation


class ListenerConnection:
    """
    A listener that observes the station through a WebSocket.

    Outgoing messages go through a bounded queue drained by a writer task, so a
    slow listener never delays the station. A listener whose queue overflows is
    disconnected. Listeners only receive; anything they send is ignored.
    """

    _station: RadioStation
    _request: web.Request
    _wsock: web.WebSocketResponse
    _connection_id: str
    _to_write: asyncio.Queue[ServerMessage]
    """Queue for messages to be sent to the listener through the WebSocket."""
    _writer_task: asyncio.Task[None] | None = None
    """Task responsible for sending JSON data."""
    _message_loop_task: asyncio.Task[None] | None = None
    """Task responsible for receiving (and discarding) incoming messages."""
    _disconnecting: bool = False
    """Flag to prevent multiple concurrent disconnect tasks."""
    _logger: logging.Logger

    def __init__(self, station: RadioStation, request: web.Request) -> None:
        """
        DO NOT CALL THIS CONSTRUCTOR. INTERNAL USE ONLY.

        Connections are created by RadioServer for every request to the WebSocket route.
        """
        self._station = station
        self._request = request
        self._connection_id = str(uuid.uuid4())
        self._wsock = web.WebSocketResponse(heartbeat=HEARTBEAT_INTERVAL)
        self._to_write = asyncio.Queue(maxsize=MAX_PENDING_MSG)
        self._disconnecting = False
        self._logger = logger.getChild(self._connection_id)
        self._logger.debug("Listener initialized from %s", request.remote)

    @property
    def connection_id(self) -> str:
        """Unique id of this connection."""
        return self._connection_id

    @property
    def websocket_connection(self) -> web.WebSocketResponse:
        """The WebSocket of this listener."""
        return self._wsock

    @property
    def pending_messages(self) -> int:
        """Number of messages waiting to be written."""
        return self._to_write.qsize()

    async def handle(self) -> web.WebSocketResponse:
        """
        Run the complete connection lifecycle and return the closed WebSocket.

        The listener is attached to the station once the WebSocket is ready and
        detached when the connection ends for any reason.
        """
        try:
            async with asyncio.timeout(PREPARE_TIMEOUT):
                await self._wsock.prepare(self._request)
        except TimeoutError:
            self._logger.warning("Timeout preparing request")
            raise

        self._logger.info("Connection established")
        self._writer_task = self._station.loop.create_task(self._writer())
        self._station.join(self)
        try:
            self._message_loop_task = self._station.loop.create_task(self._run_message_loop())
            try:
                await self._message_loop_task
            except asyncio.CancelledError:
                self._logger.debug("Message loop task was cancelled")
        finally:
            await self.disconnect()
        return self._wsock

    async def disconnect(self) -> None:
        """Detach from the station, stop the tasks and close the WebSocket."""
        if self._disconnecting:
            return
        self._disconnecting = True
        self._station.leave(self)

        for task in (self._writer_task, self._message_loop_task):
            if task is not None and not task.done() and task is not asyncio.current_task():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

        try:
            if not self._wsock.closed:
                await self._wsock.close()
        except Exception:
            self._logger.exception("Failed to close websocket")
        self._logger.debug("Listener disconnected")

    def send_message(self, message: ServerMessage) -> None:
        """Enqueue a message for this listener without blocking."""
        try:
            self._to_write.put_nowait(message)
        except asyncio.QueueFull:
            # Only trigger disconnect once, even if queue fills repeatedly
            if not self._disconnecting:
                self._logger.error("Message queue full, listener too slow - disconnecting")
                task = self._station.loop.create_task(self.disconnect())
                task.add_done_callback(lambda t: t.exception() if not t.cancelled() else None)
            return
        self._logger.debug("Enqueueing message: %s", type(message).__name__)

    async def _run_message_loop(self) -> None:
        """Drain incoming frames until the WebSocket closes."""
        try:
            async for msg in self._wsock:
                if msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED):
                    break
                if msg.type == WSMsgType.ERROR:
                    self._logger.warning("WebSocket error: %s", self._wsock.exception())
                    break
                if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                    self._logger.debug("Ignoring message from listener")
            self._logger.debug("wsock was closed")
        except asyncio.CancelledError:
            self._logger.debug("Message loop cancelled")
        except Exception:
            self._logger.exception("Unexpected error inside websocket API")
        finally:
            if self._writer_task and not self._writer_task.done():
                self._logger.debug("Message loop finished, cancelling writer")
                self._writer_task.cancel()

    async def _writer(self) -> None:
        """Write outgoing messages from the queue."""
        try:
            while not self._wsock.closed:
                item = await self._to_write.get()
                try:
                    await self._wsock.send_str(item.to_json())
                except ConnectionError:
                    self._logger.warning("Connection error sending JSON data, ending writer task")
                    break
            self._logger.debug("WebSocket connection was closed, ending writer task")
        except asyncio.CancelledError:
            raise
        except Exception:
            self._logger.exception("Error in writer task for listener")
        finally:
            # Cancel the message loop when writer exits
            if self._message_loop_task and not self._message_loop_task.done():
                self._logger.debug("Writer finished, cancelling message loop")
                self._message_loop_task.cancel()

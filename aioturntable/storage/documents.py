"""JSON documents persisted on disk, rewritten in full on every save."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any

import orjson

logger = logging.getLogger(__name__)


class JsonDocument:
    """
    A single JSON document on disk.

    Saves are best-effort: they run in a worker thread, are coalesced so only the
    latest state is written, and failures are logged instead of raised. The
    in-memory state stays authoritative for the running process.
    """

    _path: Path
    _loop: asyncio.AbstractEventLoop
    _pending: bytes | None
    """Serialized state waiting to be written, None when up to date."""
    _writer_task: asyncio.Task[None] | None
    """Task writing pending state, None when idle."""

    def __init__(self, loop: asyncio.AbstractEventLoop, path: Path) -> None:
        """
        Initialize the document.

        Args:
            loop: The event loop to run the writer task on.
            path: Location of the document, parent directories are created on save.
        """
        self._loop = loop
        self._path = path
        self._pending = None
        self._writer_task = None

    @property
    def path(self) -> Path:
        """Location of the document."""
        return self._path

    def load(self) -> Any | None:
        """
        Read the document.

        NOTE: This method is not async friendly.

        Returns:
            The decoded JSON value, or None if the document is missing or corrupt.
        """
        try:
            data = self._path.read_bytes()
        except FileNotFoundError:
            logger.debug("No document at %s", self._path)
            return None
        except OSError:
            logger.exception("Error loading %s", self._path)
            return None
        try:
            return orjson.loads(data)
        except orjson.JSONDecodeError:
            logger.exception("Corrupt document at %s, ignoring it", self._path)
            return None

    async def async_load(self) -> Any | None:
        """Read the document in a worker thread."""
        return await asyncio.to_thread(self.load)

    def save(self, data: Any) -> None:
        """Schedule a full rewrite of the document with data."""
        self._pending = orjson.dumps(data, option=orjson.OPT_INDENT_2)
        if self._writer_task is None or self._writer_task.done():
            self._writer_task = self._loop.create_task(self._writer())

    async def flush(self) -> None:
        """Wait until all scheduled saves were written."""
        while self._writer_task is not None and not self._writer_task.done():
            await asyncio.shield(self._writer_task)

    async def _writer(self) -> None:
        """Write pending state until there is nothing left to write."""
        while self._pending is not None:
            payload = self._pending
            self._pending = None
            try:
                await asyncio.to_thread(self._write, payload)
            except OSError as err:
                logger.error("Error saving %s: %s", self._path, err)

    def _write(self, payload: bytes) -> None:
        """Replace the document atomically. NOTE: This method is not async friendly."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, self._path)

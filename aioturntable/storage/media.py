"""Storage of uploaded audio files."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterable
from dataclasses import dataclass
from pathlib import Path, PurePath

from aioturntable.exceptions import InvalidUpload, StorageFailure, UploadTooLarge

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".mp3", ".wav", ".ogg", ".m4a", ".flac", ".aac"})
MAX_UPLOAD_SIZE = 100 * 1024 * 1024
CHUNK_SIZE = 65536
PUBLIC_PREFIX = "/uploads"


@dataclass(frozen=True)
class StoredFile:
    """A file saved by the media library."""

    filename: str
    """Unique name inside the media directory."""
    original_name: str
    """Name the file was uploaded with."""
    path: Path
    """Absolute location on disk."""

    @property
    def public_path(self) -> str:
        """URL path the file is served under."""
        return f"{PUBLIC_PREFIX}/{self.filename}"


class MediaLibrary:
    """Directory of uploaded audio files with unique generated names."""

    def __init__(self, directory: Path, max_upload_size: int = MAX_UPLOAD_SIZE) -> None:
        """
        Initialize the library.

        Args:
            directory: Directory the files are stored in, created on first upload.
            max_upload_size: Maximum size of one file in bytes.
        """
        self._directory = directory
        self._max_upload_size = max_upload_size

    @property
    def directory(self) -> Path:
        """Directory the files are stored in."""
        return self._directory

    @property
    def max_upload_size(self) -> int:
        """Maximum size of one file in bytes."""
        return self._max_upload_size

    @staticmethod
    def is_allowed(original_name: str) -> bool:
        """Check if a file name has a supported audio extension."""
        return PurePath(original_name).suffix.lower() in ALLOWED_EXTENSIONS

    def path_for(self, filename: str) -> Path | None:
        """Return the location of a stored file, or None for names outside the library."""
        if not filename or PurePath(filename).name != filename:
            return None
        return self._directory / filename

    async def store(self, original_name: str, chunks: AsyncIterable[bytes]) -> StoredFile:
        """
        Save an uploaded file under a fresh unique name.

        Raises:
            InvalidUpload: If the file type is not supported.
            UploadTooLarge: If the file exceeds max_upload_size.
            StorageFailure: If the file could not be written.
        """
        if not self.is_allowed(original_name):
            raise InvalidUpload("Invalid file type. Only audio files are allowed.")

        extension = PurePath(original_name).suffix.lower()
        filename = f"{uuid.uuid4()}{extension}"
        path = self._directory / filename
        size = 0
        try:
            await asyncio.to_thread(self._directory.mkdir, parents=True, exist_ok=True)
            fh = await asyncio.to_thread(path.open, "wb")
            try:
                async for chunk in chunks:
                    size += len(chunk)
                    if size > self._max_upload_size:
                        raise UploadTooLarge(
                            f"File exceeds the limit of {self._max_upload_size} bytes"
                        )
                    await asyncio.to_thread(fh.write, chunk)
            finally:
                await asyncio.to_thread(fh.close)
        except UploadTooLarge:
            await self._discard(path)
            raise
        except OSError as err:
            await self._discard(path)
            raise StorageFailure(f"Could not store {original_name}: {err}") from err

        logger.info("Stored upload %s as %s (%d bytes)", original_name, filename, size)
        return StoredFile(filename=filename, original_name=original_name, path=path)

    async def delete(self, filename: str) -> bool:
        """
        Delete a stored file, best-effort.

        Returns:
            True if the file was deleted, failures are logged and return False.
        """
        path = self.path_for(filename)
        if path is None:
            logger.warning("Refusing to delete %r outside of the media directory", filename)
            return False
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as err:
            logger.error("Error deleting file %s: %s", path, err)
            return False
        logger.debug("Deleted %s", path)
        return True

    async def _discard(self, path: Path) -> None:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError:
            logger.exception("Error removing partial upload %s", path)

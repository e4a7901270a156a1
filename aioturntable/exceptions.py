"""Errors raised by the station and surfaced by the control surface."""

from __future__ import annotations


class TurntableError(Exception):
    """Base class for all recoverable station errors."""

    status = 500
    """HTTP status used when the error reaches the control surface."""


class NotFound(TurntableError):
    """The requested track does not exist."""

    status = 404

    def __init__(self, track_id: str) -> None:
        """Initialize for the missing track id."""
        super().__init__("Track not found")
        self.track_id = track_id


class InvalidRange(TurntableError):
    """A playlist index is outside of the playlist."""

    status = 400

    def __init__(self, from_index: int, to_index: int, length: int) -> None:
        """Initialize for the offending reorder request."""
        super().__init__("Invalid indices")
        self.from_index = from_index
        self.to_index = to_index
        self.length = length


class InvalidURL(TurntableError):
    """A track source URL is malformed."""

    status = 400

    def __init__(self, url: str) -> None:
        """Initialize for the offending URL."""
        super().__init__("Invalid URL format")
        self.url = url


class EmptyPlaylist(TurntableError):
    """Playback was requested while there is nothing to play."""

    status = 400

    def __init__(self) -> None:
        """Initialize with the standard message."""
        super().__init__("Playlist is empty")


class InvalidRequest(TurntableError):
    """A request body is missing or malformed."""

    status = 400


class InvalidUpload(TurntableError):
    """An upload is missing or has an unsupported file type."""

    status = 400


class UploadTooLarge(TurntableError):
    """An uploaded file exceeds the configured size limit."""

    status = 413


class StorageFailure(TurntableError):
    """Media or document storage failed."""

    status = 500

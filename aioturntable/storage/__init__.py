"""Collaborators that touch the disk: documents, media files and their metadata."""

from .documents import JsonDocument
from .media import ALLOWED_EXTENSIONS, MAX_UPLOAD_SIZE, MediaLibrary, StoredFile
from .metadata import AudioMetadata, async_extract_metadata, extract_metadata
from .playlist_files import PlaylistEntry, is_playlist_file, parse_m3u, parse_playlist, parse_pls

__all__ = [
    "ALLOWED_EXTENSIONS",
    "MAX_UPLOAD_SIZE",
    "AudioMetadata",
    "JsonDocument",
    "MediaLibrary",
    "PlaylistEntry",
    "StoredFile",
    "async_extract_metadata",
    "extract_metadata",
    "is_playlist_file",
    "parse_m3u",
    "parse_playlist",
    "parse_pls",
]

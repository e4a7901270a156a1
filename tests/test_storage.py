from __future__ import annotations

import asyncio
import wave
from collections.abc import AsyncIterator
from pathlib import Path

import orjson
import pytest

from aioturntable.exceptions import InvalidUpload, UploadTooLarge
from aioturntable.storage.documents import JsonDocument
from aioturntable.storage.media import MediaLibrary
from aioturntable.storage.metadata import AudioMetadata, extract_metadata


async def _chunks(*parts: bytes) -> AsyncIterator[bytes]:
    for part in parts:
        yield part


def _write_wav(path: Path, seconds: float, sample_rate: int = 8000) -> None:
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(b"\x00\x00" * int(seconds * sample_rate))


@pytest.mark.asyncio
async def test_document_save_and_load(tmp_path: Path) -> None:
    document = JsonDocument(asyncio.get_running_loop(), tmp_path / "playlists" / "main.json")
    assert document.load() is None

    document.save([{"id": "a"}])
    document.save([{"id": "a"}, {"id": "b"}])
    await document.flush()
    assert await document.async_load() == [{"id": "a"}, {"id": "b"}]
    assert orjson.loads(document.path.read_bytes()) == [{"id": "a"}, {"id": "b"}]


@pytest.mark.asyncio
async def test_corrupt_document_loads_as_none(tmp_path: Path) -> None:
    path = tmp_path / "station.json"
    path.write_text("{not json")
    assert JsonDocument(asyncio.get_running_loop(), path).load() is None


@pytest.mark.asyncio
async def test_document_write_failure_is_logged(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    document = JsonDocument(asyncio.get_running_loop(), blocker / "main.json")
    document.save({"id": "a"})
    await document.flush()
    assert document.load() is None


@pytest.mark.asyncio
async def test_media_store_and_delete(tmp_path: Path) -> None:
    media = MediaLibrary(tmp_path / "uploads")
    stored = await media.store("My Song.MP3", _chunks(b"abc", b"def"))
    assert stored.filename.endswith(".mp3")
    assert stored.original_name == "My Song.MP3"
    assert stored.public_path == f"/uploads/{stored.filename}"
    assert stored.path.read_bytes() == b"abcdef"

    assert await media.delete(stored.filename)
    assert not stored.path.exists()
    assert not await media.delete(stored.filename)
    assert not await media.delete("../escape.mp3")


@pytest.mark.asyncio
async def test_media_rejects_bad_type_and_oversized_files(tmp_path: Path) -> None:
    media = MediaLibrary(tmp_path / "uploads", max_upload_size=4)
    with pytest.raises(InvalidUpload):
        await media.store("notes.txt", _chunks(b"abc"))
    with pytest.raises(UploadTooLarge):
        await media.store("big.wav", _chunks(b"abc", b"def"))
    assert list((tmp_path / "uploads").iterdir()) == []


def test_extract_metadata_from_wav(tmp_path: Path) -> None:
    path = tmp_path / "stored.wav"
    _write_wav(path, 2.0)
    metadata = extract_metadata(path, "Morning Tune.wav")
    assert metadata.title == "Morning Tune"
    assert metadata.artist == "Unknown Artist"
    assert metadata.album == "Unknown Album"
    assert metadata.genre == "Unknown"
    assert metadata.duration == pytest.approx(2.0, abs=0.1)
    assert metadata.sample_rate == 8000
    assert metadata.cover is None


def test_extract_metadata_falls_back_for_unreadable_files(tmp_path: Path) -> None:
    path = tmp_path / "broken.mp3"
    path.write_bytes(b"")
    metadata = extract_metadata(path, "Broken Song.mp3")
    assert metadata == AudioMetadata.defaults("Broken Song.mp3")
    assert metadata.title == "Broken Song"
    assert metadata.duration == 0

from __future__ import annotations

from datetime import UTC, datetime

import orjson

from aioturntable.models.core import (
    AddPlaylistRequest,
    AddUrlRequest,
    ListenerCountMessage,
    ListenerCountPayload,
    RadioStateMessage,
    RadioStatePayload,
    ReorderRequest,
)
from aioturntable.models.station import StationProfile, StationProfileUpdate
from aioturntable.models.track import HistoryEntry, Track, TrackUpdate
from aioturntable.models.types import ServerMessage, UndefinedField


def test_track_update_distinguishes_absent_from_empty() -> None:
    update = TrackUpdate.from_dict({"title": "", "year": None})
    assert update.title == ""
    assert isinstance(update.artist, UndefinedField)
    assert update.year is None

    track = Track(id="a", title="Title", artist="Artist", year=1999)
    track.apply_update(update)
    assert track.title == ""
    assert track.artist == "Artist"
    assert track.year is None


def test_negative_duration_is_clamped() -> None:
    assert Track(id="a", title="A", duration=-5).duration == 0


def test_online_track_defaults() -> None:
    track = Track.online("https://example.com/stream.mp3")
    assert track.title == "Online Track"
    assert track.artist == "Unknown Artist"
    assert track.album == "Online"
    assert track.genre == "Online"
    assert track.is_online
    assert track.filename is None
    assert track.path == "https://example.com/stream.mp3"


def test_track_roundtrip_keeps_added_at() -> None:
    added_at = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)
    track = Track(id="a", title="A", added_at=added_at, cover="data:image/jpeg;base64,AAA")
    restored = Track.from_dict(orjson.loads(track.to_json()))
    assert restored == track


def test_request_bodies_accept_camel_case() -> None:
    reorder = ReorderRequest.from_dict({"fromIndex": 1, "toIndex": 3})
    assert (reorder.from_index, reorder.to_index) == (1, 3)
    reorder = ReorderRequest.from_dict({"from_index": 2, "fromIndex": 9, "to_index": 0})
    assert (reorder.from_index, reorder.to_index) == (2, 0)

    request = AddPlaylistRequest.from_dict(
        {"tracks": [{"url": "https://a.example/1.mp3", "title": "One"}, {"url": "x"}]}
    )
    assert [entry.url for entry in request.tracks] == ["https://a.example/1.mp3", "x"]
    assert AddUrlRequest.from_dict({}).url is None


def test_profile_update_merges_social_links() -> None:
    profile = StationProfile(social={"twitter": "@radio"})
    profile.apply_update(
        StationProfileUpdate.from_dict({"name": "Night", "social": {"mastodon": "@r@x"}})
    )
    assert profile.name == "Night"
    assert profile.description == "Your favorite music, 24/7"
    assert profile.social == {"twitter": "@radio", "mastodon": "@r@x"}

    profile.apply_update(StationProfileUpdate.from_dict({"social": None, "logo": None}))
    assert profile.social == {"twitter": "@radio", "mastodon": "@r@x"}
    assert profile.logo is None


def test_push_messages_are_tagged_by_type() -> None:
    track = Track(id="a", title="A", duration=12.5)
    message = RadioStateMessage(
        payload=RadioStatePayload(
            is_playing=True,
            current_track=track,
            listeners=3,
            playlist=[track.summary()],
            current_index=0,
            elapsed_time=1.5,
            history=[HistoryEntry(track=track, played_at=datetime(2024, 1, 1, tzinfo=UTC))],
        )
    )
    data = orjson.loads(message.to_json())
    assert data["type"] == "radioState"
    assert data["payload"]["listeners"] == 3
    assert data["payload"]["playlist"][0] == {
        "id": "a",
        "title": "A",
        "artist": "Unknown Artist",
        "album": "Unknown Album",
        "duration": 12.5,
        "cover": None,
    }
    assert data["payload"]["history"][0]["track"]["id"] == "a"

    parsed = ServerMessage.from_json(message.to_json())
    assert isinstance(parsed, RadioStateMessage)
    assert parsed.payload.current_track == track

    count = ListenerCountMessage(payload=ListenerCountPayload(listeners=2))
    assert orjson.loads(count.to_json()) == {"type": "listenerCount", "payload": {"listeners": 2}}
    assert isinstance(ServerMessage.from_json(count.to_json()), ListenerCountMessage)

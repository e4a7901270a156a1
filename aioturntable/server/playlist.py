"""Ordered, mutable playlist of the station and its cursor adjustment rules."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Iterator

from aioturntable.exceptions import InvalidRange, NotFound
from aioturntable.models.track import Track, TrackSummary, TrackUpdate

logger = logging.getLogger(__name__)


def cursor_after_remove(cursor: int | None, removed_index: int) -> int | None:
    """
    Return the cursor after the element at removed_index was removed.

    Removing an element before the cursor shifts the cursor down so it keeps
    pointing at the same track. Removing the element under the cursor is not
    handled here, the station decides what happens to the current track.
    """
    if cursor is not None and removed_index < cursor:
        return cursor - 1
    return cursor


def cursor_after_move(cursor: int | None, from_index: int, to_index: int) -> int | None:
    """
    Return the cursor after the element at from_index was moved to to_index.

    The cursor follows the moved element. Otherwise it shifts by one only when it
    lies between both endpoints on the side that closes the gap.
    """
    if cursor is None:
        return None
    if cursor == from_index:
        return to_index
    if from_index < cursor <= to_index:
        return cursor - 1
    if to_index <= cursor < from_index:
        return cursor + 1
    return cursor


class PlaylistStore:
    """
    Ordered sequence of tracks with unique ids.

    All index-affecting operations go through this class so the playback cursor
    can be adjusted in the same step.
    """

    _tracks: list[Track]
    """Tracks in play order."""
    _rng: random.Random
    """Random source for shuffling."""

    def __init__(self, tracks: Iterable[Track] = (), rng: random.Random | None = None) -> None:
        """
        Initialize the store.

        Args:
            tracks: Initial tracks, duplicates by id are dropped.
            rng: Optional random source, mainly for deterministic shuffles in tests.
        """
        self._tracks = []
        self._rng = rng or random.Random()
        self.insert_many(tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(list(self._tracks))

    def __getitem__(self, index: int) -> Track:
        return self._tracks[index]

    @property
    def tracks(self) -> list[Track]:
        """Copy of all tracks in play order."""
        return list(self._tracks)

    def summaries(self) -> list[TrackSummary]:
        """Display-safe view of all tracks in play order."""
        return [track.summary() for track in self._tracks]

    def index_of(self, track_id: str) -> int:
        """Return the position of a track, raising NotFound if it is absent."""
        for index, track in enumerate(self._tracks):
            if track.id == track_id:
                return index
        raise NotFound(track_id)

    def get(self, track_id: str) -> Track:
        """Return a track by id, raising NotFound if it is absent."""
        return self._tracks[self.index_of(track_id)]

    def append(self, track: Track) -> None:
        """Add a track to the end of the playlist."""
        if any(existing.id == track.id for existing in self._tracks):
            logger.warning("Ignoring duplicate track id %s", track.id)
            return
        self._tracks.append(track)

    def insert_many(self, tracks: Iterable[Track]) -> list[Track]:
        """Append several tracks in order and return the ones that were added."""
        known = {track.id for track in self._tracks}
        added: list[Track] = []
        for track in tracks:
            if track.id in known:
                logger.warning("Ignoring duplicate track id %s", track.id)
                continue
            known.add(track.id)
            self._tracks.append(track)
            added.append(track)
        return added

    def remove(self, track_id: str) -> tuple[int, Track]:
        """Remove a track and return its former position and record."""
        index = self.index_of(track_id)
        return index, self._tracks.pop(index)

    def move(self, from_index: int, to_index: int) -> None:
        """Relocate the element at from_index to to_index."""
        length = len(self._tracks)
        if not (0 <= from_index < length and 0 <= to_index < length):
            raise InvalidRange(from_index, to_index, length)
        track = self._tracks.pop(from_index)
        self._tracks.insert(to_index, track)

    def shuffle(self) -> None:
        """Uniformly permute the playlist (Fisher-Yates)."""
        for i in range(len(self._tracks) - 1, 0, -1):
            j = self._rng.randint(0, i)
            self._tracks[i], self._tracks[j] = self._tracks[j], self._tracks[i]

    def update_metadata(self, track_id: str, update: TrackUpdate) -> Track:
        """Apply a partial display metadata update and return the track."""
        track = self.get(track_id)
        track.apply_update(update)
        return track

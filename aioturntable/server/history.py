"""Bounded log of recently played tracks."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from aioturntable.models.track import HistoryEntry, Track, utc_now

HISTORY_CAPACITY = 50
SNAPSHOT_HISTORY_SIZE = 10
RECENT_HISTORY_SIZE = 20


class HistoryLog:
    """Append-only history that evicts the oldest entry at capacity."""

    def __init__(
        self, entries: Iterable[HistoryEntry] = (), capacity: int = HISTORY_CAPACITY
    ) -> None:
        """Initialize the log, keeping at most capacity entries."""
        self._entries: deque[HistoryEntry] = deque(entries, maxlen=capacity)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def capacity(self) -> int:
        """Maximum number of entries kept."""
        assert self._entries.maxlen is not None
        return self._entries.maxlen

    def record(self, track: Track, played_at: datetime | None = None) -> HistoryEntry:
        """Append a copy of a played track, later edits do not rewrite the past."""
        entry = HistoryEntry(track=replace(track), played_at=played_at or utc_now())
        self._entries.append(entry)
        return entry

    def tail(self, count: int = SNAPSHOT_HISTORY_SIZE) -> list[HistoryEntry]:
        """Return the last count entries, oldest first."""
        if count <= 0:
            return []
        return list(self._entries)[-count:]

    def recent(self, count: int = RECENT_HISTORY_SIZE) -> list[HistoryEntry]:
        """Return the last count entries, most recent first."""
        return list(reversed(self.tail(count)))

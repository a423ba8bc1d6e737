"""In-memory recency cache of prior queries.

Design invariants
-----------------
1.  At most ``capacity`` entries are held.
2.  Aggregate identifiers are unique: adding an identifier that is already
    cached replaces the old entry wholesale and moves it to the front.
3.  Entries are kept newest-inserted first, so truncation always drops the
    least-recently-inserted entries (LRU by insertion, not by access).
4.  ``list_recent()`` sorts by entry timestamp on every call and never
    trusts the stored order, which may drift under clock adjustments or
    externally loaded state.

The store is not thread-safe.  Callers serialise ``add_entry`` and saves.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from drill.core.clock import IClock, WallClock
from drill.core.ids import ensure_utc
from drill.core.models import CommandRecord, EventRecord

logger = logging.getLogger(__name__)

MAX_CACHED_REQUESTS = 5


class CacheEntry(BaseModel):
    """Point-in-time snapshot of one aggregate's history."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    aggregate_id: str
    timestamp: datetime
    events: list[EventRecord] = Field(default_factory=list)
    commands: list[CommandRecord] = Field(default_factory=list)
    is_mock: bool = False

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class CacheStore:
    """Ordered, capacity-bounded list of :class:`CacheEntry`.

    Parameters
    ----------
    entries:
        Initial entries, newest first.  Duplicated identifiers keep their
        first occurrence and anything beyond *capacity* is dropped.
    capacity:
        Maximum number of entries.
    clock:
        Source of entry timestamps.
    """

    def __init__(
        self,
        entries: Iterable[CacheEntry] = (),
        *,
        capacity: int = MAX_CACHED_REQUESTS,
        clock: IClock | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._clock: IClock = clock or WallClock()
        self._entries: list[CacheEntry] = []

        seen: set[str] = set()
        for entry in entries:
            if entry.aggregate_id in seen:
                logger.debug("Dropping duplicate cache entry for %s", entry.aggregate_id)
                continue
            seen.add(entry.aggregate_id)
            self._entries.append(entry)
        if len(self._entries) > capacity:
            logger.debug(
                "Truncating %d loaded cache entries to %d",
                len(self._entries), capacity,
            )
            del self._entries[capacity:]

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> tuple[CacheEntry, ...]:
        """Entries in stored order (newest inserted first)."""
        return tuple(self._entries)

    def add_entry(
        self,
        aggregate_id: str,
        events: Sequence[EventRecord],
        commands: Sequence[CommandRecord],
        is_mock: bool = False,
    ) -> CacheEntry:
        """Insert a fresh snapshot at the front, replacing any older one."""
        entry = CacheEntry(
            aggregate_id=aggregate_id,
            timestamp=self._clock.now(),
            events=list(events),
            commands=list(commands),
            is_mock=is_mock,
        )
        self._entries = [e for e in self._entries if e.aggregate_id != aggregate_id]
        self._entries.insert(0, entry)

        if len(self._entries) > self._capacity:
            evicted = self._entries[self._capacity:]
            del self._entries[self._capacity:]
            logger.debug(
                "Evicted %s",
                ", ".join(e.aggregate_id for e in evicted),
            )
        return entry

    def get_entry(self, aggregate_id: str) -> CacheEntry | None:
        """Exact-match lookup."""
        for entry in self._entries:
            if entry.aggregate_id == aggregate_id:
                return entry
        return None

    def list_recent(self) -> list[CacheEntry]:
        """All entries, most recent timestamp first."""
        return sorted(self._entries, key=lambda e: e.timestamp, reverse=True)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, aggregate_id: object) -> bool:
        return any(e.aggregate_id == aggregate_id for e in self._entries)

"""Durable storage for the recency cache.

This module provides:

*  ``ICacheStorage``: the protocol.
*  ``JsonFileCacheStorage``: one pretty-printed JSON document on disk,
   ``~/.drill_cache.json`` by default.
*  ``InMemoryCacheStorage``: keeps the serialised document in memory,
   for tests and throwaway runs.
*  ``load_store`` / ``save_store``: the same operations as plain
   functions over an explicit path.

Reading never fails: a missing, unreadable, unparseable or
schema-violating file yields an empty store.  Writing always reports
failure as :class:`CacheSaveError`.  The document is replaced whole; last
writer wins and there is no cross-process locking.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from drill.core.clock import IClock
from drill.core.errors import CacheLoadError, CacheSaveError
from drill.core.file_io import atomic_write_text

from .store import MAX_CACHED_REQUESTS, CacheEntry, CacheStore

logger = logging.getLogger(__name__)


class _CacheDocument(BaseModel):
    """On-disk envelope: ``{"requests": [...]}``, newest first."""

    model_config = ConfigDict(populate_by_name=True)

    requests: list[CacheEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def dump_store(store: CacheStore) -> str:
    """Serialise *store* to pretty-printed JSON text."""
    doc = _CacheDocument(requests=list(store.entries))
    return json.dumps(doc.model_dump(mode="json", by_alias=True), indent=2)


def parse_store(
    text: str,
    *,
    capacity: int = MAX_CACHED_REQUESTS,
    clock: IClock | None = None,
) -> CacheStore:
    """Parse cache text.  Raises :class:`CacheLoadError` on any problem."""
    try:
        doc = _CacheDocument.model_validate_json(text)
    except ValidationError as exc:
        raise CacheLoadError(f"invalid cache document: {exc.error_count()} errors") from exc
    return CacheStore(doc.requests, capacity=capacity, clock=clock)


def load_store(
    path: str | Path,
    *,
    capacity: int = MAX_CACHED_REQUESTS,
    clock: IClock | None = None,
) -> CacheStore:
    """Read the cache at *path*, degrading to an empty store."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return CacheStore(capacity=capacity, clock=clock)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cache file %s unreadable, starting empty: %s", path, exc)
        return CacheStore(capacity=capacity, clock=clock)

    try:
        store = parse_store(text, capacity=capacity, clock=clock)
    except CacheLoadError as exc:
        logger.warning("Cache file %s corrupt, starting empty: %s", path, exc)
        return CacheStore(capacity=capacity, clock=clock)

    logger.debug("Loaded %d cached requests from %s", len(store), path)
    return store


def save_store(store: CacheStore, path: str | Path) -> None:
    """Write *store* to *path*.  Raises :class:`CacheSaveError`."""
    path = Path(path)
    try:
        atomic_write_text(path, dump_store(store))
    except OSError as exc:
        raise CacheSaveError(f"cannot write cache file {path}: {exc}") from exc
    logger.debug("Saved %d cached requests to %s", len(store), path)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class ICacheStorage(Protocol):
    """Durable home of a :class:`CacheStore`."""

    def load(self) -> CacheStore:
        """Read the stored cache.  Never raises; degrades to empty."""
        ...

    def save(self, store: CacheStore) -> None:
        """Persist *store* whole.  Raises :class:`CacheSaveError`."""
        ...


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------

class JsonFileCacheStorage:
    """Single JSON file, replaced atomically on save."""

    def __init__(
        self,
        path: str | Path,
        *,
        capacity: int = MAX_CACHED_REQUESTS,
        clock: IClock | None = None,
    ) -> None:
        self._path = Path(path).expanduser()
        self._capacity = capacity
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> CacheStore:
        return load_store(self._path, capacity=self._capacity, clock=self._clock)

    def save(self, store: CacheStore) -> None:
        save_store(store, self._path)


class InMemoryCacheStorage:
    """Holds the serialised document in memory.  Nothing touches disk.

    Round-trips through the same JSON text as the file backend so tests
    exercise the real encoding.
    """

    def __init__(
        self,
        text: str | None = None,
        *,
        capacity: int = MAX_CACHED_REQUESTS,
        clock: IClock | None = None,
    ) -> None:
        self.text = text
        self.saves = 0
        self._capacity = capacity
        self._clock = clock

    def load(self) -> CacheStore:
        if self.text is None:
            return CacheStore(capacity=self._capacity, clock=self._clock)
        try:
            return parse_store(self.text, capacity=self._capacity, clock=self._clock)
        except CacheLoadError as exc:
            logger.warning("In-memory cache corrupt, starting empty: %s", exc)
            return CacheStore(capacity=self._capacity, clock=self._clock)

    def save(self, store: CacheStore) -> None:
        self.text = dump_store(store)
        self.saves += 1

    def document(self) -> dict[str, Any]:
        """Parsed JSON of the last save (testing helper)."""
        return json.loads(self.text or '{"requests": []}')

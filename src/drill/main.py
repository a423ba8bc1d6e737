"""Application wiring.

Composes the aggregator and the recency cache: fetch (or synthesise)
a history, add it to the cache, save the cache.  The CLI and any other
automation call into here.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from .cache.storage import ICacheStorage, InMemoryCacheStorage, JsonFileCacheStorage
from .cache.store import CacheEntry, CacheStore
from .core.clock import IClock
from .core.config import Settings, resolve_services
from .core.errors import ConfigError
from .core.ids import new_id
from .core.models import CommandRecord, EventRecord, ServiceEndpoint
from .fetcher.aggregator import FetchOutcome, ServiceAggregator
from .mock import generate_mock_data

logger = logging.getLogger(__name__)


def open_storage(settings: Settings, *, clock: IClock | None = None) -> ICacheStorage:
    """Build the file-backed cache storage configured by *settings*.

    Without a cache path (no home directory) the cache lives in memory
    for this run only.
    """
    if settings.cache_path is None:
        logger.warning("No home directory; cache will not be persisted")
        return InMemoryCacheStorage(capacity=settings.cache_capacity, clock=clock)
    return JsonFileCacheStorage(
        settings.cache_path,
        capacity=settings.cache_capacity,
        clock=clock,
    )


async def fetch_history(
    aggregate_id: str,
    services: list[ServiceEndpoint],
    *,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchOutcome:
    """Fan out to *services*.  Raises ``AggregationError`` on total failure."""
    async with ServiceAggregator(services, timeout=timeout, transport=transport) as agg:
        return await agg.fetch_all(aggregate_id)


def remember(
    storage: ICacheStorage,
    store: CacheStore,
    aggregate_id: str,
    events: Sequence[EventRecord],
    commands: Sequence[CommandRecord],
    *,
    is_mock: bool,
) -> CacheEntry:
    """Add a snapshot and persist the whole store.

    Raises ``CacheSaveError``; a just-fetched result is never dropped
    silently.
    """
    entry = store.add_entry(aggregate_id, events, commands, is_mock)
    storage.save(store)
    return entry


async def run_fetch(
    settings: Settings,
    aggregate_id: str,
    *,
    storage: ICacheStorage | None = None,
    store: CacheStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[CacheEntry, FetchOutcome]:
    """Fetch *aggregate_id* from every configured service and cache it."""
    services = resolve_services(settings)
    if not services:
        raise ConfigError(
            "No services configured. Create a .drill.csv file or set DRILL_SERVICES."
        )

    storage = storage or open_storage(settings)
    store = store if store is not None else storage.load()

    logger.info(
        "Fetching %s from %d services", aggregate_id, len(services),
        extra={"aggregate_id": aggregate_id},
    )
    outcome = await fetch_history(
        aggregate_id, services,
        timeout=settings.request_timeout,
        transport=transport,
    )
    entry = remember(
        storage, store, aggregate_id, outcome.events, outcome.commands,
        is_mock=False,
    )
    return entry, outcome


def run_mock(
    settings: Settings,
    *,
    aggregate_id: str | None = None,
    storage: ICacheStorage | None = None,
    store: CacheStore | None = None,
) -> CacheEntry:
    """Synthesise a history, cache it, and return the entry."""
    aggregate_id = aggregate_id or new_id()
    storage = storage or open_storage(settings)
    store = store if store is not None else storage.load()

    events, commands = generate_mock_data(aggregate_id)
    logger.info(
        "Generated mock history for %s", aggregate_id,
        extra={"aggregate_id": aggregate_id},
    )
    return remember(storage, store, aggregate_id, events, commands, is_mock=True)

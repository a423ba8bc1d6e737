"""Bounded, recency-ordered cache of prior queries."""

from .storage import (
    ICacheStorage,
    InMemoryCacheStorage,
    JsonFileCacheStorage,
    load_store,
    save_store,
)
from .store import MAX_CACHED_REQUESTS, CacheEntry, CacheStore

__all__ = [
    "CacheEntry",
    "CacheStore",
    "ICacheStorage",
    "InMemoryCacheStorage",
    "JsonFileCacheStorage",
    "MAX_CACHED_REQUESTS",
    "load_store",
    "save_store",
]

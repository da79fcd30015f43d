"""
Dashboard Core Sync — Query Cache Primitives.

Provides the pieces that keep displayed data consistent with the store:
- QueryKey: identity of a cacheable read
- QueryCache: de-duplicated, tag-invalidated result cache
- QueryObserver: per-view ordering guard against late responses
"""
from core.sync.observer import ObserverClosed, QueryObserver
from core.sync.query_cache import (
    CacheEntry,
    CacheStats,
    EntryState,
    QueryCache,
)
from core.sync.query_key import QueryKey, make_query_key

__all__ = [
    # Keys
    "QueryKey",
    "make_query_key",
    # Cache
    "CacheEntry",
    "CacheStats",
    "EntryState",
    "QueryCache",
    # Observer
    "ObserverClosed",
    "QueryObserver",
]

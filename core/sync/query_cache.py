"""
Query cache — de-duplicated, tag-invalidated storage for read results.

Each query key owns one CacheEntry moving through:

    idle -> loading -> fresh | error
    fresh -> stale            (a related mutation, or max age exceeded)
    stale | error -> loading  (lazily, on next access)

Guarantees:
- At most one in-flight request per key; concurrent callers share it
- Invalidation is a tag index lookup, never a scan
- Cached values are replaced wholesale, never patched
- A response belonging to a superseded request is discarded
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable
import asyncio
import logging
import time

from core.sync.query_key import QueryKey

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


class EntryState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    FRESH = "fresh"
    STALE = "stale"
    ERROR = "error"


@dataclass
class CacheEntry:
    """Cached result (or failure) of one query key."""
    key: QueryKey
    tags: frozenset[str] = frozenset()
    state: EntryState = EntryState.IDLE
    data: Any = None
    has_data: bool = False
    error: BaseException | None = None
    updated_at: float | None = None
    fetch_count: int = 0
    generation: int = 0
    invalidated_while_loading: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": str(self.key),
            "tags": sorted(self.tags),
            "state": self.state.value,
            "has_data": self.has_data,
            "error": repr(self.error) if self.error else None,
            "fetch_count": self.fetch_count,
        }


@dataclass
class CacheStats:
    """Entry counts per state."""
    total: int = 0
    idle: int = 0
    loading: int = 0
    fresh: int = 0
    stale: int = 0
    error: int = 0
    in_flight: int = 0
    tags: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "idle": self.idle,
            "loading": self.loading,
            "fresh": self.fresh,
            "stale": self.stale,
            "error": self.error,
            "in_flight": self.in_flight,
            "tags": dict(self.tags),
        }


def _consume_result(future: asyncio.Future) -> None:
    # Retrieve exceptions nobody awaited so asyncio does not warn about them.
    if not future.cancelled():
        future.exception()


class QueryCache:
    """In-memory query cache. One instance may be shared by several identities."""

    def __init__(
        self,
        max_age_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._inflight: dict[QueryKey, asyncio.Future] = {}
        self._tag_index: dict[str, set[QueryKey]] = {}

    # --- Inspection ---

    def entry(self, key: QueryKey) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is not None:
            self._expire(entry)
        return entry

    def state(self, key: QueryKey) -> EntryState:
        entry = self.entry(key)
        return entry.state if entry else EntryState.IDLE

    def peek(self, key: QueryKey) -> Any:
        """Last known data for a key, whatever its state. None if never loaded."""
        entry = self._entries.get(key)
        return entry.data if entry and entry.has_data else None

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def keys_for_tag(self, tag: str) -> frozenset[QueryKey]:
        return frozenset(self._tag_index.get(tag, ()))

    def is_in_flight(self, key: QueryKey) -> bool:
        return key in self._inflight

    def get_stats(self) -> CacheStats:
        stats = CacheStats(total=len(self._entries), in_flight=len(self._inflight))
        for entry in self._entries.values():
            self._expire(entry)
            current = getattr(stats, entry.state.value)
            setattr(stats, entry.state.value, current + 1)
        stats.tags = {tag: len(keys) for tag, keys in self._tag_index.items() if keys}
        return stats

    # --- Reads ---

    async def fetch(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        tags: Iterable[str] = (),
    ) -> Any:
        """
        Resolve a key from cache or through `fetcher`.

        Fresh entries are returned as is. If a request for the key is
        already running the caller attaches to it. Otherwise a new request
        is issued and its failure is raised to every waiting caller.
        """
        entry = self._ensure_entry(key, tags)

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Attaching to in-flight request for %s", key)
            return await asyncio.shield(pending)

        self._expire(entry)
        if entry.state == EntryState.FRESH:
            return entry.data

        return await self._start(entry, fetcher)

    async def _start(self, entry: CacheEntry, fetcher: Fetcher) -> Any:
        entry.generation += 1
        entry.state = EntryState.LOADING
        entry.invalidated_while_loading = False
        entry.fetch_count += 1
        logger.debug("Fetching %s (generation %d)", entry.key, entry.generation)

        future = asyncio.ensure_future(self._run(entry, entry.generation, fetcher))
        future.add_done_callback(_consume_result)
        self._inflight[entry.key] = future
        return await asyncio.shield(future)

    async def _run(self, entry: CacheEntry, generation: int, fetcher: Fetcher) -> Any:
        try:
            data = await fetcher()
        except Exception as exc:
            if self._is_current(entry, generation):
                entry.state = EntryState.ERROR
                entry.error = exc
                logger.debug("Fetch failed for %s: %r", entry.key, exc)
            else:
                logger.debug("Discarding superseded failure for %s", entry.key)
            raise
        else:
            if self._is_current(entry, generation):
                entry.data = data
                entry.has_data = True
                entry.error = None
                entry.updated_at = self._clock()
                if entry.invalidated_while_loading:
                    entry.state = EntryState.STALE
                    logger.debug("%s was invalidated mid-flight, storing as stale", entry.key)
                else:
                    entry.state = EntryState.FRESH
            else:
                logger.debug("Discarding superseded response for %s", entry.key)
            return data
        finally:
            if self._is_current(entry, generation):
                self._inflight.pop(entry.key, None)

    def _is_current(self, entry: CacheEntry, generation: int) -> bool:
        return entry.generation == generation and self._entries.get(entry.key) is entry

    # --- Writes ---

    def set_data(self, key: QueryKey, data: Any, tags: Iterable[str] = ()) -> CacheEntry:
        """
        Accept a confirmed value for a single key (e.g. the entity a command
        returned). A request still running for the key predates this value,
        so its eventual response is ignored.
        """
        entry = self._ensure_entry(key, tags)
        if key in self._inflight:
            self._detach(entry)
        entry.data = data
        entry.has_data = True
        entry.error = None
        entry.state = EntryState.FRESH
        entry.updated_at = self._clock()
        return entry

    def invalidate_tags(self, *tags: str) -> list[QueryKey]:
        """Mark every key depending on any of `tags` as stale. Returns the keys touched."""
        keys: set[QueryKey] = set()
        for tag in tags:
            keys.update(self._tag_index.get(tag, ()))
        touched = [key for key in keys if self._mark_stale(self._entries[key])]
        if touched:
            logger.debug("Invalidated %d keys for tags %s", len(touched), sorted(tags))
        return touched

    def invalidate(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        return bool(entry and self._mark_stale(entry))

    def _mark_stale(self, entry: CacheEntry) -> bool:
        if entry.state == EntryState.FRESH:
            entry.state = EntryState.STALE
            return True
        if entry.state == EntryState.LOADING:
            entry.invalidated_while_loading = True
            return True
        return False

    def cancel(self, key: QueryKey) -> bool:
        """Ignore the eventual result of the in-flight request for `key`."""
        entry = self._entries.get(key)
        if entry is None or key not in self._inflight:
            return False
        self._detach(entry)
        entry.state = EntryState.STALE if entry.has_data else EntryState.IDLE
        logger.debug("Cancelled in-flight request for %s", key)
        return True

    def _detach(self, entry: CacheEntry) -> None:
        entry.generation += 1
        self._inflight.pop(entry.key, None)

    def remove(self, key: QueryKey) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._inflight.pop(key, None)
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tag_index[tag]
        return True

    def clear(self) -> None:
        self._entries.clear()
        self._inflight.clear()
        self._tag_index.clear()

    def gc(self) -> int:
        """Drop entries holding neither data nor a running request. Returns count removed."""
        dead = [
            key for key, entry in self._entries.items()
            if not entry.has_data and key not in self._inflight
        ]
        for key in dead:
            self.remove(key)
        return len(dead)

    # --- Internals ---

    def _ensure_entry(self, key: QueryKey, tags: Iterable[str]) -> CacheEntry:
        tags = frozenset(tags)
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, tags=tags)
            self._entries[key] = entry
        elif not tags <= entry.tags:
            entry.tags = entry.tags | tags
        for tag in tags:
            self._tag_index.setdefault(tag, set()).add(key)
        return entry

    def _expire(self, entry: CacheEntry) -> None:
        if (
            self.max_age_seconds is not None
            and entry.state == EntryState.FRESH
            and entry.updated_at is not None
            and self._clock() - entry.updated_at > self.max_age_seconds
        ):
            entry.state = EntryState.STALE

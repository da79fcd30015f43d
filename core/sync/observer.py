"""
Query observer — one consuming view's window onto the cache.

A view (a task list filtered by status, a proposal panel for the selected
client) changes its parameters over time. The observer remembers which
request is current and drops responses that arrive for a request the view
has already moved past, or after the view was closed. Dropped completions
are not errors.
"""
from __future__ import annotations
from typing import Any, Iterable
import logging

from core.sync.query_cache import Fetcher, QueryCache
from core.sync.query_key import QueryKey

logger = logging.getLogger(__name__)


class ObserverClosed(RuntimeError):
    """Raised when observing through a closed observer."""


class QueryObserver:
    """Applies query results to a view in request order."""

    def __init__(self, cache: QueryCache):
        self._cache = cache
        self._sequence = 0
        self._closed = False
        self.key: QueryKey | None = None
        self.data: Any = None
        self.error: BaseException | None = None
        self.discarded = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def observe(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        tags: Iterable[str] = (),
    ) -> bool:
        """
        Point the view at `key` and resolve it.

        Returns True when the result was applied to `data`, False when a
        newer observe() or close() superseded this one while it ran.
        Failures of the current request are stored in `error` and raised.
        """
        if self._closed:
            raise ObserverClosed("observer is closed")

        self._sequence += 1
        sequence = self._sequence
        self.key = key

        try:
            data = await self._cache.fetch(key, fetcher, tags)
        except Exception as exc:
            if self._is_current(sequence):
                self.error = exc
                raise
            self._discard(key)
            return False

        if not self._is_current(sequence):
            self._discard(key)
            return False

        self.data = data
        self.error = None
        return True

    def close(self) -> None:
        """Tear the view down. Results still in flight will be ignored."""
        self._closed = True
        self._sequence += 1

    def _is_current(self, sequence: int) -> bool:
        return not self._closed and sequence == self._sequence

    def _discard(self, key: QueryKey) -> None:
        self.discarded += 1
        logger.debug("Discarding superseded result for %s", key)

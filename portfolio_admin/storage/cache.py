"""
An in-memory query cache keyed by record kind.

Reads are de-duplicated while in flight and stay fresh until a write invalidates
them; there is no time-based expiry.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from portfolio_admin.models.stats import CacheStats

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class QueryState:
    """What a reader can observe about one cached query."""

    data: Any = None
    error: Exception | None = None
    is_loading: bool = False
    is_stale: bool = True

    @property
    def is_success(self) -> bool:
        return self.error is None and self.data is not None


@dataclass
class _Entry:
    data: Any = None
    has_data: bool = False
    error: Exception | None = None
    stale: bool = True
    generation: int = 0
    in_flight: asyncio.Task | None = None


class QueryCache:
    """
    Manages cached query results with request de-duplication and
    invalidate-on-write freshness.

    An invalidation bumps the key's generation and detaches any in-flight fetch.
    A detached fetch still resolves for the callers already waiting on it, but
    its result is never stored, so the next read goes back to the store.
    """

    def __init__(self, stats: CacheStats | None = None):
        """
        Initializes the cache.

        Args:
            stats: Optional counters to record into; a fresh set is created otherwise.
        """
        self._entries: dict[str, _Entry] = {}
        self.stats = stats or CacheStats()

    def _entry(self, key: str) -> _Entry:
        return self._entries.setdefault(key, _Entry())

    def get(self, key: str) -> Any | None:
        """Returns the cached value for a key, stale or not, or None."""
        entry = self._entries.get(key)
        if entry is None or not entry.has_data:
            return None
        return entry.data

    def set(self, key: str, value: Any) -> None:
        """Stores a fresh value for a key."""
        entry = self._entry(key)
        entry.data = value
        entry.has_data = True
        entry.stale = False
        entry.error = None

    def invalidate(self, key: str) -> None:
        """Marks a key stale so the next read re-fetches it."""
        entry = self._entry(key)
        entry.stale = True
        entry.generation += 1
        if entry.in_flight is not None:
            log.debug(f"Invalidated '{key}' while a fetch was in flight.")
        entry.in_flight = None
        self.stats.invalidations += 1

    def state(self, key: str) -> QueryState:
        """Returns a snapshot of a key's data, error and loading status."""
        entry = self._entries.get(key)
        if entry is None:
            return QueryState()
        return QueryState(
            data=entry.data if entry.has_data else None,
            error=entry.error,
            is_loading=entry.in_flight is not None and not entry.in_flight.done(),
            is_stale=entry.stale,
        )

    async def fetch(self, key: str, fetcher: Callable[[], Awaitable[T]]) -> T:
        """
        Returns the cached value for a key, fetching it if needed.

        Concurrent calls for the same key share a single in-flight fetch.
        Errors from the fetcher propagate to every caller waiting on it.
        """
        entry = self._entry(key)

        if entry.has_data and not entry.stale:
            self.stats.hits += 1
            return entry.data

        if entry.in_flight is not None:
            self.stats.coalesced += 1
            log.debug(f"Joining in-flight fetch for '{key}'.")
            return await asyncio.shield(entry.in_flight)

        self.stats.misses += 1
        task = asyncio.ensure_future(
            self._run(key, entry, entry.generation, fetcher)
        )
        task.add_done_callback(_consume_exception)
        entry.in_flight = task
        return await asyncio.shield(task)

    async def _run(
        self,
        key: str,
        entry: _Entry,
        generation: int,
        fetcher: Callable[[], Awaitable[T]],
    ) -> T:
        self.stats.record_fetch(key)
        try:
            value = await fetcher()
        except Exception as e:
            self.stats.failures += 1
            if entry.generation == generation:
                entry.error = e
                entry.in_flight = None
            raise

        if entry.generation == generation:
            entry.data = value
            entry.has_data = True
            entry.stale = False
            entry.error = None
            entry.in_flight = None
        else:
            log.debug(f"Discarding result for '{key}': invalidated during fetch.")
        return value

    def clear(self) -> None:
        """Removes all entries."""
        log.debug("Clearing all cache entries...")
        for entry in self._entries.values():
            entry.generation += 1
        self._entries.clear()


def _consume_exception(task: asyncio.Task) -> None:
    # Waiters may have been cancelled; mark the error as retrieved either way.
    if not task.cancelled():
        task.exception()

"""Per-customer cache of read views, invalidated after writes."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Hashable, Optional, TypeVar

T = TypeVar("T")

CHECKLIST_PROGRESS = "checklist-progress"
GUIDES = "guides"
INCOMING_URLS = "incoming-urls"
SUBSCRIPTION_PLAN = "subscription-plan"
ADDRESS = "address"

logger = logging.getLogger(__name__)


class ViewCache:
    """Thread-safe memo keyed by ``(customer_id, view)``.

    Entries expire after ``ttl_seconds`` because some records (deindexing
    statuses, addresses) are written by other systems. ``ttl_seconds=None``
    keeps entries until they are invalidated.

    Every invalidation bumps a generation counter. A load that was running
    while its key was invalidated returns its value to the caller but does not
    store it.
    """

    def __init__(self, ttl_seconds: Optional[float] = 30.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, Hashable], tuple[float, Any]] = {}
        self._key_generations: dict[tuple[str, Hashable], int] = {}
        self._customer_generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def _fresh(self, stored_at: float) -> bool:
        return self.ttl_seconds is None or self._clock() - stored_at < self.ttl_seconds

    def _generation(self, key: tuple[str, Hashable]) -> tuple[int, int]:
        return self._customer_generations.get(key[0], 0), self._key_generations.get(key, 0)

    def get_or_load(self, customer_id: str, view: Hashable, loader: Callable[[], T]) -> T:
        key = (customer_id, view)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._fresh(entry[0]):
                return entry[1]
            generation = self._generation(key)
        value = loader()
        with self._lock:
            if self._generation(key) == generation:
                self._entries[key] = (self._clock(), value)
            else:
                logger.debug(f"Discarding view {view} for customer {customer_id}: invalidated while loading")
        return value

    def invalidate(self, customer_id: str, *views: Hashable) -> None:
        with self._lock:
            if not views:
                self._customer_generations[customer_id] = self._customer_generations.get(customer_id, 0) + 1
                stale = [key for key in self._entries if key[0] == customer_id]
            else:
                stale = [(customer_id, view) for view in views]
                for key in stale:
                    self._key_generations[key] = self._key_generations.get(key, 0) + 1
            for key in stale:
                self._entries.pop(key, None)
        logger.debug(f"Invalidated views {views or 'all'} for customer {customer_id}")

    def __contains__(self, key: tuple[str, Hashable]) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._fresh(entry[0])

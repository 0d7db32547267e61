"""Busy-time cache: avoids refetching identical provider queries within a short window."""
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Hashable, List, Optional, Sequence, Tuple

from slotwise.scheduling.types import BusyInterval, SelectedCalendar

logger = logging.getLogger(__name__)

CacheKey = Tuple[Hashable, str, str, Tuple[str, ...]]


def cache_key(
    credential_id: Hashable,
    date_from: str,
    date_to: str,
    selected_calendars: Sequence[SelectedCalendar],
) -> CacheKey:
    # Callers pass calendars already sorted by external_id, so the tuple is stable.
    return (credential_id, date_from, date_to, tuple(sc.external_id for sc in selected_calendars))


class BusyTimesCache:
    """LRU cache keyed on (credential, range, calendar ids) with TTL expiry."""

    def __init__(self, max_size: int = 500, ttl_seconds: float = 60.0) -> None:
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._store: OrderedDict[CacheKey, Tuple[List[BusyInterval], float]] = OrderedDict()

    def get(self, key: CacheKey) -> Optional[List[BusyInterval]]:
        entry = self._store.get(key)
        if entry is None:
            return None
        intervals, ts = entry
        if time.monotonic() - ts > self._ttl:
            self._store.pop(key, None)
            return None
        self._store.move_to_end(key)
        logger.debug("BusyTimesCache: hit for credential %s", key[0])
        return list(intervals)

    def put(self, key: CacheKey, intervals: List[BusyInterval]) -> None:
        self._store[key] = (list(intervals), time.monotonic())
        self._store.move_to_end(key)
        while len(self._store) > self._max_size:
            self._store.popitem(last=False)

    def clear(self) -> None:
        self._store.clear()

    @property
    def size(self) -> int:
        return len(self._store)

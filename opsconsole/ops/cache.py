# -*- coding: utf-8 -*-
"""
Read caches for the ops services

TtlCache holds the single unfiltered collection of one service.
PagedCache holds one entry per (page, page_size, scope_key).

Both use a request ticket for their recency guard: a reader calls begin()
before going to the store and hands the ticket back to put(). A put is
dropped when a newer read already filled the entry or when the cache was
invalidated after the read started, so a slow stale response never lands
on top of fresher data.
"""
import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60

MISS = object()


@dataclass
class CacheEntry:
    data: Any
    cached_at: float
    ttl: float
    ticket: int

    def is_fresh(self, now: float) -> bool:
        return self.data is not None and now - self.cached_at < self.ttl


class _TicketMixin:

    def _init_tickets(self):
        self._lock = threading.Lock()
        self._tickets = itertools.count(1)

    def begin(self) -> int:
        """Ticket for a read that is about to hit the backing store."""
        with self._lock:
            return next(self._tickets)


class TtlCache(_TicketMixin):

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic, label: str = 'cache'):
        self.ttl = ttl
        self.clock = clock
        self.label = label
        self._entry: Optional[CacheEntry] = None
        self._floor = 0
        self._init_tickets()

    def get(self):
        """Cached data while fresh, otherwise MISS."""
        entry = self._entry
        if entry is None or not entry.is_fresh(self.clock()):
            return MISS
        return entry.data

    def put(self, data, ticket: Optional[int] = None) -> bool:
        """
        Replace the entry. Without a ticket the write is unconditional;
        with one it is subject to the recency guard. Returns whether it landed.
        """
        with self._lock:
            if ticket is None:
                ticket = next(self._tickets)
            elif ticket <= self._floor or (self._entry is not None and ticket < self._entry.ticket):
                logger.debug(f"{self.label}: dropping stale put (ticket {ticket})")
                return False
            self._entry = CacheEntry(data=data, cached_at=self.clock(), ttl=self.ttl, ticket=ticket)
            return True

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None
            self._floor = next(self._tickets)


class PagedCache(_TicketMixin):
    """
    Keyed TTL cache for paginated browsing.

    Keys are (page, page_size, scope_key) tuples. Invalidation is per scope
    key; page boundaries shift whenever any row in that scope changes.
    """

    def __init__(self, ttl: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic, label: str = 'paged_cache'):
        self.ttl = ttl
        self.clock = clock
        self.label = label
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._scope_floors: Dict[str, int] = {}
        self._global_floor = 0
        self._init_tickets()

    @staticmethod
    def make_key(page: int, page_size: int, scope_key: str):
        return (page, page_size, scope_key)

    def get(self, key):
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self.clock()):
            return MISS
        return entry.data

    def peek(self, key) -> Optional[CacheEntry]:
        """The raw entry for a key, fresh or not."""
        return self._entries.get(key)

    def put(self, key, data, ticket: Optional[int] = None) -> bool:
        """Store a page; expired pages for any key are evicted first."""
        scope = key[2]
        with self._lock:
            self._evict_expired()
            if ticket is None:
                ticket = next(self._tickets)
            else:
                floor = max(self._global_floor, self._scope_floors.get(scope, 0))
                current = self._entries.get(key)
                if ticket <= floor or (current is not None and ticket < current.ticket):
                    logger.debug(f"{self.label}: dropping stale put for {key} (ticket {ticket})")
                    return False
            self._entries[key] = CacheEntry(data=data, cached_at=self.clock(), ttl=self.ttl, ticket=ticket)
            return True

    def invalidate_scopes(self, *scope_keys: str) -> int:
        """Drop every page cached under the given scope keys."""
        with self._lock:
            floor = next(self._tickets)
            for scope in scope_keys:
                self._scope_floors[scope] = floor
            doomed = [k for k in self._entries if k[2] in scope_keys]
            for k in doomed:
                del self._entries[k]
            return len(doomed)

    def _evict_expired(self) -> None:
        now = self.clock()
        expired = [k for k, entry in self._entries.items() if not entry.is_fresh(now)]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"{self.label}: evicted {len(expired)} expired pages")

    def invalidate_all(self) -> int:
        with self._lock:
            self._global_floor = next(self._tickets)
            count = len(self._entries)
            self._entries.clear()
            return count

    def __len__(self):
        return len(self._entries)

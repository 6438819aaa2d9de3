#!/usr/bin/env python3
"""
Forward Horizon TTL Cache
Single-process response cache for the automation endpoint. Entries expire
after a fixed time-to-live; there is no size bound and no LRU ordering.
The sweep runs on the scheduler thread, so entries are guarded by a lock.
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)

CACHE_TTL = 300  # 5 minutes


class TTLCache:
    def __init__(self, ttl=CACHE_TTL, clock=time.time):
        self.ttl = ttl
        self.clock = clock
        self._entries = {}  # key -> {'data': ..., 'timestamp': ...}
        self._lock = threading.Lock()

    def _is_fresh(self, entry, now):
        return now - entry['timestamp'] < self.ttl

    def get(self, key):
        """Return cached data if still fresh, otherwise None."""
        with self._lock:
            entry = self._entries.get(key)
        if entry and self._is_fresh(entry, self.clock()):
            return entry['data']
        return None

    def set(self, key, data):
        entry = {'data': data, 'timestamp': self.clock()}
        with self._lock:
            self._entries[key] = entry

    def get_or_compute(self, key, compute):
        """
        Return (data, hit). On a miss or an expired entry, call compute(),
        store its result and return it.
        """
        cached = self.get(key)
        if cached is not None:
            return cached, True
        data = compute()
        self.set(key, data)
        return data, False

    def sweep(self):
        """Delete expired entries. Returns the number removed."""
        now = self.clock()
        with self._lock:
            expired = [k for k, entry in self._entries.items() if not self._is_fresh(entry, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info(f"[Cache] Expired {len(expired)} entr{'y' if len(expired) == 1 else 'ies'}")
        return len(expired)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries

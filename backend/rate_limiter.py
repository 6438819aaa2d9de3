#!/usr/bin/env python3
"""
Forward Horizon Rate Limiter
Sliding-window request counter keyed by client IP. In-memory, per process.
The sweep runs on the scheduler thread, so the store is guarded by a lock.
"""

import itertools
import logging
import threading
import time

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = 600   # 10 minutes
RATE_LIMIT_MAX_CALLS = 3  # max 3 submissions per 10 min per IP

_LOCAL_PREFIXES = ('192.168.',)
_LOCAL_ADDRESSES = ('127.0.0.1', '::1', 'unknown')
_dev_counter = itertools.count()


class RateLimiter:
    def __init__(self, max_calls=RATE_LIMIT_MAX_CALLS, window=RATE_LIMIT_WINDOW, clock=time.time):
        self.max_calls = max_calls
        self.window = window
        self.clock = clock
        self._store = {}  # key -> list of timestamps, oldest first
        self._lock = threading.Lock()

    def check(self, key):
        """Return True and record the request if within limits, False if exceeded."""
        now = self.clock()
        with self._lock:
            timestamps = [t for t in self._store.get(key, []) if t > now - self.window]
            if len(timestamps) >= self.max_calls:
                self._store[key] = timestamps
                return False
            timestamps.append(now)
            self._store[key] = timestamps
        return True

    def retry_after(self, key):
        """Seconds until the oldest request in the window expires."""
        with self._lock:
            timestamps = list(self._store.get(key) or [])
        if not timestamps:
            return 0
        return max(0, int(round(timestamps[0] + self.window - self.clock())))

    def sweep(self):
        """Drop keys with no request newer than twice the window. Returns evicted count."""
        cutoff = self.clock() - self.window * 2
        evicted = 0
        with self._lock:
            for key in list(self._store):
                recent = [t for t in self._store[key] if t > cutoff]
                if recent:
                    self._store[key] = recent
                else:
                    del self._store[key]
                    evicted += 1
        if evicted:
            logger.info(f"[RateLimit] Swept {evicted} idle client(s)")
        return evicted

    def reset(self):
        with self._lock:
            self._store.clear()

    def __len__(self):
        return len(self._store)

    def __contains__(self, key):
        return key in self._store


def resolve_client_key(headers, client_address=None, now=None):
    """
    Pick the rate-limit key for a request.
    Local development addresses get a unique key per request so they are never limited.
    """
    forwarded = headers.get('X-Forwarded-For', '') or ''
    client_ip = forwarded.split(',')[0].strip()
    if not client_ip:
        client_ip = (headers.get('X-Real-IP') or '').strip()
    if not client_ip and client_address:
        client_ip = client_address[0]
    if not client_ip:
        client_ip = 'unknown'

    if client_ip == '::ffff:127.0.0.1':
        client_ip = '127.0.0.1'

    if client_ip in _LOCAL_ADDRESSES or client_ip.startswith(_LOCAL_PREFIXES):
        agent = (headers.get('User-Agent') or 'unknown')[-10:]
        stamp = int((now if now is not None else time.time()) * 1000)
        return f'dev-{agent}-{stamp}-{next(_dev_counter)}', True
    return client_ip, False

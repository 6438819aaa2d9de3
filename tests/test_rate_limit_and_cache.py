#!/usr/bin/env python3
"""
Tests for the in-memory sliding-window rate limiter and the TTL cache.
Both take an injectable clock so windows can be stepped through directly.
"""

import os
import sys
import threading
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from rate_limiter import RateLimiter, resolve_client_key
from ttl_cache import TTLCache


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


# ══════════════════════════════════════════════════════════════
# Rate limiter
# ══════════════════════════════════════════════════════════════

class TestRateLimiter(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(max_calls=3, window=600, clock=self.clock)

    def test_allows_three_then_blocks_fourth(self):
        for _ in range(3):
            self.assertTrue(self.limiter.check('203.0.113.5'))
        self.assertFalse(self.limiter.check('203.0.113.5'))

    def test_keys_are_independent(self):
        for _ in range(3):
            self.limiter.check('203.0.113.5')
        self.assertTrue(self.limiter.check('203.0.113.6'))

    def test_allowed_again_after_window(self):
        for _ in range(3):
            self.limiter.check('203.0.113.5')
        self.clock.advance(601)
        self.assertTrue(self.limiter.check('203.0.113.5'))

    def test_rejected_requests_are_not_recorded(self):
        for _ in range(3):
            self.limiter.check('203.0.113.5')
        self.clock.advance(300)
        self.assertFalse(self.limiter.check('203.0.113.5'))
        # the three accepted requests expire together; the rejected one never counted
        self.clock.advance(301)
        self.assertTrue(self.limiter.check('203.0.113.5'))

    def test_retry_after_counts_down_from_oldest(self):
        self.limiter.check('203.0.113.5')
        self.clock.advance(100)
        self.assertEqual(self.limiter.retry_after('203.0.113.5'), 500)
        self.assertEqual(self.limiter.retry_after('198.51.100.1'), 0)

    def test_sweep_evicts_idle_keys_only(self):
        self.limiter.check('old')
        self.clock.advance(1000)
        self.limiter.check('recent')
        self.clock.advance(250)
        self.assertEqual(self.limiter.sweep(), 1)
        self.assertNotIn('old', self.limiter)
        self.assertIn('recent', self.limiter)
        self.assertEqual(len(self.limiter), 1)


class TestResolveClientKey(unittest.TestCase):

    def test_first_forwarded_address_wins(self):
        key, local = resolve_client_key({'X-Forwarded-For': '203.0.113.9, 10.0.0.1'}, ('10.0.0.2', 1))
        self.assertEqual(key, '203.0.113.9')
        self.assertFalse(local)

    def test_real_ip_then_socket(self):
        self.assertEqual(resolve_client_key({'X-Real-IP': '198.51.100.4'})[0], '198.51.100.4')
        self.assertEqual(resolve_client_key({}, ('203.0.113.20', 5555))[0], '203.0.113.20')

    def test_local_addresses_get_unique_keys(self):
        for address in ('127.0.0.1', '::1', '::ffff:127.0.0.1', '192.168.1.20'):
            first, local = resolve_client_key({'X-Forwarded-For': address}, now=1.0)
            second, _ = resolve_client_key({'X-Forwarded-For': address}, now=1.0)
            self.assertTrue(local, address)
            self.assertNotEqual(first, second)
            self.assertTrue(first.startswith('dev-'))

    def test_no_address_is_unknown_and_local(self):
        key, local = resolve_client_key({})
        self.assertTrue(local)
        self.assertTrue(key.startswith('dev-'))


# ══════════════════════════════════════════════════════════════
# TTL cache
# ══════════════════════════════════════════════════════════════

class TestTTLCache(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.cache = TTLCache(ttl=300, clock=self.clock)
        self.calls = 0

    def _compute(self):
        self.calls += 1
        return {'value': self.calls}

    def test_hit_within_ttl_returns_same_value(self):
        first, hit = self.cache.get_or_compute('volunteers-stats', self._compute)
        self.assertFalse(hit)
        self.clock.advance(299)
        second, hit = self.cache.get_or_compute('volunteers-stats', self._compute)
        self.assertTrue(hit)
        self.assertEqual(first, second)
        self.assertEqual(self.calls, 1)

    def test_expired_entry_is_recomputed(self):
        self.cache.get_or_compute('beds-availability', self._compute)
        self.clock.advance(300)
        data, hit = self.cache.get_or_compute('beds-availability', self._compute)
        self.assertFalse(hit)
        self.assertEqual(data, {'value': 2})

    def test_get_returns_none_when_stale(self):
        self.cache.set('k', 'v')
        self.assertEqual(self.cache.get('k'), 'v')
        self.clock.advance(301)
        self.assertIsNone(self.cache.get('k'))

    def test_sweep_removes_expired(self):
        self.cache.set('old', 1)
        self.clock.advance(200)
        self.cache.set('new', 2)
        self.clock.advance(150)
        self.assertEqual(self.cache.sweep(), 1)
        self.assertNotIn('old', self.cache)
        self.assertIn('new', self.cache)

    def test_compute_errors_are_not_cached(self):
        def boom():
            raise RuntimeError('nope')
        with self.assertRaises(RuntimeError):
            self.cache.get_or_compute('k', boom)
        self.assertEqual(len(self.cache), 0)

    def test_clear(self):
        self.cache.set('a', 1)
        self.cache.clear()
        self.assertEqual(len(self.cache), 0)

    def test_sweep_alongside_writer_thread(self):
        errors = []

        def writer():
            try:
                for i in range(5000):
                    self.cache.set(f'system-{i}', i)
            except RuntimeError as e:
                errors.append(e)

        thread = threading.Thread(target=writer)
        thread.start()
        while thread.is_alive():
            self.cache.sweep()
        thread.join()
        self.assertEqual(errors, [])
        self.assertEqual(len(self.cache), 5000)


if __name__ == '__main__':
    unittest.main()

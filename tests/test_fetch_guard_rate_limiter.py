"""
Admission control: per-scope fetch guard and per-client rate limiter.
"""

import uuid

import pytest
from redis.exceptions import LockNotOwnedError

from database.redis_client import fetch_lock_key
from population.errors import FetchInProgressError
from population.fetch_guard import FetchGuard, RedisFetchGuard
from population.rate_limiter import FALLBACK_CLIENT_ID, RateLimiter, client_id_from_headers


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeRedis:
    """In-memory stand-in for redis.Redis.lock(): token per key, compare-and-delete release."""

    def __init__(self):
        self.store = {}
        self.timeouts = {}

    def lock(self, name, timeout=None, blocking=True):
        return FakeLock(self, name, timeout)

    def expire_now(self, name):
        self.store.pop(name, None)


class FakeLock:
    def __init__(self, client, name, timeout):
        self.client = client
        self.name = name
        self.timeout = timeout
        self.token = uuid.uuid4().hex

    def acquire(self):
        if self.name in self.client.store:
            return False
        self.client.store[self.name] = self.token
        self.client.timeouts[self.name] = self.timeout
        return True

    def release(self):
        if self.client.store.get(self.name) != self.token:
            raise LockNotOwnedError("Cannot release a lock that's no longer owned")
        del self.client.store[self.name]


# ── Fetch guard ────────────────────────────────────────────────────────────────

class TestFetchGuard:
    def test_second_acquire_rejected_until_release(self):
        guard = FetchGuard()
        assert guard.acquire("boards:state_id=1")
        assert not guard.acquire("boards:state_id=1")
        guard.release("boards:state_id=1")
        assert guard.acquire("boards:state_id=1")

    def test_distinct_keys_independent(self):
        guard = FetchGuard()
        assert guard.acquire("boards:state_id=1")
        assert guard.acquire("boards:state_id=2")
        assert guard.in_flight() == ["boards:state_id=1", "boards:state_id=2"]

    def test_release_unknown_key_is_noop(self):
        FetchGuard().release("never-held")

    def test_hold_rejects_concurrent_holder(self):
        guard = FetchGuard()
        with guard.hold("chapters:subject_id=4"):
            with pytest.raises(FetchInProgressError) as exc:
                with guard.hold("chapters:subject_id=4"):
                    pass
        assert exc.value.key == "chapters:subject_id=4"
        assert guard.in_flight() == []

    def test_hold_releases_on_exception(self):
        guard = FetchGuard()
        with pytest.raises(RuntimeError):
            with guard.hold("papers:category_id=2"):
                raise RuntimeError("generator blew up")
        assert guard.in_flight() == []
        assert guard.acquire("papers:category_id=2")


class TestRedisFetchGuard:
    def test_lock_taken_with_ttl(self):
        client = FakeRedis()
        guard = RedisFetchGuard(client, ttl_seconds=30)
        assert guard.acquire("boards:state_id=1")
        assert client.timeouts["catalog_fetch:boards:state_id=1"] == 30
        assert guard.in_flight() == ["boards:state_id=1"]

    def test_second_process_rejected(self):
        client = FakeRedis()
        assert RedisFetchGuard(client).acquire("boards:state_id=1")
        assert not RedisFetchGuard(client).acquire("boards:state_id=1")

    def test_hold_releases_lock(self):
        client = FakeRedis()
        guard = RedisFetchGuard(client)
        with pytest.raises(ValueError):
            with guard.hold("boards:state_id=1"):
                raise ValueError()
        assert client.store == {}
        assert guard.in_flight() == []

    def test_expired_holder_cannot_release_new_holders_lock(self):
        client = FakeRedis()
        first, second, third = RedisFetchGuard(client), RedisFetchGuard(client), RedisFetchGuard(client)
        key = "chapters:subject_id=4"

        assert first.acquire(key)
        client.expire_now(fetch_lock_key(key))
        assert second.acquire(key)

        first.release(key)

        assert not third.acquire(key)
        assert first.in_flight() == []
        assert second.in_flight() == [key]


# ── Rate limiter ───────────────────────────────────────────────────────────────

class TestRateLimiter:
    def test_tenth_allowed_eleventh_rejected(self):
        limiter = RateLimiter(max_requests=10, window_seconds=900, clock=FakeClock())
        assert all(limiter.allow("10.0.0.1") for _ in range(10))
        assert not limiter.allow("10.0.0.1")

    def test_clients_counted_separately(self):
        limiter = RateLimiter(max_requests=2, window_seconds=900, clock=FakeClock())
        assert limiter.allow("a") and limiter.allow("a")
        assert not limiter.allow("a")
        assert limiter.allow("b")

    def test_expired_window_restarts_at_one(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=3, window_seconds=900, clock=clock)
        for _ in range(3):
            limiter.allow("a")
        assert not limiter.allow("a")

        clock.now += 900
        assert limiter.allow("a")
        # the request that found the window expired counts as the first
        assert limiter.allow("a") and limiter.allow("a")
        assert not limiter.allow("a")

    def test_rejected_requests_do_not_extend_window(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.allow("a")
        clock.now += 59
        assert not limiter.allow("a")
        clock.now += 1
        assert limiter.allow("a")

    def test_missing_client_id_shares_fallback_bucket(self):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=FakeClock())
        assert limiter.allow(None)
        assert not limiter.allow("")
        assert not limiter.allow(FALLBACK_CLIENT_ID)

    def test_expired_entries_evicted(self):
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        for i in range(50):
            limiter.allow(f"client-{i}")
        assert limiter.tracked_clients() == 50
        clock.now += 61
        limiter.allow("late")
        assert limiter.tracked_clients() == 1

    def test_table_capped(self):
        limiter = RateLimiter(max_requests=5, window_seconds=60, max_clients=3, clock=FakeClock())
        for i in range(10):
            limiter.allow(f"client-{i}")
        assert limiter.tracked_clients() == 3


class TestClientId:
    def test_hop_added_by_trusted_proxy(self):
        assert client_id_from_headers("10.9.9.9, 203.0.113.9", "10.0.0.2") == "203.0.113.9"

    def test_spoofed_left_hops_ignored(self):
        ids = {client_id_from_headers(f"10.0.0.{i}, 203.0.113.9", "10.0.0.2") for i in range(50)}
        assert ids == {"203.0.113.9"}

    def test_two_trusted_proxies(self):
        assert client_id_from_headers("1.1.1.1, 203.0.113.9, 10.0.0.5", "10.0.0.2", trusted_proxies=2) == "203.0.113.9"

    def test_header_ignored_without_trusted_proxy(self):
        assert client_id_from_headers("203.0.113.9", "10.0.0.2", trusted_proxies=0) == "10.0.0.2"

    def test_peer_when_no_header(self):
        assert client_id_from_headers(None, "127.0.0.1") == "127.0.0.1"

    def test_fallback(self):
        assert client_id_from_headers(" ", None) == FALLBACK_CLIENT_ID

"""
Fetch guard: at most one in-flight population per scope key.

A losing request is rejected immediately (FetchInProgressError → 429), it is
never queued behind the winner. hold() releases the key on every exit path;
a leaked key would block that scope until restart (memory backend) or until
the TTL expires (redis backend).

The memory backend only protects one process. The redis backend shares the
lock across instances; the unique indexes installed by schema repair remain
the final authority either way.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set

from redis.exceptions import LockError
from redis.lock import Lock

from database.redis_client import fetch_lock_key, get_redis
from population.errors import FetchInProgressError

log = logging.getLogger("population.fetch_guard")

FETCH_GUARD_BACKEND = os.getenv("FETCH_GUARD_BACKEND", "memory").lower()
FETCH_GUARD_TTL_SECONDS = int(os.getenv("FETCH_GUARD_TTL_SECONDS", "600"))


class FetchGuard:
    """In-process guard: a set of in-flight keys behind a mutex."""

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: Set[str] = set()

    def acquire(self, key: str) -> bool:
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def in_flight(self) -> List[str]:
        with self._lock:
            return sorted(self._in_flight)

    @contextmanager
    def hold(self, key: str) -> Iterator[str]:
        if not self.acquire(key):
            log.info(f"[GUARD] rejected, already in flight: {key}")
            raise FetchInProgressError(key)
        try:
            yield key
        finally:
            self.release(key)


class RedisFetchGuard(FetchGuard):
    """
    Cross-process guard on redis-py's Lock: a random token stored under the
    per-scope key with a TTL, released by compare-and-delete. A holder whose
    TTL ran out cannot release the lock a later holder now owns.
    """

    def __init__(self, client, ttl_seconds: int = FETCH_GUARD_TTL_SECONDS):
        super().__init__()
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._held: Dict[str, Lock] = {}

    def acquire(self, key: str) -> bool:
        lock = self._client.lock(fetch_lock_key(key), timeout=self._ttl_seconds, blocking=False)
        if not lock.acquire():
            return False
        with self._lock:
            self._held[key] = lock
        return True

    def release(self, key: str) -> None:
        with self._lock:
            lock = self._held.pop(key, None)
        if lock is None:
            return
        try:
            lock.release()
        except LockError as e:
            log.warning(f"[GUARD] lock for {key} expired before release, left to its new holder: {e}")

    def in_flight(self) -> List[str]:
        with self._lock:
            return sorted(self._held)


_fetch_guard: Optional[FetchGuard] = None


def get_fetch_guard() -> FetchGuard:
    global _fetch_guard
    if _fetch_guard is None:
        if FETCH_GUARD_BACKEND == "redis":
            _fetch_guard = RedisFetchGuard(get_redis())
            log.info("[GUARD] using redis backend")
        else:
            _fetch_guard = FetchGuard()
    return _fetch_guard

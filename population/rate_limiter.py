"""
Per-client fixed-window throttle for the population endpoints.

10 requests per 15-minute window per client. When a window expires the
client's counter restarts at 1 for the request that found it expired.
Clients with no resolvable id share one bucket.

Entries are kept ordered by window start, so expired ones are always at the
front and are evicted on every call; the table is also capped at
max_clients (oldest window dropped first).
"""

import os
import threading
import time
from collections import OrderedDict
from typing import Callable, Optional

RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "10"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
RATE_LIMIT_MAX_CLIENTS = int(os.getenv("RATE_LIMIT_MAX_CLIENTS", "10000"))
# Reverse proxies in front of the app; each appends one X-Forwarded-For hop
RATE_LIMIT_TRUSTED_PROXIES = int(os.getenv("RATE_LIMIT_TRUSTED_PROXIES", "1"))

FALLBACK_CLIENT_ID = "anonymous"


class RateLimiter:
    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        max_clients: int = RATE_LIMIT_MAX_CLIENTS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_clients = max_clients
        self._clock = clock
        self._lock = threading.Lock()
        # client_id -> [window_start, count]
        self._windows: "OrderedDict[str, list]" = OrderedDict()

    def allow(self, client_id: Optional[str]) -> bool:
        """Return True if request is allowed, False if rate-limited."""
        key = client_id or FALLBACK_CLIENT_ID
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            entry = self._windows.get(key)
            if entry is None:
                self._windows[key] = [now, 1]
                while len(self._windows) > self.max_clients:
                    self._windows.popitem(last=False)
                return True
            if entry[1] >= self.max_requests:
                return False
            entry[1] += 1
            return True

    def _evict_expired(self, now: float) -> None:
        while self._windows:
            _, (started, _count) = next(iter(self._windows.items()))
            if now - started < self.window_seconds:
                break
            self._windows.popitem(last=False)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


def client_id_from_headers(
    forwarded_for: Optional[str],
    peer_host: Optional[str],
    trusted_proxies: int = RATE_LIMIT_TRUSTED_PROXIES,
) -> str:
    """
    Address appended by the outermost trusted proxy, else the socket peer,
    else the shared fallback. Hops to the left of it are client-supplied and
    never used. trusted_proxies=0 ignores X-Forwarded-For entirely.
    """
    hops = [h.strip() for h in (forwarded_for or "").split(",") if h.strip()]
    if trusted_proxies > 0 and hops:
        return hops[-min(trusted_proxies, len(hops))]
    return peer_host or FALLBACK_CLIENT_ID


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter

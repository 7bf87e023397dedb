"""
Redis client for cross-process population locks.
Backs the redis variant of the fetch guard (population/fetch_guard.py).
"""

import os
from typing import Optional

import redis

# ─── Config ────────────────────────────────────────────────────────────────────

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(REDIS_URL, decode_responses=True)
    return _redis_client


# ─── Key helpers ───────────────────────────────────────────────────────────────

def fetch_lock_key(fetch_key: str) -> str:
    return f"catalog_fetch:{fetch_key}"

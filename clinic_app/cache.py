"""
Keyed cache for frequently read booking data.

Handlers receive the cache explicitly (FastAPI dependency on app.state.cache)
rather than importing a module-level instance. Every mutation calls
invalidate_namespaces() for the entity prefixes it touched.
"""
import json
import logging
import os
import threading
import time
from typing import Any, Optional

import redis
from fastapi import Request

from .config import CACHE_BACKEND

logger = logging.getLogger(__name__)

# Entity namespaces
ORDERS_PREFIX = "orders:"
SESSIONS_PREFIX = "sessions:"
AVAILABILITY_PREFIX = "availability:"
USERS_PREFIX = "users:"


def get_redis_client():
    """Create a Redis client from REDIS_URL or the individual REDIS_* settings"""
    redis_url = os.getenv("REDIS_URL")

    if redis_url:
        # Mask password in URL for logging
        if "@" in redis_url:
            url_parts = redis_url.split("@")
            protocol = url_parts[0].split(":")[0]
            masked_url = f"{protocol}:****@{url_parts[1]}"
        else:
            masked_url = "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")

        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    else:
        redis_host = os.getenv("REDIS_HOST", "localhost")
        redis_port = int(os.getenv("REDIS_PORT", "6379"))
        client = redis.Redis(
            host=redis_host,
            port=redis_port,
            password=os.getenv("REDIS_PASSWORD", None),
            db=int(os.getenv("REDIS_DB", "0")),
            ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        logger.info(f"📡 Using Redis at {redis_host}:{redis_port}")

    client.ping()
    return client


class RedisCache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self, client=None):
        self.redis_client = client

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 30) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def invalidate_prefix(self, prefix: str) -> int:
        """Delete every key starting with prefix. Raises on Redis errors."""
        client = self._get_client()
        if not client:
            return 0

        # SCAN instead of KEYS so a large keyspace does not block the server
        keys = list(client.scan_iter(match=f"{prefix}*", count=500))
        if not keys:
            return 0
        deleted = client.delete(*keys)
        logger.debug(f"✅ Cache DELETE prefix: {prefix} ({deleted} keys)")
        return deleted


class InMemoryCache:
    """Process-local cache with per-key TTL, for development and tests"""

    def __init__(self):
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if time.monotonic() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: int = 30) -> bool:
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, value)
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)


def build_cache(backend: str = CACHE_BACKEND):
    if backend == "memory":
        logger.info("🗄️ Using in-memory cache")
        return InMemoryCache()
    return RedisCache()


def get_cache(request: Request):
    """FastAPI dependency: the cache attached to the running app"""
    return request.app.state.cache


def invalidate_namespaces(cache, *prefixes: str) -> int:
    """
    Invalidate all keys under each prefix.

    Never raises: a failed invalidation is logged and the mutation that
    triggered it still succeeds (entries expire on their own TTL).
    """
    total = 0
    for prefix in prefixes:
        try:
            total += cache.invalidate_prefix(prefix) or 0
        except Exception as e:
            logger.error(f"❌ Cache invalidation failed for {prefix}: {e}")
    return total

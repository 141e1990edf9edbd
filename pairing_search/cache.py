"""Pairing lookup cache.

Pairings are stored as small JSON objects keyed by product code. Redis is used
when the configured server answers a ping; otherwise a bounded in-process
store keeps entries until their TTL runs out. Backend failures are logged and
treated as misses so a lookup never fails because of the cache.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol

import redis

from .config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "pairing-search:"


class CacheBackend(Protocol):
    name: str

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None: ...


class RedisCache:
    name = "redis"

    def __init__(self, client: redis.Redis, prefix: str = KEY_PREFIX) -> None:
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return self.prefix + key

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as exc:
            logger.warning("Redis get %s failed: %s", key, exc)
            return None
        if not raw:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None
        if not isinstance(value, dict):
            logger.warning("Discarding cache entry %s of type %s", key, type(value).__name__)
            return None
        return value

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        try:
            self.client.setex(self._key(key), ttl, json.dumps(value))
        except redis.RedisError as exc:
            logger.warning("Redis set %s failed: %s", key, exc)


class InMemoryCache:
    """TTL store holding at most ``max_entries`` pairings."""

    name = "memory"

    def __init__(self, max_entries: int | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.max_entries = settings.cache_max_entries if max_entries is None else max_entries
        self._entries: Dict[str, tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return payload

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._purge_expired(now)
                if len(self._entries) >= self.max_entries:
                    # drop whatever would expire first
                    oldest = min(self._entries, key=lambda k: self._entries[k][0])
                    del self._entries[oldest]
            self._entries[key] = (now + ttl, value)

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._entries)


def _connect_redis() -> Optional[RedisCache]:
    client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
    try:
        client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis at %s:%s not available (%s)", settings.redis_host, settings.redis_port, exc)
        return None
    return RedisCache(client)


_cache: CacheBackend | None = None


def get_cache() -> CacheBackend:
    global _cache
    if _cache is None:
        _cache = _connect_redis() or InMemoryCache()
        logger.info("Caching pairings in %s", _cache.name)
    return _cache

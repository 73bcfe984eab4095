"""
Cache for computed call-record reports.

Redis backs the cache when ``REDIS_URL`` is configured; otherwise an
in-process TTL map is used. A cache outage never fails a report request:
backend errors are logged and treated as a miss.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol

from redis import Redis
from redis.exceptions import RedisError

from app.config import get_report_cache_settings

logger = logging.getLogger(__name__)


class ReportCache(Protocol):
    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    def delete(self, *keys: str) -> int:
        ...


def hourly_report_key(display_date: str) -> str:
    return f"hourly:{display_date}"


def daily_summary_key(display_date: str) -> str:
    return f"summary:{display_date}"


def report_keys_for_dates(dates: list[str] | tuple[str, ...]) -> list[str]:
    keys: list[str] = []
    for display_date in dates:
        keys.append(hourly_report_key(display_date))
        keys.append(daily_summary_key(display_date))
    return keys


class InMemoryReportCache:
    """
    Thread-safe TTL map. Expired entries are dropped lazily on read.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + max(1, ttl_seconds), value)

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    removed += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisReportCache:
    """
    Redis-backed report cache storing JSON values under a key prefix.
    """

    def __init__(self, client: Redis, *, key_prefix: str = "call-record") -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = "call-record") -> RedisReportCache:
        return cls(Redis.from_url(url, decode_responses=True), key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}" if self._key_prefix else key

    def get(self, key: str) -> Any | None:
        try:
            raw_value = self._client.get(self._key(key))
        except RedisError as exc:
            logger.warning("Report cache read failed key=%s error=%s", key, exc)
            return None
        if raw_value is None:
            return None
        try:
            return json.loads(raw_value)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable report cache entry key=%s", key)
            return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self._client.set(self._key(key), json.dumps(value), ex=max(1, ttl_seconds))
        except RedisError as exc:
            logger.warning("Report cache write failed key=%s error=%s", key, exc)

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(self._client.delete(*(self._key(key) for key in keys)) or 0)
        except RedisError as exc:
            logger.warning("Report cache invalidation failed keys=%s error=%s", keys, exc)
            return 0


@lru_cache(maxsize=1)
def get_report_cache() -> ReportCache:
    settings = get_report_cache_settings()
    if settings.redis_url:
        logger.info("Using Redis report cache")
        return RedisReportCache.from_url(settings.redis_url, key_prefix=settings.key_prefix)
    return InMemoryReportCache()

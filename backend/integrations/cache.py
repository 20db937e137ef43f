"""
In-Memory TTL Cache for Upstream Signals

Single-process cache used by the weather integration so that repeated
forecast requests inside the TTL do not hit the provider again. Only
successful fetches are stored.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generic, Optional, TypeVar
import asyncio

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheConfig:
    """Configuration for caching behavior"""

    default_ttl_seconds: int = 1800  # 30 minutes
    key_prefix: str = "signals"


class CacheEntry(Generic[T]):
    """Represents a cached value with metadata"""

    def __init__(
        self,
        value: T,
        created_at: datetime,
        ttl_seconds: int,
        key: str,
    ):
        self.value = value
        self.created_at = created_at
        self.ttl_seconds = ttl_seconds
        self.key = key

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.ttl_seconds)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def age_ratio(self, now: datetime) -> float:
        """Ratio of age to TTL (0.0 = fresh, 1.0 = expired)"""
        if self.ttl_seconds <= 0:
            return 1.0
        age = (now - self.created_at).total_seconds()
        return min(1.0, age / self.ttl_seconds)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryCache:
    """
    Async-safe in-memory cache.

    Not suitable for distributed systems; each worker keeps its own copy.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = config or CacheConfig()
        self.logger = logger.bind(component="memory_cache")
        self._clock = clock

        self._cache: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

        # Metrics
        self._hits = 0
        self._misses = 0

    def _generate_key(self, key: str) -> str:
        return f"{self.config.key_prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        full_key = self._generate_key(key)
        now = self._clock()

        async with self._lock:
            entry = self._cache.get(full_key)
            if entry is not None:
                if not entry.is_expired(now):
                    self._hits += 1
                    self.logger.debug(
                        "memory_cache_hit",
                        key=key,
                        age_ratio=entry.age_ratio(now),
                    )
                    return entry.value
                del self._cache[full_key]

        self._misses += 1
        self.logger.debug("memory_cache_miss", key=key)
        return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        full_key = self._generate_key(key)
        effective_ttl = ttl if ttl is not None else self.config.default_ttl_seconds

        if effective_ttl <= 0:
            return False

        async with self._lock:
            self._cache[full_key] = CacheEntry(
                value=value,
                created_at=self._clock(),
                ttl_seconds=effective_ttl,
                key=key,
            )

        self.logger.debug("memory_cache_set", key=key, ttl=effective_ttl)
        return True

    async def delete(self, key: str) -> bool:
        full_key = self._generate_key(key)
        async with self._lock:
            return self._cache.pop(full_key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    def get_stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total if total else 0.0,
            "entries": len(self._cache),
        }

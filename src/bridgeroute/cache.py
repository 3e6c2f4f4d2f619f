"""Expiring key-value cache for route responses and fee quotes.

Redis when ``REDIS_URL`` is configured, otherwise an in-process TTL store.
Values are JSON strings so a cache hit returns exactly what was stored.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Callable, Optional

import redis.asyncio as redis

from bridgeroute.config import Settings, get_settings
from bridgeroute.models import format_amount

logger = logging.getLogger(__name__)


def route_cache_key(owner: str, target_chain: str, amount: Decimal, token: str) -> str:
    """Key for a whole route response."""
    return f"routes:{owner}:{target_chain}:{format_amount(amount)}:{token}"


def fee_cache_key(from_chain_id: int, to_chain_id: int, amount: Decimal, token: str) -> str:
    """Key for a single bridge fee quote."""
    return f"bridge_fee:{from_chain_id}:{to_chain_id}:{format_amount(amount)}:{token}"


class ResponseCache(ABC):
    """Abstract expiring key-value store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get a value, or None if missing or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store a value that expires after ``ttl`` seconds."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None

    async def get_json(self, key: str) -> Any:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            return None

    async def set_json(self, key: str, value: Any, ttl: int) -> None:
        await self.set(key, json.dumps(value), ttl)


class MemoryCache(ResponseCache):
    """In-process TTL cache."""

    def __init__(self, max_size: int = 1000, clock: Callable[[], float] = time.monotonic):
        self.max_size = max_size
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (value, self._clock() + ttl)

        # Evict oldest inserted entries
        while len(self._entries) > self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(ResponseCache):
    """Redis-backed cache using SETEX semantics."""

    def __init__(self, url: str):
        self._client = redis.from_url(url, encoding="utf-8", decode_responses=True)

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl: int) -> None:
        await self._client.set(key, value, ex=ttl)

    async def close(self) -> None:
        await self._client.aclose()


def create_cache(settings: Optional[Settings] = None) -> ResponseCache:
    """Create the cache backend for the current settings."""
    settings = settings or get_settings()

    if settings.redis_url:
        logger.info("Using Redis cache")
        return RedisCache(settings.redis_url)

    logger.info("REDIS_URL not set - using in-memory cache")
    return MemoryCache()

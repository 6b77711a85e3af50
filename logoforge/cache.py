"""
cache.py — Result cache keyed by a brief fingerprint, plus single-flight.

The cache is an injected dependency (never a module-level singleton):

  cache = InMemoryCache(ttl_seconds=3600)
  key = brief_fingerprint(brief)
  hit = await cache.get(key)

SingleFlight makes concurrent identical requests share one computation.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Tuple, TypeVar

from .config import CACHE_MAX_ITEMS, CACHE_TTL_SECONDS
from .models import Brief

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _normalize(text: str) -> str:
    return " ".join((text or "").lower().split())


def brief_fingerprint(brief: Brief) -> str:
    """sha256 over the normalized prompt and sorted image descriptions."""
    payload = {
        "prompt": _normalize(brief.prompt),
        "images": sorted(_normalize(d) for d in brief.image_descriptions if d and d.strip()),
    }
    raw = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ResultCache(Protocol):
    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0


class InMemoryCache:
    """TTL + LRU cache. Safe for concurrent use from one event loop."""

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_items: int = CACHE_MAX_ITEMS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_items = max_items
        self.clock = clock
        self.stats = CacheStats()
        self._items: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._items)

    async def get(self, key: str) -> Optional[Any]:
        entry = self._items.get(key)
        if entry is None:
            self.stats.misses += 1
            return None
        expires_at, value = entry
        if self.clock() >= expires_at:
            async with self._lock:
                self._items.pop(key, None)
            self.stats.expirations += 1
            self.stats.misses += 1
            return None
        self._items.move_to_end(key)
        self.stats.hits += 1
        return value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        async with self._lock:
            self._items[key] = (self.clock() + (ttl if ttl is not None else self.ttl_seconds), value)
            self._items.move_to_end(key)
            while len(self._items) > self.max_items:
                evicted, _ = self._items.popitem(last=False)
                self.stats.evictions += 1
                logger.debug(f"Cache evicted {evicted[:12]}")


class SingleFlight:
    """At most one in-flight call per key; concurrent callers await the same task."""

    def __init__(self) -> None:
        self._inflight: Dict[str, "asyncio.Task[Any]"] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
        else:
            logger.info(f"Joining in-flight run for {key[:12]}")
        return await asyncio.shield(task)

"""Coalescing cache for aggregation results.

At most one producer runs per key at a time: concurrent misses await the same
in-flight task. Callers await it through asyncio.shield, so a caller that is
cancelled stops waiting while the shared computation still completes and is
stored for everyone else.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Literal, Optional, TypeVar

from cachetools import TLRUCache

logger = logging.getLogger(__name__)

T = TypeVar("T")
ViewerClass = Literal["anonymous", "admin"]

CONTEST_INFO = "contest_info"
SCOREBOARD = "scoreboard"
CONTESTS_LIST = "contests_list"


def contest_info_key(alias: str) -> str:
    return f"{CONTEST_INFO}:{alias}"


def scoreboard_key(alias: str, mode: str) -> str:
    return f"{SCOREBOARD}:{alias}:{mode}"


def contest_list_key(viewer: ViewerClass) -> str:
    return f"{CONTESTS_LIST}:{viewer}"


@dataclass(frozen=True)
class _Entry:
    value: Any
    ttl: float


def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class CacheCoordinator:
    """In-process cache with per-key TTL and single-flight population."""

    def __init__(
        self,
        maxsize: int = 1024,
        default_ttl: float = 60,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)
        self._inflight: Dict[str, asyncio.Task] = {}
        # Bumped on invalidation so an in-flight result computed from stale
        # state is handed to its waiters but never stored.
        self._generations: Dict[str, int] = {}

    def peek(self, key: str) -> Optional[Any]:
        entry = self._cache.get(key)
        return None if entry is None else entry.value

    async def get_or_compute(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl: Optional[float] = None,
    ) -> T:
        entry = self._cache.get(key)
        if entry is not None:
            logger.debug(f"cache hit {key}")
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            logger.debug(f"cache miss {key}")
            generation = self._generations.get(key, 0)
            task = asyncio.ensure_future(self._populate(key, producer, ttl, generation))
            self._inflight[key] = task
            task.add_done_callback(partial(self._forget, key))
        else:
            logger.debug(f"cache miss {key}, joining in-flight computation")
        return await asyncio.shield(task)

    async def _populate(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl: Optional[float],
        generation: int,
    ) -> T:
        value = await producer()
        if self._generations.get(key, 0) == generation:
            self._cache[key] = _Entry(value=value, ttl=self.default_ttl if ttl is None else ttl)
        else:
            logger.debug(f"not storing {key}: invalidated during computation")
        return value

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception as retrieved when every waiter went away.
        if not task.cancelled():
            task.exception()

    def invalidate(self, key: str) -> bool:
        self._generations[key] = self._generations.get(key, 0) + 1
        # Callers arriving from now on start a fresh computation.
        self._inflight.pop(key, None)
        return self._cache.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        count = 0
        for key in [k for k in self._inflight if k.startswith(prefix)]:
            self._generations[key] = self._generations.get(key, 0) + 1
            del self._inflight[key]
        for key in [k for k in list(self._cache.keys()) if k.startswith(prefix)]:
            if self.invalidate(key):
                count += 1
        return count

    def invalidate_contest(self, alias: str) -> int:
        """Drop the contest's info and every scoreboard mode."""
        count = int(self.invalidate(contest_info_key(alias)))
        return count + self.invalidate_prefix(f"{SCOREBOARD}:{alias}:")

    def invalidate_contest_lists(self) -> None:
        self.invalidate(contest_list_key("anonymous"))
        self.invalidate(contest_list_key("admin"))

    def clear(self) -> None:
        for key in list(self._cache.keys()):
            self.invalidate(key)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._cache),
            "maxsize": self._cache.maxsize,
            "inflight": len(self._inflight),
        }


__all__ = [
    "CONTESTS_LIST",
    "CONTEST_INFO",
    "CacheCoordinator",
    "SCOREBOARD",
    "ViewerClass",
    "contest_info_key",
    "contest_list_key",
    "scoreboard_key",
]

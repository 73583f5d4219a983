"""Per-kind TTL cache for RetroAchievements responses."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Final, Literal

from cachetools import TTLCache

log: Final = logging.getLogger(__name__)

CacheKind = Literal[
    "game_info",
    "user_info",
    "user_progress",
    "leaderboard",
]

CACHE_KINDS: Final[tuple[CacheKind, ...]] = (
    "game_info",
    "user_info",
    "user_progress",
    "leaderboard",
)


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """TTLs in seconds; game metadata changes rarely, leaderboards often."""

    game_info: float = 24 * 60 * 60
    user_info: float = 60 * 60
    user_progress: float = 15 * 60
    leaderboard: float = 5 * 60
    max_entries: int = 2048

    def ttl_for(self, kind: CacheKind) -> float:
        return float(getattr(self, kind))


class ApiCache:
    def __init__(
        self,
        settings: CacheSettings | None = None,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or CacheSettings()
        self._caches: dict[CacheKind, TTLCache] = {
            kind: TTLCache(
                maxsize=self.settings.max_entries,
                ttl=self.settings.ttl_for(kind),
                timer=timer,
            )
            for kind in CACHE_KINDS
        }
        self._lock = threading.Lock()

    def _cache(self, kind: CacheKind) -> TTLCache:
        try:
            return self._caches[kind]
        except KeyError:
            raise ValueError(f"Unknown cache kind: {kind}") from None

    # TTLCache is not thread-safe and the client runs in worker threads.
    def get(self, kind: CacheKind, key: Hashable) -> object | None:
        cache = self._cache(kind)
        with self._lock:
            return cache.get(key)

    def set(self, kind: CacheKind, key: Hashable, value: object) -> None:
        cache = self._cache(kind)
        with self._lock:
            cache[key] = value

    def clear(self, kind: CacheKind | None = None) -> None:
        if kind is None:
            with self._lock:
                for cache in self._caches.values():
                    cache.clear()
            log.info("Cleared all RetroAchievements caches")
            return
        cache = self._cache(kind)
        with self._lock:
            cache.clear()
        log.info("Cleared %s cache", kind)

    def size(self, kind: CacheKind) -> int:
        cache = self._cache(kind)
        with self._lock:
            cache.expire()
            return len(cache)


__all__ = ["ApiCache", "CACHE_KINDS", "CacheKind", "CacheSettings"]

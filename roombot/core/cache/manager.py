"""
In-memory, category-partitioned cache for roombot.

Purpose
-------
Hold hot room data (recent chat messages, player records, decoded remote
documents and stats) in process memory with bounded growth.

Eviction Model
--------------
- Bounded categories (`MESSAGES`, `PLAYERS`) are trimmed on every `set` and
  on each sweep. Trimming ranks entries by a recency-weighted frequency
  score ``access_count / age_ms`` where ``age_ms`` is the time since the
  entry was last touched, clamped to at least 1 ms. Lowest scores go first;
  ties go to the entry touched longest ago.
- The TTL category (`STATS`) has no hard capacity. A sweep removes entries
  whose age strictly exceeds the TTL; an entry exactly at the TTL is kept.

Concurrency
-----------
Every method is synchronous, so on a single event loop a mutation is never
interleaved with another task. The background sweep (`start()`/`stop()`)
runs through `PeriodicTask` and only calls `cleanup()`.

Non-Responsibilities
--------------------
- Persistence. Entries never reach the backup or remote store from here;
  SyncCoordinator and RemoteStoreClient decide what is persisted.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from roombot.core.config.settings import CacheSettings
from roombot.core.logging.logger import get_logger
from roombot.core.tasks import PeriodicTask

logger = get_logger(__name__)


class CacheCategory(str, Enum):
    """Closed set of cache partitions."""

    MESSAGES = "messages"
    PLAYERS = "players"
    STATS = "stats"

    @property
    def is_bounded(self) -> bool:
        return self is not CacheCategory.STATS


@dataclass(slots=True)
class CacheEntry:
    value: Any
    last_touched: float
    access_count: int = 0

    def age_ms(self, now: float) -> float:
        return (now - self.last_touched) * 1000.0

    def score(self, now: float) -> float:
        """Recency-weighted frequency; the 1 ms clamp keeps fresh entries finite."""
        return self.access_count / max(self.age_ms(now), 1.0)


class CacheManager:
    """
    Category-partitioned cache with usage-based trimming and TTL expiry.

    Examples
    --------
    >>> cache = CacheManager(CacheSettings(players_capacity=2))
    >>> cache.set("p1", {"name": "Leky"}, CacheCategory.PLAYERS)
    >>> cache.get("p1", CacheCategory.PLAYERS)
    {'name': 'Leky'}
    """

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or CacheSettings()
        self._clock = clock
        self._categories: Dict[CacheCategory, Dict[str, CacheEntry]] = {
            category: {} for category in CacheCategory
        }
        self._last_cleanup: float = self._clock()
        self._sweeper: Optional[PeriodicTask] = None

        self.evictions: int = 0
        self.expirations: int = 0

        logger.debug(
            "CacheManager initialized",
            extra={
                "messages_capacity": self.settings.messages_capacity,
                "players_capacity": self.settings.players_capacity,
                "stats_ttl_seconds": self.settings.stats_ttl_seconds,
            },
        )

    # =========================================================================
    # CATEGORY POLICY
    # =========================================================================

    def capacity(self, category: CacheCategory) -> Optional[int]:
        """Hard capacity of a bounded category, None for the TTL category."""
        if category is CacheCategory.MESSAGES:
            return self.settings.messages_capacity
        if category is CacheCategory.PLAYERS:
            return self.settings.players_capacity
        if category is CacheCategory.STATS:
            return None
        raise ValueError(f"Unknown cache category: {category!r}")

    def size(self, category: CacheCategory) -> int:
        return len(self._categories[CacheCategory(category)])

    # =========================================================================
    # READ / WRITE
    # =========================================================================

    def set(self, key: str, value: Any, category: CacheCategory = CacheCategory.STATS) -> None:
        category = CacheCategory(category)
        bucket = self._categories[category]
        bucket[key] = CacheEntry(value=value, last_touched=self._clock())

        if category.is_bounded:
            self.trim(category, protect=key)

    def get(
        self,
        key: str,
        category: CacheCategory = CacheCategory.STATS,
        default: Any = None,
    ) -> Any:
        """
        Return the cached value or `default`.

        A hit counts as both recency and frequency credit; a miss leaves the
        cache untouched.
        """
        entry = self._categories[CacheCategory(category)].get(key)
        if entry is None:
            return default

        entry.access_count += 1
        entry.last_touched = self._clock()
        return entry.value

    def contains(self, key: str, category: CacheCategory = CacheCategory.STATS) -> bool:
        """Membership test without touching the entry."""
        return key in self._categories[CacheCategory(category)]

    def delete(self, key: str, category: CacheCategory = CacheCategory.STATS) -> bool:
        return self._categories[CacheCategory(category)].pop(key, None) is not None

    # =========================================================================
    # EVICTION
    # =========================================================================

    def trim(
        self,
        category: CacheCategory,
        limit: Optional[int] = None,
        *,
        protect: Optional[str] = None,
    ) -> List[str]:
        """
        Evict the lowest-scoring entries until `category` holds `limit` items.

        Parameters
        ----------
        category:
            Partition to trim.
        limit:
            Target size; defaults to the category capacity. No-op when the
            category has no capacity and no limit is given.
        protect:
            Key exempt from eviction in this pass (the entry being inserted).

        Returns
        -------
        List[str]
            Evicted keys, lowest score first.
        """
        category = CacheCategory(category)
        if limit is None:
            limit = self.capacity(category)
        if limit is None:
            return []

        bucket = self._categories[category]
        excess = len(bucket) - max(limit, 0)
        if excess <= 0:
            return []

        now = self._clock()
        ranked: List[Tuple[float, float, str]] = sorted(
            (entry.score(now), entry.last_touched, key)
            for key, entry in bucket.items()
            if key != protect
        )

        evicted = [key for _, _, key in ranked[:excess]]
        for key in evicted:
            del bucket[key]

        self.evictions += len(evicted)
        logger.debug(
            "Cache trimmed",
            extra={"category": category.value, "evicted": len(evicted), "size": len(bucket)},
        )
        return evicted

    def cleanup(self) -> Dict[str, int]:
        """
        Expire old stats entries and re-trim bounded categories.

        Returns
        -------
        Dict[str, int]
            Number of entries removed per category.
        """
        now = self._clock()
        ttl = self.settings.stats_ttl_seconds
        stats = self._categories[CacheCategory.STATS]

        expired = [key for key, entry in stats.items() if now - entry.last_touched > ttl]
        for key in expired:
            del stats[key]
        self.expirations += len(expired)

        removed = {CacheCategory.STATS.value: len(expired)}
        for category in CacheCategory:
            if category.is_bounded:
                removed[category.value] = len(self.trim(category))

        self._last_cleanup = now
        logger.debug("Cache cleanup finished", extra={"removed": removed})
        return removed

    # =========================================================================
    # INTROSPECTION / RESET
    # =========================================================================

    def stats(self) -> Dict[str, Any]:
        """Per-category sizes and the last cleanup time; read-only."""
        return {
            CacheCategory.MESSAGES.value: len(self._categories[CacheCategory.MESSAGES]),
            CacheCategory.PLAYERS.value: len(self._categories[CacheCategory.PLAYERS]),
            CacheCategory.STATS.value: len(self._categories[CacheCategory.STATS]),
            "last_cleanup": self._last_cleanup,
        }

    def clear(self) -> None:
        for bucket in self._categories.values():
            bucket.clear()
        self._last_cleanup = self._clock()

    # =========================================================================
    # BACKGROUND SWEEP
    # =========================================================================

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None:
            self._sweeper = PeriodicTask(
                "cache-sweep",
                self.settings.cleanup_interval_seconds,
                self.cleanup,
            )
        self._sweeper.start()

    async def stop(self) -> None:
        if self._sweeper is not None:
            await self._sweeper.stop()

    @property
    def sweeper(self) -> Optional[PeriodicTask]:
        return self._sweeper

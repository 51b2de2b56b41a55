"""
In-memory cache subsystem.

- `CacheManager`: category-partitioned cache with hybrid eviction
- `CacheCategory`: closed set of partitions (messages, players, stats)
"""

from roombot.core.cache.manager import CacheCategory, CacheEntry, CacheManager

__all__ = ["CacheManager", "CacheCategory", "CacheEntry"]

"""
Unit tests for CacheManager.

Covers capacity bounds, score-based trimming, TTL expiry at the boundary
and the read-only guarantees of misses and stats().
"""

import pytest

from roombot.core.cache.manager import CacheCategory, CacheEntry, CacheManager
from roombot.core.config.settings import CacheSettings

pytestmark = pytest.mark.unit


class TestReadWrite:
    def test_set_then_get_returns_value(self, cache):
        cache.set("p1", {"name": "Leky"}, CacheCategory.PLAYERS)

        assert cache.get("p1", CacheCategory.PLAYERS) == {"name": "Leky"}

    def test_default_category_is_stats(self, cache):
        cache.set("github:stats.json", {"a": 1})

        assert cache.contains("github:stats.json", CacheCategory.STATS)
        assert cache.size(CacheCategory.STATS) == 1

    def test_categories_are_independent(self, cache):
        cache.set("k", "message", CacheCategory.MESSAGES)
        cache.set("k", "player", CacheCategory.PLAYERS)

        assert cache.get("k", CacheCategory.MESSAGES) == "message"
        assert cache.get("k", CacheCategory.PLAYERS) == "player"
        assert cache.get("k", CacheCategory.STATS) is None

    def test_miss_returns_default_without_mutation(self, cache):
        cache.set("present", 1, CacheCategory.PLAYERS)
        before = cache.stats()

        assert cache.get("absent", CacheCategory.PLAYERS) is None
        assert cache.get("absent", CacheCategory.PLAYERS, default="fallback") == "fallback"
        assert cache.stats() == before
        assert not cache.contains("absent", CacheCategory.PLAYERS)

    def test_hit_counts_access_and_refreshes_recency(self, cache, clock):
        cache.set("p1", "x", CacheCategory.PLAYERS)
        clock.advance(10)

        cache.get("p1", CacheCategory.PLAYERS)
        cache.get("p1", CacheCategory.PLAYERS)

        entry = cache._categories[CacheCategory.PLAYERS]["p1"]
        assert entry.access_count == 2
        assert entry.last_touched == clock()

    def test_set_resets_access_count(self, cache):
        cache.set("p1", "old", CacheCategory.PLAYERS)
        cache.get("p1", CacheCategory.PLAYERS)

        cache.set("p1", "new", CacheCategory.PLAYERS)

        assert cache._categories[CacheCategory.PLAYERS]["p1"].access_count == 0

    def test_delete(self, cache):
        cache.set("k", 1)

        assert cache.delete("k") is True
        assert cache.delete("k") is False
        assert cache.get("k") is None

    def test_accepts_category_values_as_strings(self, cache):
        cache.set("m1", "hello", "messages")

        assert cache.get("m1", CacheCategory.MESSAGES) == "hello"


class TestScoring:
    def test_fresh_entry_score_is_finite(self):
        entry = CacheEntry(value=1, last_touched=100.0, access_count=3)

        assert entry.score(100.0) == 3.0

    def test_score_decays_with_age(self):
        entry = CacheEntry(value=1, last_touched=100.0, access_count=4)

        assert entry.score(102.0) == pytest.approx(4 / 2000)


class TestCapacity:
    def test_bounded_category_never_exceeds_capacity(self, clock):
        cache = CacheManager(CacheSettings(messages_capacity=10), clock=clock)

        for i in range(50):
            clock.advance(0.001)
            cache.set(f"m{i}", i, CacheCategory.MESSAGES)
            assert cache.size(CacheCategory.MESSAGES) <= 10

        assert cache.size(CacheCategory.MESSAGES) == 10

    def test_501st_player_evicts_lowest_score_and_keeps_new_key(self, cache, clock):
        for i in range(500):
            cache.set(f"p{i}", i, CacheCategory.PLAYERS)
            clock.advance(0.001)
        # Every entry but p0 has been read once
        for i in range(1, 500):
            cache.get(f"p{i}", CacheCategory.PLAYERS)
        clock.advance(1)

        cache.set("p500", 500, CacheCategory.PLAYERS)

        assert cache.size(CacheCategory.PLAYERS) == 500
        assert not cache.contains("p0", CacheCategory.PLAYERS)
        assert cache.contains("p500", CacheCategory.PLAYERS)
        assert cache.evictions == 1

    def test_inserted_key_survives_its_own_trim(self, clock):
        cache = CacheManager(CacheSettings(players_capacity=2), clock=clock)
        cache.set("a", 1, CacheCategory.PLAYERS)
        cache.set("b", 2, CacheCategory.PLAYERS)
        for _ in range(5):
            cache.get("a", CacheCategory.PLAYERS)
            cache.get("b", CacheCategory.PLAYERS)
        clock.advance(1)

        cache.set("c", 3, CacheCategory.PLAYERS)

        assert cache.contains("c", CacheCategory.PLAYERS)
        assert cache.size(CacheCategory.PLAYERS) == 2

    def test_stats_category_has_no_capacity(self, cache):
        for i in range(1000):
            cache.set(f"s{i}", i)

        assert cache.size(CacheCategory.STATS) == 1000
        assert cache.capacity(CacheCategory.STATS) is None


class TestTrim:
    def test_trim_evicts_lowest_scores_first(self, cache, clock):
        for i in range(1, 6):
            cache.set(f"k{i}", i, CacheCategory.MESSAGES)
        for i in range(1, 6):
            for _ in range(i):
                cache.get(f"k{i}", CacheCategory.MESSAGES)
        clock.advance(1)

        evicted = cache.trim(CacheCategory.MESSAGES, limit=3)

        assert evicted == ["k1", "k2"]
        assert cache.size(CacheCategory.MESSAGES) == 3
        for key in ("k3", "k4", "k5"):
            assert cache.contains(key, CacheCategory.MESSAGES)

    def test_ties_evict_oldest_touched_first(self, cache, clock):
        cache.set("old", 1, CacheCategory.MESSAGES)
        clock.advance(1)
        cache.set("new", 2, CacheCategory.MESSAGES)

        assert cache.trim(CacheCategory.MESSAGES, limit=1) == ["old"]

    def test_trim_with_zero_age_entries_does_not_divide_by_zero(self, cache):
        for i in range(5):
            cache.set(f"k{i}", i, CacheCategory.MESSAGES)

        evicted = cache.trim(CacheCategory.MESSAGES, limit=0)

        assert len(evicted) == 5
        assert cache.size(CacheCategory.MESSAGES) == 0

    def test_trim_under_limit_is_noop(self, cache):
        cache.set("k", 1, CacheCategory.MESSAGES)

        assert cache.trim(CacheCategory.MESSAGES) == []
        assert cache.size(CacheCategory.MESSAGES) == 1

    def test_trim_stats_without_limit_is_noop(self, cache):
        cache.set("k", 1)

        assert cache.trim(CacheCategory.STATS) == []


class TestCleanup:
    def test_entry_exactly_at_ttl_is_kept(self, cache, clock):
        cache.set("s", 1)
        clock.advance(300)

        removed = cache.cleanup()

        assert removed["stats"] == 0
        assert cache.contains("s")

    def test_entry_past_ttl_is_removed(self, cache, clock):
        cache.set("s", 1)
        clock.advance(300.5)

        removed = cache.cleanup()

        assert removed["stats"] == 1
        assert not cache.contains("s")
        assert cache.expirations == 1

    def test_read_refreshes_ttl(self, cache, clock):
        cache.set("s", 1)
        clock.advance(200)
        cache.get("s")
        clock.advance(200)

        cache.cleanup()

        assert cache.contains("s")

    def test_cleanup_retrims_bounded_categories(self, clock):
        cache = CacheManager(CacheSettings(messages_capacity=3), clock=clock)
        for i in range(3):
            cache.set(f"m{i}", i, CacheCategory.MESSAGES)
        cache.settings = CacheSettings(messages_capacity=1)

        removed = cache.cleanup()

        assert removed["messages"] == 2
        assert cache.size(CacheCategory.MESSAGES) == 1

    def test_cleanup_records_last_cleanup(self, cache, clock):
        clock.advance(42)

        cache.cleanup()

        assert cache.stats()["last_cleanup"] == clock()


class TestIntrospection:
    def test_stats_reports_counts_per_category(self, cache):
        cache.set("m", 1, CacheCategory.MESSAGES)
        cache.set("p1", 1, CacheCategory.PLAYERS)
        cache.set("p2", 1, CacheCategory.PLAYERS)

        stats = cache.stats()

        assert stats["messages"] == 1
        assert stats["players"] == 2
        assert stats["stats"] == 0
        assert "last_cleanup" in stats

    def test_clear_empties_every_category(self, cache):
        cache.set("m", 1, CacheCategory.MESSAGES)
        cache.set("s", 1)

        cache.clear()

        assert cache.stats()["messages"] == 0
        assert cache.stats()["stats"] == 0


@pytest.mark.asyncio
class TestBackgroundSweep:
    async def test_start_and_stop(self, cache):
        cache.start()
        assert cache.sweeper is not None
        assert cache.sweeper.is_running

        await cache.stop()

        assert not cache.sweeper.is_running

    async def test_stop_without_start_is_safe(self, cache):
        await cache.stop()

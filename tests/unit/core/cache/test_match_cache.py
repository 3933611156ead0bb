"""
Tests for Match Cache Service

Tests Redis-backed top-N lists, the single-flight rebuild lock and
degradation to uncached reads when Redis misbehaves.
"""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from core.cache.match_cache import (
    MatchCacheService,
    RELEASE_LOCK_SCRIPT,
    build_redis_client,
)
from core.config_loader import CacheConfig, RedisConfig
from tests.mocks.matching_mocks import FakeAsyncRedis, FailingAsyncRedis


def _entries(n, start=0):
    return [{"worker_id": f"w{i}", "vacancy_id": "v1", "total_score": float(i)} for i in range(start, start + n)]


class TestMatchListStorage:

    @pytest.fixture
    def redis(self):
        return FakeAsyncRedis()

    @pytest.fixture
    def cache(self, redis):
        return MatchCacheService(redis)

    @pytest.mark.asyncio
    async def test_set_truncates_and_sorts(self, cache, redis):
        assert await cache.set_worker_matches("w1", _entries(80)) is True

        stored = json.loads(redis.store["matching:worker:w1"])
        scores = [m["total_score"] for m in stored["data"]]
        assert len(scores) == 50
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 79.0
        assert redis.expiries["matching:worker:w1"] == 600

    @pytest.mark.asyncio
    async def test_entries_carry_cached_at(self, cache):
        await cache.set_vacancy_matches("v1", _entries(3))

        cached = await cache.get_vacancy_matches("v1")
        assert len(cached) == 3
        assert all(m["cached_at"] for m in cached)

    @pytest.mark.asyncio
    async def test_empty_list_is_never_written(self, cache, redis):
        assert await cache.set_worker_matches("w1", []) is False
        assert redis.store == {}

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache):
        assert await cache.get_worker_matches("nobody") is None

    @pytest.mark.asyncio
    async def test_invalidate_removes_entry(self, cache, redis):
        await cache.set_worker_matches("w1", _entries(2))
        assert await cache.invalidate_worker_cache("w1") is True
        assert "matching:worker:w1" not in redis.store

    @pytest.mark.asyncio
    async def test_keys_ignore_id_case(self, cache, redis):
        await cache.set_worker_matches("6F1C2E0A-1B2C-4D5E-8F90-ABCDEF012345", _entries(1))

        assert "matching:worker:6f1c2e0a-1b2c-4d5e-8f90-abcdef012345" in redis.store
        await cache.invalidate_worker_cache("6f1c2e0a-1b2c-4d5e-8f90-abcdef012345")
        assert redis.store == {}

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_a_miss(self, cache, redis):
        redis.store["matching:vacancy:v1"] = "{not json"
        assert await cache.get_vacancy_matches("v1") is None

    @pytest.mark.asyncio
    async def test_from_config_uses_prefix_and_limits(self, redis):
        cache = MatchCacheService.from_config(redis, CacheConfig(key_prefix="m:", list_limit=5, ttl_seconds=30))
        await cache.set_worker_matches("w1", _entries(10))

        stored = json.loads(redis.store["m:worker:w1"])
        assert len(stored["data"]) == 5
        assert redis.expiries["m:worker:w1"] == 30


class TestLocking:

    @pytest.fixture
    def redis(self):
        return FakeAsyncRedis()

    @pytest.fixture
    def cache(self, redis):
        return MatchCacheService(redis)

    @pytest.mark.asyncio
    async def test_lock_is_exclusive(self, cache, redis):
        assert await cache.acquire_lock("worker:w1", "owner-a") is True
        assert await cache.acquire_lock("worker:w1", "owner-b") is False
        assert redis.store["matching:lock:worker:w1"] == "owner-a"
        assert redis.expiries["matching:lock:worker:w1"] == 10

    @pytest.mark.asyncio
    async def test_release_only_by_owner(self, cache, redis):
        await cache.acquire_lock("worker:w1", "owner-a")

        assert await cache.release_lock("worker:w1", "owner-b") is False
        assert redis.store["matching:lock:worker:w1"] == "owner-a"

        assert await cache.release_lock("worker:w1", "owner-a") is True
        assert "matching:lock:worker:w1" not in redis.store

    @pytest.mark.asyncio
    async def test_release_uses_compare_and_delete_script(self):
        redis = MagicMock()
        redis.eval = AsyncMock(return_value=1)
        cache = MatchCacheService(redis)

        await cache.release_lock("vacancy:v1", "owner-a")

        redis.eval.assert_awaited_once_with(RELEASE_LOCK_SCRIPT, 1, "matching:lock:vacancy:v1", "owner-a")


class TestGetOrSet:

    @pytest.mark.asyncio
    async def test_hit_skips_fetcher(self):
        redis = FakeAsyncRedis()
        cache = MatchCacheService(redis)
        await cache.set_worker_matches("w1", _entries(2))
        fetcher = AsyncMock(return_value=_entries(5))

        result = await cache.get_or_set_worker_cache("w1", "owner", fetcher)

        assert len(result) == 2
        fetcher.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_miss_populates_and_releases_lock(self):
        redis = FakeAsyncRedis()
        cache = MatchCacheService(redis)
        fetcher = AsyncMock(return_value=_entries(3))

        result = await cache.get_or_set_worker_cache("w1", "owner", fetcher)

        assert [m["total_score"] for m in result] == [2.0, 1.0, 0.0]
        assert "matching:worker:w1" in redis.store
        assert "matching:lock:worker:w1" not in redis.store
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_result_is_returned_but_not_cached(self):
        redis = FakeAsyncRedis()
        cache = MatchCacheService(redis)

        result = await cache.get_or_set_vacancy_cache("v1", "owner", AsyncMock(return_value=[]))

        assert result == []
        assert "matching:vacancy:v1" not in redis.store

    @pytest.mark.asyncio
    async def test_lock_released_when_fetcher_raises(self):
        redis = FakeAsyncRedis()
        cache = MatchCacheService(redis)
        fetcher = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await cache.get_or_set_worker_cache("w1", "owner", fetcher)
        assert "matching:lock:worker:w1" not in redis.store

    @pytest.mark.asyncio
    async def test_concurrent_misses_fetch_once(self):
        """Two readers of the same missing vacancy list share one fetch."""
        redis = FakeAsyncRedis()
        cache = MatchCacheService(redis)
        calls = 0

        async def fetcher():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return _entries(4)

        first, second = await asyncio.gather(
            cache.get_or_set_vacancy_cache("v1", "owner-a", fetcher),
            cache.get_or_set_vacancy_cache("v1", "owner-b", fetcher),
        )

        assert calls == 1
        assert first == second
        assert len(first) == 4

    @pytest.mark.asyncio
    async def test_many_concurrent_misses_fetch_once_per_lock_cycle(self):
        redis = FakeAsyncRedis()
        cache = MatchCacheService(redis)
        calls = 0

        async def fetcher():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.02)
            return _entries(10)

        results = await asyncio.gather(*(
            cache.get_or_set_worker_cache("w1", f"owner-{i}", fetcher) for i in range(10)
        ))

        assert calls == 1
        assert all(r == results[0] for r in results)

    @pytest.mark.asyncio
    async def test_falls_back_to_uncached_fetch_after_retries(self):
        redis = FakeAsyncRedis()
        redis.store["matching:lock:worker:w1"] = "someone-else"
        cache = MatchCacheService(redis, lock_retry_delay_ms=1)
        fetcher = AsyncMock(return_value=_entries(3))

        result = await cache.get_or_set_worker_cache("w1", "owner", fetcher)

        assert result == _entries(3)
        fetcher.assert_awaited_once()
        assert "matching:worker:w1" not in redis.store
        assert redis.store["matching:lock:worker:w1"] == "someone-else"


class TestRedisFailures:

    @pytest.fixture
    def cache(self):
        return MatchCacheService(FailingAsyncRedis())

    @pytest.mark.asyncio
    async def test_reads_degrade_to_miss(self, cache):
        assert await cache.get_worker_matches("w1") is None

    @pytest.mark.asyncio
    async def test_writes_and_deletes_report_false(self, cache):
        assert await cache.set_worker_matches("w1", _entries(2)) is False
        assert await cache.invalidate_vacancy_cache("v1") is False
        assert await cache.release_lock("worker:w1", "owner") is False

    @pytest.mark.asyncio
    async def test_ping_reports_unavailable(self, cache):
        assert await cache.ping() is False

    @pytest.mark.asyncio
    async def test_lock_failure_fetches_uncached(self, cache):
        fetcher = AsyncMock(return_value=_entries(2))

        result = await cache.get_or_set_worker_cache("w1", "owner", fetcher)

        assert result == _entries(2)
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_acquire_lock_propagates_store_errors(self, cache):
        with pytest.raises(RedisConnectionError):
            await cache.acquire_lock("worker:w1", "owner")


class TestBuildRedisClient:

    def test_passes_socket_timeouts(self):
        with patch('core.cache.match_cache.Redis') as mock_redis_class:
            build_redis_client(RedisConfig(url="redis://:secret@cache:6379/0", socket_timeout=2.5))

            _, kwargs = mock_redis_class.from_url.call_args
            assert kwargs["socket_timeout"] == 2.5
            assert kwargs["socket_connect_timeout"] == 5.0
            assert kwargs["decode_responses"] is True

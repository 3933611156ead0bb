"""Match Cache Service - Redis top-N match lists with single-flight rebuilds."""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from datetime import datetime, timezone
from urllib.parse import urlparse

from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.config_loader import CacheConfig, RedisConfig

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX = "matching:"
CACHE_TTL_SECONDS = 600
CACHE_LIST_LIMIT = 50
LOCK_TTL_SECONDS = 10
LOCK_RETRY_DELAY_MS = 50
LOCK_MAX_RETRIES = 5

# Delete the lock only if it still holds our token.
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

Fetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except ValueError:
        return url


def build_redis_client(redis_config: RedisConfig) -> Redis:
    """Async Redis client with the configured socket timeouts."""
    logger.info(f"Match cache using Redis at {_sanitize_url(redis_config.url)}")
    return Redis.from_url(
        redis_config.url,
        password=redis_config.password,
        decode_responses=True,
        socket_timeout=redis_config.socket_timeout,
        socket_connect_timeout=redis_config.socket_connect_timeout,
    )


class MatchCacheService:
    """
    Caches each worker's and each vacancy's top match list in Redis.

    Lists are stored under ``<prefix>worker:<id>`` / ``<prefix>vacancy:<id>``
    as a JSON envelope, truncated to the list limit and sorted by total_score.
    Rebuilds on a miss are guarded by a lease lock so that concurrent
    readers trigger one fetch between them. Every Redis failure degrades to a
    cache miss; callers never see it.
    """

    def __init__(
        self,
        redis: Redis,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        list_limit: int = CACHE_LIST_LIMIT,
        lock_ttl_seconds: int = LOCK_TTL_SECONDS,
        lock_retry_delay_ms: int = LOCK_RETRY_DELAY_MS,
        lock_max_retries: int = LOCK_MAX_RETRIES
    ):
        self._redis = redis
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds
        self.list_limit = list_limit
        self.lock_ttl_seconds = lock_ttl_seconds
        self.lock_retry_delay_ms = lock_retry_delay_ms
        self.lock_max_retries = lock_max_retries

    @classmethod
    def from_config(cls, redis: Redis, cache_config: CacheConfig) -> "MatchCacheService":
        return cls(
            redis,
            key_prefix=cache_config.key_prefix,
            ttl_seconds=cache_config.ttl_seconds,
            list_limit=cache_config.list_limit,
            lock_ttl_seconds=cache_config.lock_ttl_seconds,
            lock_retry_delay_ms=cache_config.lock_retry_delay_ms,
            lock_max_retries=cache_config.lock_max_retries,
        )

    # ============ Keys ============

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _lock_key(self, key: str) -> str:
        return f"{self.key_prefix}lock:{key}"

    @staticmethod
    def worker_key(worker_id: Any) -> str:
        return f"worker:{str(worker_id).lower()}"

    @staticmethod
    def vacancy_key(vacancy_id: Any) -> str:
        return f"vacancy:{str(vacancy_id).lower()}"

    # ============ Raw list operations ============

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.warning(f"Match cache ping failed: {e}")
            return False

    async def get_list(self, key: str) -> Optional[List[Dict[str, Any]]]:
        """Cached list under key, or None on a miss or any Redis failure."""
        try:
            data = await self._redis.get(self._make_key(key))
        except RedisError as e:
            logger.warning(f"Error reading from match cache: {e}")
            return None

        if not data:
            logger.debug(f"Cache miss for {key}")
            return None

        try:
            cache_entry = json.loads(data)
        except ValueError as e:
            logger.warning(f"Discarding unreadable match cache entry {key}: {e}")
            return None

        logger.debug(f"Cache hit for {key}")
        return cache_entry.get("data")

    def _top_entries(self, matches: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Sort by total_score descending, keep the list limit, stamp cached_at."""
        top = sorted(matches, key=lambda m: m.get("total_score", 0), reverse=True)[:self.list_limit]
        cached_at = datetime.now(timezone.utc).isoformat()
        return [{**m, "cached_at": cached_at} for m in top]

    async def set_list(self, key: str, matches: List[Dict[str, Any]]) -> bool:
        """
        Store the top entries of matches under key.

        Empty lists are never stored. Entries are sorted by total_score
        descending and truncated to the list limit before writing.
        """
        if not matches:
            return False
        return await self._write(key, self._top_entries(matches))

    async def _write(self, key: str, top: List[Dict[str, Any]]) -> bool:
        if not top:
            return False

        cache_entry = {
            "data": top,
            "cached_at": top[0]["cached_at"],
        }

        try:
            await self._redis.set(self._make_key(key), json.dumps(cache_entry), ex=self.ttl_seconds)
            logger.debug(f"Cached {len(top)} matches for {key} (TTL: {self.ttl_seconds}s)")
            return True
        except RedisError as e:
            logger.warning(f"Error writing to match cache: {e}")
            return False

    async def invalidate(self, key: str) -> bool:
        try:
            await self._redis.delete(self._make_key(key))
            logger.debug(f"Invalidated match cache {key}")
            return True
        except RedisError as e:
            logger.warning(f"Error deleting from match cache: {e}")
            return False

    # ============ Locking ============

    async def acquire_lock(self, key: str, owner: str) -> bool:
        """
        Try once to take the rebuild lock for key.

        Raises RedisError when the store is unreachable; get_or_set relies on
        that to tell contention apart from failure.
        """
        acquired = await self._redis.set(self._lock_key(key), owner, nx=True, ex=self.lock_ttl_seconds)
        return bool(acquired)

    async def release_lock(self, key: str, owner: str) -> bool:
        """Release the lock only if owner still holds it."""
        try:
            released = await self._redis.eval(RELEASE_LOCK_SCRIPT, 1, self._lock_key(key), owner)
            return released == 1
        except RedisError as e:
            logger.warning(f"Error releasing match cache lock for {key}: {e}")
            return False

    async def get_or_set(self, key: str, owner: str, fetcher: Fetcher) -> List[Dict[str, Any]]:
        """
        Return the cached list for key, rebuilding it with fetcher on a miss.

        Only the lock holder calls fetcher and writes the cache. Other callers
        poll for the holder's result and, once retries are exhausted, fall back
        to calling fetcher themselves without caching.
        """
        cached = await self.get_list(key)
        if cached is not None:
            return cached

        for attempt in range(self.lock_max_retries):
            try:
                acquired = await self.acquire_lock(key, owner)
            except RedisError as e:
                logger.warning(f"Match cache lock unavailable for {key}, fetching uncached: {e}")
                return await fetcher()

            if acquired:
                try:
                    cached = await self.get_list(key)
                    if cached is not None:
                        return cached

                    top = self._top_entries(await fetcher())
                    await self._write(key, top)
                    return top
                finally:
                    await self.release_lock(key, owner)

            await asyncio.sleep(self.lock_retry_delay_ms / 1000)

            cached = await self.get_list(key)
            if cached is not None:
                return cached

        logger.warning(
            f"Match cache lock for {key} still held after {self.lock_max_retries} attempts, fetching uncached"
        )
        return await fetcher()

    # ============ Worker / vacancy wrappers ============

    async def get_worker_matches(self, worker_id: Any) -> Optional[List[Dict[str, Any]]]:
        return await self.get_list(self.worker_key(worker_id))

    async def set_worker_matches(self, worker_id: Any, matches: List[Dict[str, Any]]) -> bool:
        return await self.set_list(self.worker_key(worker_id), matches)

    async def invalidate_worker_cache(self, worker_id: Any) -> bool:
        return await self.invalidate(self.worker_key(worker_id))

    async def get_or_set_worker_cache(self, worker_id: Any, owner: str, fetcher: Fetcher) -> List[Dict[str, Any]]:
        return await self.get_or_set(self.worker_key(worker_id), owner, fetcher)

    async def get_vacancy_matches(self, vacancy_id: Any) -> Optional[List[Dict[str, Any]]]:
        return await self.get_list(self.vacancy_key(vacancy_id))

    async def set_vacancy_matches(self, vacancy_id: Any, matches: List[Dict[str, Any]]) -> bool:
        return await self.set_list(self.vacancy_key(vacancy_id), matches)

    async def invalidate_vacancy_cache(self, vacancy_id: Any) -> bool:
        return await self.invalidate(self.vacancy_key(vacancy_id))

    async def get_or_set_vacancy_cache(self, vacancy_id: Any, owner: str, fetcher: Fetcher) -> List[Dict[str, Any]]:
        return await self.get_or_set(self.vacancy_key(vacancy_id), owner, fetcher)

"""Cache Module - Caching services."""
from core.cache.match_cache import (
    MatchCacheService,
    build_redis_client,
    CACHE_TTL_SECONDS,
    CACHE_LIST_LIMIT,
    RELEASE_LOCK_SCRIPT
)

__all__ = [
    'MatchCacheService',
    'build_redis_client',
    'CACHE_TTL_SECONDS',
    'CACHE_LIST_LIMIT',
    'RELEASE_LOCK_SCRIPT'
]

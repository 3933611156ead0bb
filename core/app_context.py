from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from core.audit import AuditService
from core.cache.match_cache import MatchCacheService, build_redis_client
from core.config_loader import AppConfig
from core.health import HealthCheckResult, check_match_cache, check_matching_queue
from core.matching.orchestrator import RecalculationOrchestrator
from core.matching.service import MatchingService
from database.database import build_engine, build_session_factory
from database.repositories.audit import AuditRepository
from database.repositories.match import MatchRepository
from recalc.queue import MatchingQueueService


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    This eliminates duplicate wiring code and provides a single source
    of truth for service instantiation. Repositories open a short session
    per operation from the shared session factory.
    """
    config: AppConfig
    engine: AsyncEngine
    session_factory: async_sessionmaker
    redis: Redis
    cache: MatchCacheService
    match_repository: MatchRepository
    audit_service: AuditService
    orchestrator: RecalculationOrchestrator
    matching_service: MatchingService
    queue_service: Optional[MatchingQueueService] = None

    @classmethod
    def build(cls, config: AppConfig, with_queue: bool = True) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            with_queue: Also wire the RQ queue adapter (needed for schedule_*_recalc)

        Returns:
            Fully wired AppContext instance. Nothing connects until first use.
        """
        engine = build_engine(
            config.database.url,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
            echo=config.database.echo,
        )
        session_factory = build_session_factory(engine)

        redis = build_redis_client(config.redis)
        cache = MatchCacheService.from_config(redis, config.cache)

        match_repository = MatchRepository(session_factory)
        audit_service = AuditService(AuditRepository(session_factory))

        orchestrator = RecalculationOrchestrator(
            match_repository,
            cache,
            audit_service,
            page_size=config.recalc.page_size,
            concurrency_limit=config.recalc.concurrency_limit,
        )

        queue_service = None
        if with_queue:
            queue_service = MatchingQueueService.from_config(config.redis, config.queue)

        matching_service = MatchingService(
            match_repository,
            cache,
            audit_service,
            orchestrator,
            queue_service=queue_service,
            fetch_limit=config.recalc.fetch_limit,
        )

        return cls(
            config=config,
            engine=engine,
            session_factory=session_factory,
            redis=redis,
            cache=cache,
            match_repository=match_repository,
            audit_service=audit_service,
            orchestrator=orchestrator,
            matching_service=matching_service,
            queue_service=queue_service,
        )

    def queue_health(self) -> HealthCheckResult:
        """Matching queue health against the configured backlog threshold."""
        if self.queue_service is None:
            raise RuntimeError("No matching queue configured")
        return check_matching_queue(self.queue_service, self.config.queue.degraded_backlog)

    async def cache_health(self) -> HealthCheckResult:
        return await check_match_cache(self.cache)

    async def aclose(self) -> None:
        """Release pooled database and Redis connections."""
        await self.redis.aclose()
        await self.engine.dispose()
        if self.queue_service is not None:
            self.queue_service.redis_conn.close()

#!/usr/bin/env python3
"""
Matching Service - Upward API of the matching core.

Usage:
    from core.app_context import AppContext

    ctx = AppContext.build(config)
    result = await ctx.matching_service.calculate_score(worker_id, vacancy_id)
    top = await ctx.matching_service.get_recommended_matches(worker_id, limit=10)
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from core.audit import AuditService, MATCH_SCORE_CALCULATED
from core.cache.match_cache import MatchCacheService
from core.exceptions import VacancyNotFoundException, WorkerNotFoundException
from core.matching.dto import RecalcResult
from core.matching.orchestrator import RecalculationOrchestrator
from core.scorer import ScoreResult, ScoreSummary, ScoringMode, compute_score
from database.repositories.match import MatchRepository

logger = logging.getLogger(__name__)

FETCH_LIMIT = 50


class MatchingService:
    """
    Computes single-pair scores, runs recalculations and serves cached top-N lists.

    Recalculation can run inline (recalc_for_*) or be handed to the job queue
    (schedule_*_recalc) when a queue service is configured.
    """

    def __init__(
        self,
        repo: MatchRepository,
        cache: MatchCacheService,
        audit: AuditService,
        orchestrator: RecalculationOrchestrator,
        queue_service=None,
        fetch_limit: int = FETCH_LIMIT,
        current_year: Optional[int] = None
    ):
        self.repo = repo
        self.cache = cache
        self.audit = audit
        self.orchestrator = orchestrator
        self.queue_service = queue_service
        self.fetch_limit = fetch_limit
        self.current_year = current_year

    async def calculate_score(self, worker_id: Any, vacancy_id: Any) -> ScoreResult:
        """
        Score one worker against one vacancy and persist the result.

        Raises:
            VacancyNotFoundException: vacancy missing or soft-deleted
            WorkerNotFoundException: worker has no profile
        """
        vacancy, worker = await asyncio.gather(
            self.repo.get_vacancy(vacancy_id),
            self.repo.get_worker_features(worker_id),
        )

        if vacancy is None:
            raise VacancyNotFoundException(vacancy_id)
        if worker.profile is None:
            raise WorkerNotFoundException(worker_id)
        worker_id, vacancy_id = worker.worker_id, vacancy.id

        components = compute_score(
            worker.skills,
            worker.education,
            worker.experience,
            vacancy.skills,
            vacancy,
            worker.profile,
            mode=ScoringMode.SINGLE,
            current_year=self.current_year,
        )

        await self.repo.upsert_match_score(worker_id, vacancy_id, components)

        await self.audit.log(
            MATCH_SCORE_CALCULATED,
            user_id=str(worker_id),
            details={
                'worker_id': str(worker_id),
                'vacancy_id': str(vacancy_id),
                'total_score': components.total_score,
                'is_recommended': components.is_recommended,
            },
        )

        return ScoreResult.from_components(str(worker_id), str(vacancy_id), components)

    async def recalc_for_worker(self, worker_id: Any, ip_address: Optional[str] = None) -> RecalcResult:
        return await self.orchestrator.recalc_for_worker(worker_id, ip_address=ip_address)

    async def recalc_for_vacancy(self, vacancy_id: Any, ip_address: Optional[str] = None) -> RecalcResult:
        return await self.orchestrator.recalc_for_vacancy(vacancy_id, ip_address=ip_address)

    async def get_recommended_matches(self, worker_id: Any, limit: int = 20) -> List[ScoreSummary]:
        """Worker's best matches, served from the cache and rebuilt from match scores on a miss."""
        owner = f"worker:{worker_id}:{uuid.uuid4()}"

        async def fetch() -> List[Dict[str, Any]]:
            results = await self.repo.get_worker_matches(worker_id, self.fetch_limit)
            return [r.to_dict() for r in results]

        matches = await self.cache.get_or_set_worker_cache(worker_id, owner, fetch)
        return [ScoreSummary.from_dict(m) for m in matches[:limit]]

    async def get_vacancy_recommendations(self, vacancy_id: Any, limit: int = 20) -> List[ScoreSummary]:
        """Vacancy's recommended workers, served from the cache and rebuilt on a miss."""
        owner = f"vacancy:{vacancy_id}:{uuid.uuid4()}"

        async def fetch() -> List[Dict[str, Any]]:
            results = await self.repo.get_recommended_matches(vacancy_id, self.fetch_limit)
            return [r.to_dict() for r in results]

        matches = await self.cache.get_or_set_vacancy_cache(vacancy_id, owner, fetch)
        return [ScoreSummary.from_dict(m) for m in matches[:limit]]

    async def invalidate_worker_cache(self, worker_id: Any) -> None:
        await self.cache.invalidate_worker_cache(worker_id)

    async def invalidate_vacancy_cache(self, vacancy_id: Any) -> None:
        await self.cache.invalidate_vacancy_cache(vacancy_id)

    # ============ Event helpers ============

    async def schedule_worker_recalc(self, worker_id: Any) -> str:
        """Worker profile/skills changed: drop the stale list and queue a recalculation."""
        if self.queue_service is None:
            raise RuntimeError("No matching queue configured")

        await self.invalidate_worker_cache(worker_id)
        return self.queue_service.add_recalc_worker_job(worker_id)

    async def schedule_vacancy_recalc(self, vacancy_id: Any) -> str:
        """Vacancy published or edited: drop the stale list and queue a recalculation."""
        if self.queue_service is None:
            raise RuntimeError("No matching queue configured")

        await self.invalidate_vacancy_cache(vacancy_id)
        return self.queue_service.add_recalc_vacancy_job(vacancy_id)

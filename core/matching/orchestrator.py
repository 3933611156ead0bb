#!/usr/bin/env python3
"""
Recalculation Orchestrator - Rescore one subject against a whole population.

A worker is rescored against every OPEN vacancy; a vacancy against every
ACTIVE worker. The population is paged, each page's features are fetched in
one batch, and pairs are scored and upserted in chunks that run concurrently
within the chunk and strictly one chunk after another.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from core.audit import (
    AuditService,
    VACANCY_MATCHES_RECALCULATED,
    WORKER_MATCHES_RECALCULATED,
)
from core.cache.match_cache import MatchCacheService
from core.exceptions import VacancyNotFoundException, WorkerNotFoundException
from core.matching.dto import RecalcResult
from core.scorer import ScoringMode, VacancyFeatures, WorkerFeatures, compute_score
from database.repositories.match import MatchRepository, Page

logger = logging.getLogger(__name__)

BATCH_SIZE = 200
CONCURRENCY_LIMIT = 20

T = TypeVar('T')


class RecalculationOrchestrator:

    def __init__(
        self,
        repo: MatchRepository,
        cache: MatchCacheService,
        audit: AuditService,
        page_size: int = BATCH_SIZE,
        concurrency_limit: int = CONCURRENCY_LIMIT,
        current_year: Optional[int] = None
    ):
        self.repo = repo
        self.cache = cache
        self.audit = audit
        self.page_size = page_size
        self.concurrency_limit = concurrency_limit
        self.current_year = current_year

    async def recalc_for_worker(self, worker_id: Any, ip_address: Optional[str] = None) -> RecalcResult:
        """Rescore a worker against every OPEN vacancy, then drop the worker's cached list."""
        worker = await self.repo.get_worker_features(worker_id)
        if worker.profile is None:
            raise WorkerNotFoundException(worker_id)
        worker_id = worker.worker_id

        async def process_page(ids: List[str]):
            vacancies = await self.repo.get_vacancies_batch(ids)
            # Vacancies closed or deleted since paging are skipped.
            return [vacancies[vid] for vid in ids if vid in vacancies]

        result = await self._recalculate(
            fetch_page=self.repo.get_open_vacancy_ids,
            process_page=process_page,
            score_pair=lambda vacancy: self._score_pair(worker, vacancy),
            label=f"worker {worker_id}",
        )

        await self.audit.log(
            WORKER_MATCHES_RECALCULATED,
            user_id=str(worker_id),
            ip_address=ip_address,
            details={
                'worker_id': str(worker_id),
                'total_calculated': result.calculated,
                'batches': result.batches,
                'failed': result.failed,
            },
        )
        await self.cache.invalidate_worker_cache(worker_id)

        logger.info(f"Recalculated {result.calculated} match scores for worker {worker_id}")
        return result

    async def recalc_for_vacancy(self, vacancy_id: Any, ip_address: Optional[str] = None) -> RecalcResult:
        """Rescore a vacancy against every ACTIVE worker, then drop the vacancy's cached list."""
        vacancy = await self.repo.get_vacancy(vacancy_id)
        if vacancy is None:
            raise VacancyNotFoundException(vacancy_id)
        vacancy_id = vacancy.id

        async def process_page(ids: List[str]):
            workers = await self.repo.get_workers_batch(ids)
            return [workers[wid] for wid in ids if wid in workers and workers[wid].profile is not None]

        result = await self._recalculate(
            fetch_page=self.repo.get_active_worker_ids,
            process_page=process_page,
            score_pair=lambda worker: self._score_pair(worker, vacancy),
            label=f"vacancy {vacancy_id}",
        )

        await self.audit.log(
            VACANCY_MATCHES_RECALCULATED,
            ip_address=ip_address,
            details={
                'vacancy_id': str(vacancy_id),
                'total_calculated': result.calculated,
                'batches': result.batches,
                'failed': result.failed,
            },
        )
        await self.cache.invalidate_vacancy_cache(vacancy_id)

        logger.info(f"Recalculated {result.calculated} match scores for vacancy {vacancy_id}")
        return result

    async def _recalculate(
        self,
        fetch_page: Callable[[int, int], Awaitable[Page]],
        process_page: Callable[[List[str]], Awaitable[List[T]]],
        score_pair: Callable[[T], Awaitable[None]],
        label: str
    ) -> RecalcResult:
        result = RecalcResult()
        page_number = 1

        while True:
            page = await fetch_page(page_number, self.page_size)
            if not page.items:
                break

            result.batches += 1
            candidates = await process_page(page.items)
            logger.debug(
                f"Recalculating {label}: page {page_number} with {len(candidates)} of "
                f"{len(page.items)} candidates still present"
            )

            for start in range(0, len(candidates), self.concurrency_limit):
                chunk = candidates[start:start + self.concurrency_limit]
                outcomes = await asyncio.gather(
                    *(score_pair(candidate) for candidate in chunk),
                    return_exceptions=True
                )
                for outcome in outcomes:
                    if isinstance(outcome, BaseException):
                        logger.error(f"Failed to recalculate a match for {label}: {outcome}")
                        result.failed += 1
                    else:
                        result.calculated += 1

            if len(page.items) < page.page_size:
                break
            page_number += 1

        return result

    async def _score_pair(self, worker: WorkerFeatures, vacancy: VacancyFeatures) -> None:
        components = compute_score(
            worker.skills,
            worker.education,
            worker.experience,
            vacancy.skills,
            vacancy,
            worker.profile,
            mode=ScoringMode.BATCH,
            current_year=self.current_year,
        )
        await self.repo.upsert_match_score(worker.worker_id, vacancy.id, components)

#!/usr/bin/env python3
"""
Recalculation task - the function RQ workers execute for matching-queue jobs.

Each job builds its own application context and event loop, runs one
recalculation and tears everything down again. Exceptions propagate so RQ
can apply the retry policy and finally park the job in the failed registry.
"""

import asyncio
import logging
from typing import Any, Dict

from core.app_context import AppContext
from core.config_loader import load_config
from core.exceptions import InvalidJobPayloadException
from recalc.queue import JOB_TYPE_RECALC_VACANCY, JOB_TYPE_RECALC_WORKER

logger = logging.getLogger(__name__)

_SUBJECT_KEYS = {
    JOB_TYPE_RECALC_WORKER: 'workerId',
    JOB_TYPE_RECALC_VACANCY: 'vacancyId',
}


def validate_payload(job_type: str, payload: Dict[str, Any]) -> str:
    """Return the subject id the job refers to, or raise InvalidJobPayloadException."""
    if job_type not in _SUBJECT_KEYS:
        raise InvalidJobPayloadException(f"Unknown job type: {job_type}")

    key = _SUBJECT_KEYS[job_type]
    subject_id = (payload or {}).get(key)
    if not subject_id:
        raise InvalidJobPayloadException(f"{key} is required for {job_type} jobs")
    return str(subject_id)


async def run_recalc(ctx: AppContext, job_type: str, subject_id: str) -> Dict[str, int]:
    if job_type == JOB_TYPE_RECALC_WORKER:
        result = await ctx.matching_service.recalc_for_worker(subject_id)
    else:
        result = await ctx.matching_service.recalc_for_vacancy(subject_id)
    return result.to_dict()


async def _run_with_context(job_type: str, subject_id: str) -> Dict[str, int]:
    ctx = AppContext.build(load_config())
    try:
        return await run_recalc(ctx, job_type, subject_id)
    finally:
        await ctx.aclose()


def process_recalc_task(job_type: str, payload: Dict[str, Any]) -> Dict[str, int]:
    """Process one recalculation job (called by RQ worker)."""
    subject_id = validate_payload(job_type, payload)
    logger.info(f"Processing {job_type} job for {subject_id}")

    result = asyncio.run(_run_with_context(job_type, subject_id))

    logger.info(
        f"Finished {job_type} for {subject_id}: {result['calculated']} calculated, "
        f"{result['failed']} failed in {result['batches']} batches"
    )
    return result

#!/usr/bin/env python3
"""
Health indicators for the matching queue and the match cache.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict

logger = logging.getLogger(__name__)

HEALTHY = 'healthy'
DEGRADED = 'degraded'
UNHEALTHY = 'unhealthy'

DEFAULT_DEGRADED_BACKLOG = 1000


@dataclass
class HealthCheckResult:
    name: str
    status: str
    response_time_ms: float
    metadata: Dict[str, Any] = field(default_factory=dict)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def check_matching_queue(queue_service, degraded_backlog: int = DEFAULT_DEGRADED_BACKLOG) -> HealthCheckResult:
    """Degraded when waiting + active jobs exceed the backlog threshold."""
    start = time.perf_counter()
    try:
        counts = queue_service.get_job_counts()
    except Exception as e:
        logger.error(f"Matching queue health check failed: {e}")
        return HealthCheckResult(
            name='matching-queue',
            status=UNHEALTHY,
            response_time_ms=_elapsed_ms(start),
            metadata={'error': str(e)},
        )

    backlog = counts.get('waiting', 0) + counts.get('active', 0)
    status = DEGRADED if backlog > degraded_backlog else HEALTHY

    return HealthCheckResult(
        name='matching-queue',
        status=status,
        response_time_ms=_elapsed_ms(start),
        metadata={'queue_counts': counts, 'backlog': backlog},
    )


async def check_match_cache(cache) -> HealthCheckResult:
    start = time.perf_counter()
    available = await cache.ping()
    return HealthCheckResult(
        name='match-cache',
        status=HEALTHY if available else UNHEALTHY,
        response_time_ms=_elapsed_ms(start),
    )

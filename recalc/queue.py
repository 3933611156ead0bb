#!/usr/bin/env python3
"""
Matching Queue Service - Deduplicated recalculation jobs on Redis Queue.

Each subject has one deterministic job id (worker-<id> / vacancy-<id>), so a
burst of profile edits collapses into a single pending recalculation.

Usage:
    from recalc.queue import MatchingQueueService

    queue_service = MatchingQueueService.from_config(config.redis, config.queue)
    job_id = queue_service.add_recalc_worker_job(worker_id)
    queue_service.get_job_status(job_id)  # 'waiting', 'processing', ...
"""

import logging
from typing import Any, Dict, List, Optional

from redis import Redis
from rq import Queue, Retry
from rq.exceptions import NoSuchJobError
from rq.job import Job, JobStatus

from core.config_loader import QueueConfig, RedisConfig

logger = logging.getLogger(__name__)

JOB_TYPE_RECALC_WORKER = 'recalc-worker'
JOB_TYPE_RECALC_VACANCY = 'recalc-vacancy'

TASK_PATH = 'recalc.tasks.process_recalc_task'

# Held while one caller checks and enqueues a job id; a second caller backs off.
ENQUEUE_CLAIM_PREFIX = 'matching:enqueue-claim:'
ENQUEUE_CLAIM_TTL_SECONDS = 30

STATUS_NOT_FOUND = 'not_found'
STATUS_COMPLETED = 'completed'
STATUS_FAILED = 'failed'
STATUS_DELAYED = 'delayed'
STATUS_PROCESSING = 'processing'
STATUS_WAITING = 'waiting'

# A job in any other state is still pending and blocks a duplicate.
REPLACEABLE_STATUSES = {STATUS_NOT_FOUND, STATUS_COMPLETED, STATUS_FAILED}

_STATUS_MAP = {
    JobStatus.FINISHED: STATUS_COMPLETED,
    JobStatus.FAILED: STATUS_FAILED,
    JobStatus.STOPPED: STATUS_FAILED,
    JobStatus.CANCELED: STATUS_FAILED,
    JobStatus.DEFERRED: STATUS_DELAYED,
    JobStatus.SCHEDULED: STATUS_DELAYED,
    JobStatus.STARTED: STATUS_PROCESSING,
    JobStatus.QUEUED: STATUS_WAITING,
}


def backoff_intervals(max_attempts: int, retry_delay_seconds: int) -> List[int]:
    """Exponential delays between attempts: delay, 2*delay, 4*delay, ..."""
    return [retry_delay_seconds * (2 ** i) for i in range(max(0, max_attempts - 1))]


class MatchingQueueService:

    def __init__(
        self,
        redis_conn: Redis,
        queue_name: str = 'matching-queue',
        max_attempts: int = 3,
        retry_delay_seconds: int = 5,
        result_ttl_seconds: int = 3600,
        failure_ttl_seconds: int = 86400
    ):
        self.redis_conn = redis_conn
        self.queue = Queue(queue_name, connection=redis_conn)
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.result_ttl_seconds = result_ttl_seconds
        self.failure_ttl_seconds = failure_ttl_seconds

    @classmethod
    def from_config(cls, redis_config: RedisConfig, queue_config: QueueConfig) -> "MatchingQueueService":
        # RQ pickles job data, so this connection must not decode responses.
        redis_conn = Redis.from_url(
            redis_config.url,
            password=redis_config.password,
            socket_timeout=redis_config.socket_timeout,
            socket_connect_timeout=redis_config.socket_connect_timeout,
        )
        return cls(
            redis_conn,
            queue_name=queue_config.name,
            max_attempts=queue_config.max_attempts,
            retry_delay_seconds=queue_config.retry_delay_seconds,
            result_ttl_seconds=queue_config.result_ttl_seconds,
            failure_ttl_seconds=queue_config.failure_ttl_seconds,
        )

    @property
    def queue_name(self) -> str:
        return self.queue.name

    def _retry_policy(self) -> Optional[Retry]:
        intervals = backoff_intervals(self.max_attempts, self.retry_delay_seconds)
        if not intervals:
            return None
        return Retry(max=len(intervals), interval=intervals)

    def add_recalc_worker_job(self, worker_id: Any) -> str:
        return self._add_job(
            JOB_TYPE_RECALC_WORKER,
            f"worker-{worker_id}",
            {'workerId': str(worker_id)},
        )

    def add_recalc_vacancy_job(self, vacancy_id: Any) -> str:
        return self._add_job(
            JOB_TYPE_RECALC_VACANCY,
            f"vacancy-{vacancy_id}",
            {'vacancyId': str(vacancy_id)},
        )

    def _add_job(self, job_type: str, job_id: str, payload: Dict[str, Any]) -> str:
        """
        Enqueue job_id unless a pending job with that id exists.

        The status check and the enqueue run under a short SET NX claim on
        the job id, so concurrent callers cannot both see the id as free.
        """
        claim_key = f"{ENQUEUE_CLAIM_PREFIX}{job_id}"
        if not self.redis_conn.set(claim_key, 1, nx=True, ex=ENQUEUE_CLAIM_TTL_SECONDS):
            logger.warning(f"Recalculation job {job_id} is being enqueued by another caller, not enqueuing a duplicate")
            return job_id

        try:
            status = self.get_job_status(job_id)
            if status not in REPLACEABLE_STATUSES:
                logger.warning(f"Recalculation job {job_id} already {status}, not enqueuing a duplicate")
                return job_id

            if status != STATUS_NOT_FOUND:
                self._remove_job(job_id)

            job = self.queue.enqueue(
                TASK_PATH,
                job_type,
                payload,
                job_id=job_id,
                retry=self._retry_policy(),
                result_ttl=self.result_ttl_seconds,
                failure_ttl=self.failure_ttl_seconds,
            )
            logger.info(f"Queued {job_type} job {job.id}")
            return job.id
        finally:
            self.redis_conn.delete(claim_key)

    def _remove_job(self, job_id: str) -> None:
        try:
            Job.fetch(job_id, connection=self.redis_conn).delete()
            logger.debug(f"Removed stale recalculation job {job_id}")
        except NoSuchJobError:
            pass

    def get_job_status(self, job_id: str) -> str:
        try:
            job = Job.fetch(job_id, connection=self.redis_conn)
        except NoSuchJobError:
            return STATUS_NOT_FOUND

        status = job.get_status()
        if status is None:
            return STATUS_NOT_FOUND
        return _STATUS_MAP.get(JobStatus(status), STATUS_WAITING)

    def get_job_counts(self) -> Dict[str, int]:
        return {
            'waiting': self.queue.count,
            'active': self.queue.started_job_registry.count,
            'delayed': self.queue.scheduled_job_registry.count + self.queue.deferred_job_registry.count,
            'completed': self.queue.finished_job_registry.count,
            'failed': self.queue.failed_job_registry.count,
        }

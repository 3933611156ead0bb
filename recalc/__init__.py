"""
Recalculation jobs - RQ queue adapter, task entry point and worker CLI.

The task function lives in recalc.tasks and is enqueued by dotted path, so
importing the queue never pulls in the application wiring.
"""
from recalc.queue import (
    MatchingQueueService,
    JOB_TYPE_RECALC_WORKER,
    JOB_TYPE_RECALC_VACANCY,
    TASK_PATH,
)

__all__ = [
    'MatchingQueueService',
    'JOB_TYPE_RECALC_WORKER',
    'JOB_TYPE_RECALC_VACANCY',
    'TASK_PATH',
]

#!/usr/bin/env python3
"""
RQ Worker for matching recalculation jobs.

Runs with the RQ scheduler enabled so that retries with a backoff interval
are moved back onto the queue when due.

Usage:
    python -m recalc.worker
    python -m recalc.worker --burst
    python -m recalc.worker --verbose
"""

import sys
import argparse
import logging

from redis import Redis
from redis.exceptions import RedisError
from rq import Worker
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from core.config_loader import load_config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@retry(stop=stop_after_attempt(5), wait=wait_fixed(2), retry=retry_if_exception_type(RedisError), reraise=True)
def connect_redis(redis_url: str, password=None) -> Redis:
    redis_conn = Redis.from_url(redis_url, password=password)
    redis_conn.ping()
    return redis_conn


def start_worker(burst: bool = False, queues: list = None):
    """Start the RQ worker."""
    config = load_config()
    logging.getLogger().setLevel(config.logging.level.upper())

    if queues is None:
        queues = [config.queue.name]

    logger.info("Starting matching RQ Worker")
    logger.info(f"Queues: {', '.join(queues)}")
    logger.info(f"Burst mode: {burst}")

    try:
        redis_conn = connect_redis(config.redis.url, config.redis.password)
        logger.info("Connected to Redis")

        worker = Worker(queues, connection=redis_conn)

        if burst:
            logger.info("Running in burst mode...")
            worker.work(burst=True, with_scheduler=True)
        else:
            logger.info("Worker started. Press Ctrl+C to stop.")
            worker.work(with_scheduler=True)

    except KeyboardInterrupt:
        logger.info("Worker stopped")
    except RedisError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description='Matching recalculation worker')
    parser.add_argument('--burst', action='store_true', help='Process all and exit')
    parser.add_argument('--queues', nargs='+', default=None)
    parser.add_argument('--verbose', action='store_true')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    start_worker(burst=args.burst, queues=args.queues)


if __name__ == '__main__':
    main()

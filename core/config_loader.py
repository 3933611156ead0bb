import yaml
import os
from typing import Optional
from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    url: str
    pool_size: int = 20
    max_overflow: int = 10
    echo: bool = False


class RedisConfig(BaseModel):
    url: str = "redis://localhost:6379/0"
    password: Optional[str] = None
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0


class CacheConfig(BaseModel):
    """
    Configuration for the top-N match list cache and its single-flight lock.
    """
    key_prefix: str = "matching:"
    ttl_seconds: int = 600
    list_limit: int = 50  # Max entries persisted per cached list

    # Lock lease and contention policy
    lock_ttl_seconds: int = 10
    lock_retry_delay_ms: int = 50
    lock_max_retries: int = 5


class RecalcConfig(BaseModel):
    """
    Configuration for batch recalculation.

    page_size bounds how many candidates are fetched per population page,
    concurrency_limit bounds how many pairs are computed at once.
    """
    page_size: int = 200
    concurrency_limit: int = 20
    fetch_limit: int = 50  # Rows read from match_score when rebuilding a cached list


class QueueConfig(BaseModel):
    name: str = "matching-queue"
    max_attempts: int = 3  # Total attempts, including the first run
    retry_delay_seconds: int = 5  # Base delay, doubled per retry
    result_ttl_seconds: int = 3600
    failure_ttl_seconds: int = 86400
    degraded_backlog: int = 1000  # Waiting + active jobs before health reports degraded


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    database: DatabaseConfig
    redis: RedisConfig = Field(default_factory=RedisConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    recalc: RecalcConfig = Field(default_factory=RecalcConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from a worker cwd), fall back to the repo root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    # Allow env var override for DB URL
    env_db_url = os.environ.get("DATABASE_URL")
    if env_db_url:
        if 'database' not in data or data['database'] is None:
            data['database'] = {}
        data['database']['url'] = env_db_url

    # Allow env var override for Redis connection
    env_redis_url = os.environ.get("REDIS_URL")
    if env_redis_url:
        if 'redis' not in data or data['redis'] is None:
            data['redis'] = {}
        data['redis']['url'] = env_redis_url

    env_redis_password = os.environ.get("REDIS_PASSWORD")
    if env_redis_password:
        if 'redis' not in data or data['redis'] is None:
            data['redis'] = {}
        data['redis']['password'] = env_redis_password

    env_log_level = os.environ.get("LOG_LEVEL")
    if env_log_level:
        if 'logging' not in data or data['logging'] is None:
            data['logging'] = {}
        data['logging']['level'] = env_log_level

    return AppConfig(**data)

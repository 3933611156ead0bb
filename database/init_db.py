import asyncio
import logging

from tenacity import retry, stop_after_attempt, wait_fixed

from core.config_loader import load_config
from database.database import build_engine
from database.models import Base

logger = logging.getLogger(__name__)


@retry(stop=stop_after_attempt(5), wait=wait_fixed(2))
async def init_db(url: str) -> None:
    logger.info("Initializing database...")
    engine = build_engine(url)
    try:
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info("Tables created or verified.")
    except Exception as e:
        logger.error(f"Error initializing DB: {e}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    config = load_config()
    asyncio.run(init_db(config.database.url))

import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from scraper.checkpoint import CheckpointStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to checkpoint database...")
    store = CheckpointStore.from_url(settings.DATABASE_URL)
    try:
        logger.info("Creating tables...")
        await store.init()
        logger.info("Tables created successfully.")
    finally:
        await store.dispose()


if __name__ == "__main__":
    asyncio.run(init_database())

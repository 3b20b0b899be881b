"""
Reset the checkpoint of one or more collections.

The next scrape of a reset collection starts again from offset 0. Output
files are left untouched; move or delete them by hand if a clean re-scrape
is wanted.

Usage:
    python scripts/reset_checkpoint.py HADOOP KAFKA
"""

import argparse
import asyncio
import logging
import sys
import os

sys.path.append(os.getcwd())

from core.config import settings
from core.exceptions import CheckpointError
from scraper.checkpoint import CheckpointStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


async def reset(collections, database_url: str) -> int:
    store = CheckpointStore.from_url(database_url)
    try:
        await store.init()
        for collection_id in collections:
            if await store.delete(collection_id):
                logger.info(f"Reset {collection_id}")
            else:
                logger.info(f"No checkpoint for {collection_id}")
    except CheckpointError as e:
        logger.error(str(e))
        return 1
    finally:
        await store.dispose()
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Reset scrape checkpoints")
    parser.add_argument("collections", nargs="+", help="Jira project keys to reset")
    parser.add_argument(
        "--database-url",
        default=settings.DATABASE_URL,
        help="Checkpoint database URL (default: DATABASE_URL setting)"
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    sys.exit(asyncio.run(reset(args.collections, args.database_url)))

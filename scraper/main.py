"""
Process entry point: scrape every configured Jira project
"""

import asyncio
import signal
import sys
from typing import List, Optional
import logging

from core.config import Settings, settings
from core.logging import setup_logging
from models.base import CollectionState
from scraper.runner import CollectionResult, ScrapeRunner

logger = logging.getLogger(__name__)


def setup_signal_handlers(runner: ScrapeRunner, loop: asyncio.AbstractEventLoop) -> None:
    """Turn SIGINT/SIGTERM into a cooperative stop request"""

    def signal_handler(signum: int, frame: object) -> None:
        logger.info("Received signal %d, initiating graceful shutdown", signum)
        loop.call_soon_threadsafe(runner.request_stop)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def exit_code(results: List[CollectionResult]) -> int:
    return 1 if any(r.state is CollectionState.FAILED for r in results) else 0


async def main(config: Optional[Settings] = None) -> int:
    config = config or settings
    setup_logging(config.LOG_LEVEL)

    runner = ScrapeRunner.from_settings(config)
    setup_signal_handlers(runner, asyncio.get_running_loop())

    try:
        results = await runner.run()
    finally:
        await runner.store.dispose()

    for result in results:
        logger.info(
            f"{result.collection_id}: {result.state.value} "
            f"(cursor={result.cursor}, written={result.records_written}, "
            f"failed={result.records_failed})"
        )

    stats = runner.stats
    print("\nScraping Statistics:")
    print(f"Total issues processed: {stats.records_seen}")
    print(f"Successful: {stats.successful}")
    print(f"Failed: {stats.failed}")
    print(f"Retried requests: {stats.retried_requests}")

    return exit_code(results)


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()

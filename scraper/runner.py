# ============================================================================
# File: scraper/runner.py
# Description: Resumable scrape orchestrator with per-collection isolation
# ============================================================================
"""
Scrape Runner - Orchestrates fetch, transform, append and checkpoint.

This module provides the resumable pagination loop with:
- Checkpoint-driven resume (never re-fetches below the saved cursor)
- Gate-bounded concurrent transforms with in-order appends
- One checkpoint save per fully written batch
- Per-collection failure isolation
- Cooperative shutdown at state boundaries
- Run statistics and observability events
"""

import asyncio
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List, Optional, Sequence
import logging

from core.config import Settings, settings
from core.exceptions import ScraperException
from models.base import CollectionState, RunStatus
from schemas.checkpoint import Checkpoint
from schemas.training import TrainingDocument
from scraper.checkpoint import CheckpointStore
from scraper.concurrency import ConcurrencyGate
from scraper.events import EventBus, EventType
from scraper.extractors.jira_extractor import JiraExtractor
from scraper.loaders.jsonl_sink import JSONLSink
from scraper.transformers.issue_transformer import IssueTransformer

logger = logging.getLogger(__name__)


@dataclass
class RunStatistics:
    """Process-lifetime counters of one runner"""
    records_seen: int = 0
    successful: int = 0
    failed: int = 0
    retried_requests: int = 0
    collections_completed: int = 0
    collections_failed: int = 0
    collections_interrupted: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class CollectionResult:
    """Outcome of processing one collection"""
    collection_id: str
    state: CollectionState = CollectionState.NOT_STARTED
    checkpoint: Optional[Checkpoint] = None
    batches: int = 0
    records_seen: int = 0
    records_written: int = 0
    records_failed: int = 0
    skipped: bool = False
    error: Optional[ScraperException] = None

    @property
    def succeeded(self) -> bool:
        return self.state is CollectionState.COMPLETED

    @property
    def cursor(self) -> Optional[int]:
        return self.checkpoint.last_processed_index if self.checkpoint else None


class ScrapeRunner:
    """
    Resumable scrape orchestrator.

    Per collection:
        NOT_STARTED -> (checkpoint completed) -> COMPLETED
        NOT_STARTED -> FETCHING
        FETCHING    -> empty page -> COMPLETED
        FETCHING    -> fatal fetch error -> FAILED
        FETCHING    -> PROCESSING -> ADVANCING -> FETCHING | COMPLETED
        any boundary with stop requested -> INTERRUPTED

    Collections run sequentially; a FAILED collection never prevents the
    next one from being attempted.
    """

    def __init__(
        self,
        collections: Sequence[str],
        extractor: JiraExtractor,
        store: CheckpointStore,
        sink: JSONLSink,
        transformer: Optional[IssueTransformer] = None,
        max_concurrent: int = 5,
        batch_delay: float = 1.0,
        events: Optional[EventBus] = None
    ):
        self.collections = list(collections)
        self.extractor = extractor
        self.store = store
        self.sink = sink
        self.transformer = transformer or IssueTransformer()
        self.gate = ConcurrencyGate(max_concurrent)
        self.batch_delay = batch_delay
        self.events = events or EventBus()

        self._stats = RunStatistics()
        self._stop_event = asyncio.Event()

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        events: Optional[EventBus] = None
    ) -> "ScrapeRunner":
        """Build the full pipeline from application settings"""
        config = config or settings
        extractor = JiraExtractor(
            base_url=config.JIRA_BASE_URL,
            page_size=config.MAX_RESULTS,
            timeout=config.REQUEST_TIMEOUT,
            max_attempts=config.MAX_RETRIES,
            retry_base_delay=config.RETRY_BASE_DELAY,
            jql_template=config.JIRA_JQL_TEMPLATE,
            user_agent=config.USER_AGENT
        )
        return cls(
            collections=config.projects,
            extractor=extractor,
            store=CheckpointStore.from_url(config.DATABASE_URL),
            sink=JSONLSink(config.OUTPUT_DIR),
            transformer=IssueTransformer(),
            max_concurrent=config.MAX_CONCURRENT,
            batch_delay=config.RATE_LIMIT_DELAY,
            events=events
        )

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def stats(self) -> RunStatistics:
        """Snapshot of the run statistics"""
        return replace(self._stats)

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def request_stop(self) -> None:
        """Ask the runner to stop at the next state boundary"""
        if not self._stop_event.is_set():
            logger.info("Shutdown requested; finishing the in-flight batch")
        self._stop_event.set()

    async def run(self) -> List[CollectionResult]:
        """
        Process every configured collection in order.

        Returns:
            One CollectionResult per collection, in configuration order
        """
        logger.info(f"Starting scrape for collections: {', '.join(self.collections)}")
        await self.store.init()

        results: List[CollectionResult] = []
        # Retries are only counted while this runner drives the extractor
        self.extractor.add_retry_listener(self._on_retry)
        try:
            async with self.extractor:
                for collection_id in self.collections:
                    if self.stop_requested:
                        result = CollectionResult(collection_id, state=CollectionState.INTERRUPTED)
                        self._stats.collections_interrupted += 1
                        results.append(result)
                        continue
                    results.append(await self.run_collection(collection_id))
        finally:
            self.extractor.remove_retry_listener(self._on_retry)

        self._report(results)
        return results

    async def run_collection(self, collection_id: str) -> CollectionResult:
        """Process one collection to a terminal state; never raises"""
        result = CollectionResult(collection_id)
        run_id: Optional[int] = None

        try:
            # --------------------------------------------------
            # NOT_STARTED: load checkpoint
            # --------------------------------------------------
            checkpoint = await self.store.load(collection_id)
            result.checkpoint = checkpoint

            if checkpoint.completed:
                logger.info(f"Collection {collection_id} already completed. Skipping.")
                result.state = CollectionState.COMPLETED
                result.skipped = True
            else:
                logger.info(
                    f"Starting collection {collection_id} "
                    f"(resume at {checkpoint.last_processed_index}/{checkpoint.total_records})"
                )
                run_id = await self._start_run(collection_id, checkpoint)
                result.state = await self._scrape(collection_id, checkpoint, result)

        except ScraperException as e:
            self._fail(result, e)

        except Exception as e:
            logger.exception(f"Unexpected error while scraping {collection_id}")
            self._fail(result, ScraperException(
                "Unexpected error while scraping collection",
                context={
                    "collection": collection_id,
                    "cursor": result.cursor,
                    "state": result.state.value
                },
                original_exception=e
            ))

        if run_id is not None:
            await self._finish_run(run_id, result)

        if result.state is CollectionState.COMPLETED:
            self._stats.collections_completed += 1
            self.events.emit(
                EventType.COLLECTION_COMPLETED,
                collection=collection_id,
                processed=result.cursor,
                total=result.checkpoint.total_records if result.checkpoint else 0,
                skipped=result.skipped
            )
            if not result.skipped:
                logger.info(f"Completed scraping {collection_id}: {result.cursor} issues")
        elif result.state is CollectionState.INTERRUPTED:
            self._stats.collections_interrupted += 1
            logger.info(f"Stopped {collection_id} at {result.cursor}; resume will continue from there")

        return result

    # ------------------------------------------------------------------
    # Per-collection loop
    # ------------------------------------------------------------------

    async def _scrape(
        self,
        collection_id: str,
        checkpoint: Checkpoint,
        result: CollectionResult
    ) -> CollectionState:
        while True:
            if self.stop_requested:
                return CollectionState.INTERRUPTED

            # --------------------------------------------------
            # FETCHING
            # --------------------------------------------------
            result.state = CollectionState.FETCHING
            start_at = checkpoint.last_processed_index
            page = await self.extractor.fetch_page(collection_id, start_at)

            self.events.emit(
                EventType.FETCH_SUCCESS,
                collection=collection_id,
                start_at=start_at,
                count=len(page.issues)
            )

            if page.is_empty:
                logger.info(f"No more issues for {collection_id} at {start_at}")
                return CollectionState.COMPLETED

            if page.start_at != start_at:
                # Cursor arithmetic stays local: start_at + records returned
                logger.warning(
                    f"Remote echoed startAt={page.start_at} for {collection_id}, "
                    f"requested {start_at}"
                )

            # --------------------------------------------------
            # PROCESSING
            # --------------------------------------------------
            result.state = CollectionState.PROCESSING
            documents = await self._transform_page(page.issues)
            written = self._append(collection_id, documents)
            dropped = len(page.issues) - written

            self._stats.records_seen += len(page.issues)
            self._stats.successful += written
            self._stats.failed += dropped
            result.records_seen += len(page.issues)
            result.records_written += written
            result.records_failed += dropped

            # --------------------------------------------------
            # ADVANCING
            # --------------------------------------------------
            result.state = CollectionState.ADVANCING
            checkpoint = checkpoint.advance(len(page.issues), page.total)
            await self.store.save(checkpoint)
            result.checkpoint = checkpoint
            result.batches += 1

            logger.info(
                f"Processed {checkpoint.last_processed_index}/{checkpoint.total_records} "
                f"issues for {collection_id}"
            )
            self.events.emit(
                EventType.BATCH_PROGRESS,
                collection=collection_id,
                processed=checkpoint.last_processed_index,
                total=checkpoint.total_records
            )

            if not checkpoint.has_more:
                return CollectionState.COMPLETED

            if self.batch_delay > 0 and await self._pause(self.batch_delay):
                return CollectionState.INTERRUPTED

    async def _transform_page(self, issues: List[Dict[str, Any]]) -> List[Optional[TrainingDocument]]:
        """Transform all issues through the gate; results keep page order"""
        return await self.gate.map(self.transformer.transform, issues)

    def _append(self, collection_id: str, documents: List[Optional[TrainingDocument]]) -> int:
        return self.sink.append_many(
            collection_id,
            [doc for doc in documents if doc is not None]
        )

    async def _pause(self, delay: float) -> bool:
        """Pacing delay between batches. True if a stop arrived meanwhile."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False

    # ------------------------------------------------------------------
    # Failure handling and reporting
    # ------------------------------------------------------------------

    def _fail(self, result: CollectionResult, error: ScraperException) -> None:
        result.state = CollectionState.FAILED
        result.error = error
        self._stats.collections_failed += 1

        logger.error(
            f"Failed to scrape collection {result.collection_id}: {error.message}",
            extra={"error_context": error.to_dict()}
        )
        self.events.emit(
            EventType.COLLECTION_ERROR,
            collection=result.collection_id,
            error=str(error),
            error_type=type(error).__name__,
            cursor=result.cursor
        )

    def _on_retry(
        self,
        collection_id: str,
        attempt: int,
        error: ScraperException,
        delay: float
    ) -> None:
        self._stats.retried_requests += 1
        self.events.emit(
            EventType.RETRY,
            collection=collection_id,
            attempt=attempt,
            error=error.message,
            delay=delay
        )

    async def _start_run(self, collection_id: str, checkpoint: Checkpoint) -> Optional[int]:
        # Audit rows are observability only
        try:
            return await self.store.start_run(collection_id, checkpoint.last_processed_index)
        except ScraperException as e:
            logger.error(f"Could not record run start for {collection_id}: {e.message}")
            return None

    async def _finish_run(self, run_id: int, result: CollectionResult) -> None:
        status = {
            CollectionState.COMPLETED: RunStatus.SUCCESS,
            CollectionState.INTERRUPTED: RunStatus.INTERRUPTED,
        }.get(result.state, RunStatus.FAILED)
        try:
            await self.store.finish_run(
                run_id,
                status=status,
                batches=result.batches,
                records_seen=result.records_seen,
                records_written=result.records_written,
                records_failed=result.records_failed,
                cursor_after=result.cursor,
                error_message=result.error.message if result.error else None
            )
        except ScraperException as e:
            logger.error(f"Could not record run completion for {result.collection_id}: {e.message}")

    def _report(self, results: List[CollectionResult]) -> None:
        stats = self._stats
        logger.info(
            "Scraping statistics: "
            f"records={stats.records_seen}, successful={stats.successful}, "
            f"failed={stats.failed}, retried_requests={stats.retried_requests}"
        )
        failed = [r.collection_id for r in results if r.state is CollectionState.FAILED]
        if failed:
            logger.warning(f"Collections failed: {', '.join(failed)}")

        self.events.emit(
            EventType.RUN_COMPLETED,
            statistics=stats.to_dict(),
            failed_collections=failed
        )

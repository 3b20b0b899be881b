"""
Durable checkpoint store backed by the SQLAlchemy checkpoint database.

Every save runs in its own transaction, so a crash mid-save leaves either
the previous row or the new one, never a partial checkpoint.
"""

from typing import List, Optional
from sqlalchemy import select, delete, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from core.database import create_engine, create_session_factory
from core.exceptions import CheckpointError
from models.base import Base, RunStatus, utcnow
from models.checkpoint import ScrapeCheckpoint
from models.scrape_run import ScrapeRun
from schemas.api import ScrapeRunSummary
from schemas.checkpoint import Checkpoint
import logging

logger = logging.getLogger(__name__)


class CheckpointStore:
    """
    Load and save per-collection pagination progress.

    Responsibilities:
    - Checkpoint load (zero-state when absent) and atomic save
    - Explicit reset of a collection
    - Scrape run audit rows
    """

    def __init__(self, session_factory: async_sessionmaker, engine: Optional[AsyncEngine] = None):
        self.session_factory = session_factory
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> "CheckpointStore":
        engine = create_engine(database_url)
        return cls(create_session_factory(engine), engine=engine)

    async def init(self) -> None:
        """Create tables if they do not exist"""
        if self.engine is None:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to initialize checkpoint database",
                context={"operation": "init"},
                original_exception=e
            )

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()

    async def ping(self) -> bool:
        """True if the database answers a trivial query"""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Checkpoint database unreachable: {e}")
            return False

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    async def load(self, collection_id: str) -> Checkpoint:
        """Last saved checkpoint, or the zero-state if none exists"""
        try:
            async with self.session_factory() as session:
                row = await session.get(ScrapeCheckpoint, collection_id)
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to load checkpoint",
                context={"collection": collection_id, "operation": "load"},
                original_exception=e
            )

        if row is None:
            return Checkpoint.initial(collection_id)
        return self._to_checkpoint(row)

    async def save(self, checkpoint: Checkpoint) -> Checkpoint:
        """Overwrite the collection's checkpoint in a single transaction"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    row = await session.get(ScrapeCheckpoint, checkpoint.collection_id)
                    if row is None:
                        row = ScrapeCheckpoint(collection_id=checkpoint.collection_id, saves=0)
                        session.add(row)

                    row.last_processed_index = checkpoint.last_processed_index
                    row.total_records = checkpoint.total_records
                    row.completed = checkpoint.completed
                    row.timestamp = checkpoint.timestamp
                    row.saves = (row.saves or 0) + 1
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to save checkpoint",
                context={
                    "collection": checkpoint.collection_id,
                    "operation": "save",
                    "checkpoint_value": checkpoint.last_processed_index
                },
                original_exception=e
            )

        logger.debug(
            f"Saved checkpoint for {checkpoint.collection_id}: "
            f"{checkpoint.last_processed_index}/{checkpoint.total_records}"
        )
        return checkpoint

    async def delete(self, collection_id: str) -> bool:
        """Reset a collection. Returns False if it had no checkpoint."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        delete(ScrapeCheckpoint).where(
                            ScrapeCheckpoint.collection_id == collection_id
                        )
                    )
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to delete checkpoint",
                context={"collection": collection_id, "operation": "delete"},
                original_exception=e
            )

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Checkpoint reset for {collection_id}")
        return deleted

    async def list_checkpoints(self) -> List[Checkpoint]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ScrapeCheckpoint).order_by(ScrapeCheckpoint.collection_id)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to list checkpoints",
                context={"operation": "list"},
                original_exception=e
            )
        return [self._to_checkpoint(row) for row in rows]

    @staticmethod
    def _to_checkpoint(row: ScrapeCheckpoint) -> Checkpoint:
        return Checkpoint(
            collection_id=row.collection_id,
            last_processed_index=row.last_processed_index,
            total_records=row.total_records,
            completed=row.completed,
            timestamp=row.timestamp,
        )

    # ------------------------------------------------------------------
    # Run audit
    # ------------------------------------------------------------------

    async def start_run(self, collection_id: str, cursor_before: int) -> int:
        """Insert a RUNNING audit row and return its id"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    run = ScrapeRun(
                        collection_id=collection_id,
                        status=RunStatus.RUNNING,
                        started_at=utcnow(),
                        cursor_before=cursor_before
                    )
                    session.add(run)
                    await session.flush()
                    run_id = run.id
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to record scrape run start",
                context={"collection": collection_id, "operation": "start_run"},
                original_exception=e
            )
        return run_id

    async def finish_run(
        self,
        run_id: int,
        status: RunStatus,
        batches: int = 0,
        records_seen: int = 0,
        records_written: int = 0,
        records_failed: int = 0,
        cursor_after: Optional[int] = None,
        error_message: Optional[str] = None
    ) -> None:
        """Complete an audit row with its outcome and statistics"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    run = await session.get(ScrapeRun, run_id)
                    if run is None:
                        logger.warning(f"Scrape run {run_id} not found")
                        return

                    completed_at = utcnow()
                    run.status = status
                    run.completed_at = completed_at
                    run.duration_seconds = (completed_at - run.started_at).total_seconds()
                    run.batches = batches
                    run.records_seen = records_seen
                    run.records_written = records_written
                    run.records_failed = records_failed
                    run.cursor_after = cursor_after
                    run.error_message = error_message
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to record scrape run completion",
                context={"run_id": run_id, "operation": "finish_run"},
                original_exception=e
            )

    async def recent_runs(self, limit: int = 10) -> List[ScrapeRunSummary]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ScrapeRun)
                    .order_by(ScrapeRun.started_at.desc(), ScrapeRun.id.desc())
                    .limit(limit)
                )
                runs = result.scalars().all()
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to list scrape runs",
                context={"operation": "recent_runs"},
                original_exception=e
            )
        return [ScrapeRunSummary.model_validate(run) for run in runs]

    async def last_run_status(self, collection_id: str) -> Optional[RunStatus]:
        """Status of the most recent audit row for a collection"""
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ScrapeRun.status)
                    .where(ScrapeRun.collection_id == collection_id)
                    .order_by(ScrapeRun.started_at.desc(), ScrapeRun.id.desc())
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to read last scrape run",
                context={"collection": collection_id, "operation": "last_run_status"},
                original_exception=e
            )

"""
SQLAlchemy ORM models for the checkpoint database.

Models:
    base: Base declarative class and shared enums (CollectionState, RunStatus)
    checkpoint: Pagination progress per collection, the resume source of truth
    scrape_run: Audit rows, one per collection processing attempt

Database Schema:
    All models inherit from the Base declarative class and only use
    portable column types, so the same schema runs on SQLite (default)
    and PostgreSQL.

Usage:
    from models import ScrapeCheckpoint, ScrapeRun
    from models.base import CollectionState, RunStatus

Example:
    checkpoint = ScrapeCheckpoint(
        collection_id="KAFKA",
        last_processed_index=200,
        total_records=250,
        completed=False
    )
    session.add(checkpoint)
    await session.commit()
"""

from models.base import Base, CollectionState, RunStatus
from models.checkpoint import ScrapeCheckpoint
from models.scrape_run import ScrapeRun

__all__ = [
    "Base",
    "CollectionState",
    "RunStatus",
    "ScrapeCheckpoint",
    "ScrapeRun",
]

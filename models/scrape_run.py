from sqlalchemy import Column, BigInteger, String, Enum, DateTime, Float, Integer, Text, Index
from models.base import Base, RunStatus, utcnow


class ScrapeRun(Base):
    """
    Audit trail of collection processing attempts.

    Purpose:
    - Operator visibility into past runs (status API)
    - Error tracking per collection

    The pipeline writes these rows but never reads them to make decisions;
    resume state lives exclusively in ScrapeCheckpoint.
    """
    __tablename__ = "scrape_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    collection_id = Column(String(100), nullable=False, index=True)

    status = Column(Enum(RunStatus), default=RunStatus.RUNNING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    batches = Column(Integer, default=0)
    records_seen = Column(Integer, default=0)
    records_written = Column(Integer, default=0)
    records_failed = Column(Integer, default=0)

    # Cursor movement
    cursor_before = Column(BigInteger, nullable=True)
    cursor_after = Column(BigInteger, nullable=True)

    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_scrape_run_collection_started", "collection_id", "started_at"),
    )

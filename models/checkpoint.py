from sqlalchemy import Column, Integer, String, Boolean, DateTime, BigInteger
from models.base import Base, utcnow


class ScrapeCheckpoint(Base):
    """
    Pagination progress per collection.

    Purpose:
    - Resume a collection exactly where the last completed batch ended
    - Skip collections that already finished

    Design:
    - One row per collection, overwritten in a single transaction on save
    - last_processed_index is the offset of the next record to fetch
    - Rows are only removed by an explicit reset
    """
    __tablename__ = "scrape_checkpoints"

    collection_id = Column(String(100), primary_key=True)

    # Progress
    last_processed_index = Column(BigInteger, nullable=False, default=0)
    total_records = Column(BigInteger, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)

    # Bookkeeping
    saves = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

"""
Checkpoint value object shared by the store, the runner and the status API
"""

from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator
from models.base import utcnow


class Checkpoint(BaseModel):
    """
    Persisted pagination progress of one collection.

    Invariants:
    - last_processed_index equals the cursor after every completed batch
    - completed is true only once a positive total has been reached
    """

    model_config = ConfigDict(from_attributes=True)

    collection_id: str = Field(..., min_length=1, max_length=100)
    last_processed_index: int = Field(0, ge=0)
    total_records: int = Field(0, ge=0)
    completed: bool = False
    timestamp: datetime = Field(default_factory=utcnow)

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        """Store naive UTC so a save/load round trip compares equal"""
        if v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @classmethod
    def initial(cls, collection_id: str) -> "Checkpoint":
        """Zero-state checkpoint for a collection that was never fetched"""
        return cls(collection_id=collection_id)

    def advance(self, records_in_batch: int, total_records: int) -> "Checkpoint":
        """Checkpoint after a batch of `records_in_batch` records was written"""
        cursor = self.last_processed_index + records_in_batch
        return Checkpoint(
            collection_id=self.collection_id,
            last_processed_index=cursor,
            total_records=total_records,
            completed=total_records > 0 and cursor >= total_records,
            timestamp=utcnow(),
        )

    @property
    def has_more(self) -> bool:
        return self.last_processed_index < self.total_records

    @property
    def progress_percent(self) -> float:
        if self.total_records <= 0:
            return 0.0
        return round(self.last_processed_index / self.total_records * 100, 1)

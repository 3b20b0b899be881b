"""
Pydantic schemas for status API responses
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List
from datetime import datetime
from models.base import RunStatus, utcnow


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=utcnow)
    database_connected: bool
    output_dir_exists: bool
    total_collections: int = 0
    completed_collections: int = 0
    failed_collections: int = 0

    @model_validator(mode="after")
    def determine_status(self):
        """Derive overall health from connectivity and last run outcomes"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif self.total_collections == 0 or self.failed_collections == 0:
            self.status = "healthy"
        elif self.failed_collections < self.total_collections:
            self.status = "degraded"
        else:
            self.status = "unhealthy"
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "output_dir_exists": True,
                "total_collections": 3,
                "completed_collections": 1,
                "failed_collections": 0
            }
        }
    )


# ============================================================================
# Progress Schemas
# ============================================================================

class CollectionProgress(BaseModel):
    """Scrape progress of one collection"""
    collection_id: str
    status: str = Field(..., description="completed, in-progress or not-started")
    processed: int = 0
    total: int = 0
    remaining: int = 0
    progress_percent: float = 0.0
    last_update: Optional[datetime] = None
    lines_in_output: int = 0


class ProgressResponse(BaseModel):
    """Progress across all configured collections"""
    timestamp: datetime = Field(default_factory=utcnow)
    collections: List[CollectionProgress] = Field(default_factory=list)
    total_processed: int = 0
    total_records: int = 0
    total_remaining: int = 0
    overall_progress_percent: float = 0.0
    request_id: Optional[str] = None


# ============================================================================
# Run History Schemas
# ============================================================================

class ScrapeRunSummary(BaseModel):
    """One audit row"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    collection_id: str
    status: RunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    batches: int = 0
    records_seen: int = 0
    records_written: int = 0
    records_failed: int = 0
    cursor_before: Optional[int] = None
    cursor_after: Optional[int] = None
    error_message: Optional[str] = None


class RunsResponse(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    runs: List[ScrapeRunSummary] = Field(default_factory=list)
    request_id: Optional[str] = None

from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form DateTime columns store and return"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================================
# ENUMS
# ============================================================================

class CollectionState(str, enum.Enum):
    """Per-collection pipeline state"""
    NOT_STARTED = "not_started"
    FETCHING = "fetching"
    PROCESSING = "processing"
    ADVANCING = "advancing"
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"

    @property
    def is_terminal(self) -> bool:
        return self in (
            CollectionState.COMPLETED,
            CollectionState.FAILED,
            CollectionState.INTERRUPTED,
        )


class RunStatus(str, enum.Enum):
    """Scrape run status"""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    INTERRUPTED = "interrupted"

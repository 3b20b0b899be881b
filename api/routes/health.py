"""
Health check endpoint with database and checkpoint status
"""

from fastapi import APIRouter, Depends
from api.dependencies import get_sink, get_store
from core.config import settings
from core.exceptions import CheckpointError
from models.base import RunStatus
from schemas.api import HealthCheckResponse
from scraper.checkpoint import CheckpointStore
from scraper.loaders.jsonl_sink import JSONLSink
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    store: CheckpointStore = Depends(get_store),
    sink: JSONLSink = Depends(get_sink)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Output directory presence
    - Completed and failed collection counts
    """
    db_connected = await store.ping()

    total = len(settings.projects)
    completed = 0
    failed = 0

    if db_connected:
        try:
            checkpoints = {c.collection_id: c for c in await store.list_checkpoints()}
            for collection_id in settings.projects:
                checkpoint = checkpoints.get(collection_id)
                if checkpoint is not None and checkpoint.completed:
                    completed += 1
                elif await store.last_run_status(collection_id) is RunStatus.FAILED:
                    failed += 1
        except CheckpointError as e:
            logger.error(f"Failed to read checkpoint status: {e}")

    return HealthCheckResponse(
        database_connected=db_connected,
        output_dir_exists=sink.output_dir.is_dir(),
        total_collections=total,
        completed_collections=completed,
        failed_collections=failed
    )

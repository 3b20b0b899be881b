"""
Per-collection scrape progress
"""

from fastapi import APIRouter, Depends, HTTPException, status
from api.dependencies import get_request_id, get_sink, get_store
from core.config import settings
from core.exceptions import CheckpointError
from schemas.api import CollectionProgress, ProgressResponse
from scraper.checkpoint import CheckpointStore
from scraper.loaders.jsonl_sink import JSONLSink
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Progress"])


def collection_status(processed: int, completed: bool) -> str:
    if completed:
        return "completed"
    if processed > 0:
        return "in-progress"
    return "not-started"


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    store: CheckpointStore = Depends(get_store),
    sink: JSONLSink = Depends(get_sink),
    request_id: str = Depends(get_request_id)
):
    """
    Progress of every configured collection.

    Collections without a checkpoint are reported as not-started.
    """
    try:
        checkpoints = [await store.load(collection_id) for collection_id in settings.projects]
    except CheckpointError as e:
        logger.error(f"[{request_id}] GET /progress - checkpoint database unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Checkpoint database unavailable"
        )

    collections = []
    for collection_id, checkpoint in zip(settings.projects, checkpoints):
        processed = checkpoint.last_processed_index
        total = checkpoint.total_records

        collections.append(CollectionProgress(
            collection_id=collection_id,
            status=collection_status(processed, checkpoint.completed),
            processed=processed,
            total=total,
            remaining=max(total - processed, 0),
            progress_percent=checkpoint.progress_percent,
            last_update=checkpoint.timestamp if (processed or total) else None,
            lines_in_output=sink.count_lines(collection_id)
        ))

    total_processed = sum(c.processed for c in collections)
    total_records = sum(c.total for c in collections)
    overall = round(total_processed / total_records * 100, 1) if total_records else 0.0

    logger.info(f"[{request_id}] GET /progress - {len(collections)} collections")

    return ProgressResponse(
        collections=collections,
        total_processed=total_processed,
        total_records=total_records,
        total_remaining=sum(c.remaining for c in collections),
        overall_progress_percent=overall,
        request_id=request_id
    )

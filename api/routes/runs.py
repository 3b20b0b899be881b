"""
Scrape run history endpoint
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from api.dependencies import get_request_id, get_store
from core.exceptions import CheckpointError
from schemas.api import RunsResponse
from scraper.checkpoint import CheckpointStore
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Runs"])


@router.get("/runs", response_model=RunsResponse)
async def get_runs(
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    store: CheckpointStore = Depends(get_store),
    request_id: str = Depends(get_request_id)
):
    """Most recent scrape runs, newest first"""
    try:
        runs = await store.recent_runs(limit)
    except CheckpointError as e:
        logger.error(f"[{request_id}] GET /runs - checkpoint database unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Checkpoint database unavailable"
        )
    return RunsResponse(runs=runs, request_id=request_id)

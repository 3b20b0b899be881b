"""
FastAPI dependencies for the status service
"""

from fastapi import Request
from scraper.checkpoint import CheckpointStore
from scraper.loaders.jsonl_sink import JSONLSink


def get_store(request: Request) -> CheckpointStore:
    """Checkpoint store created at application startup"""
    return request.app.state.store


def get_sink(request: Request) -> JSONLSink:
    return request.app.state.sink


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")

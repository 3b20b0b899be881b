"""
API endpoint tests
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from api.main import app
from core.config import settings
from core.exceptions import CheckpointError
from models.base import RunStatus
from schemas.checkpoint import Checkpoint
from scraper.checkpoint import CheckpointStore
from scraper.loaders.jsonl_sink import JSONLSink


@pytest.fixture
def api_settings(monkeypatch, tmp_path, database_url):
    """Point the status service at a temporary database and output directory"""
    monkeypatch.setattr(settings, "DATABASE_URL", database_url)
    monkeypatch.setattr(settings, "OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setattr(settings, "JIRA_PROJECTS", "HADOOP,KAFKA,SPARK")
    return settings


def seed(database_url, checkpoints=(), runs=()):
    async def _seed():
        store = CheckpointStore.from_url(database_url)
        try:
            await store.init()
            for checkpoint in checkpoints:
                await store.save(checkpoint)
            for collection_id, status in runs:
                run_id = await store.start_run(collection_id, 0)
                await store.finish_run(run_id, status=status, error_message="boom" if status is RunStatus.FAILED else None)
        finally:
            await store.dispose()

    asyncio.run(_seed())


@pytest.fixture
def client(api_settings):
    with TestClient(app) as test_client:
        yield test_client


def test_root_endpoint(client):
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["endpoints"] == {"progress": "/progress", "runs": "/runs"}
    assert data["collections"] == ["HADOOP", "KAFKA", "SPARK"]


def test_request_context_headers(client):
    response = client.get("/")

    assert response.headers["X-Request-ID"].startswith("req_")
    assert int(response.headers["X-API-Latency-ms"]) >= 0


def test_health_endpoint_fresh_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database_connected"] is True
    assert data["output_dir_exists"] is True
    assert data["total_collections"] == 3
    assert data["completed_collections"] == 0
    assert data["failed_collections"] == 0


def test_health_endpoint_degraded_on_failed_collection(api_settings, database_url):
    seed(
        database_url,
        checkpoints=[Checkpoint.initial("HADOOP").advance(10, 10)],
        runs=[("KAFKA", RunStatus.FAILED)]
    )

    with TestClient(app) as client:
        data = client.get("/health").json()

    assert data["status"] == "degraded"
    assert data["completed_collections"] == 1
    assert data["failed_collections"] == 1


def test_progress_endpoint(api_settings, database_url, tmp_path):
    seed(database_url, checkpoints=[
        Checkpoint.initial("HADOOP").advance(250, 250),
        Checkpoint.initial("KAFKA").advance(100, 300),
    ])
    JSONLSink(tmp_path / "output").append_many("KAFKA", [{"n": i} for i in range(100)])

    with TestClient(app) as client:
        response = client.get("/progress")

    assert response.status_code == 200
    data = response.json()
    by_id = {c["collection_id"]: c for c in data["collections"]}

    assert by_id["HADOOP"]["status"] == "completed"
    assert by_id["HADOOP"]["progress_percent"] == 100.0

    kafka = by_id["KAFKA"]
    assert kafka["status"] == "in-progress"
    assert kafka["processed"] == 100
    assert kafka["remaining"] == 200
    assert kafka["progress_percent"] == 33.3
    assert kafka["lines_in_output"] == 100
    assert kafka["last_update"] is not None

    spark = by_id["SPARK"]
    assert spark["status"] == "not-started"
    assert spark["last_update"] is None

    assert data["total_processed"] == 350
    assert data["total_records"] == 550
    assert data["overall_progress_percent"] == 63.6
    assert data["request_id"].startswith("req_")


def test_runs_endpoint(api_settings, database_url):
    seed(database_url, runs=[
        ("HADOOP", RunStatus.SUCCESS),
        ("KAFKA", RunStatus.FAILED),
        ("SPARK", RunStatus.INTERRUPTED),
    ])

    with TestClient(app) as client:
        response = client.get("/runs", params={"limit": 2})

    assert response.status_code == 200
    runs = response.json()["runs"]
    assert [r["collection_id"] for r in runs] == ["SPARK", "KAFKA"]
    assert runs[1]["status"] == "failed"
    assert runs[1]["error_message"] == "boom"


def test_runs_endpoint_validates_limit(client):
    assert client.get("/runs", params={"limit": 0}).status_code == 422
    assert client.get("/runs", params={"limit": 101}).status_code == 422


def test_progress_endpoint_database_unavailable(client):
    failing_load = AsyncMock(side_effect=CheckpointError("Failed to load checkpoint"))

    with patch.object(app.state.store, "load", failing_load):
        response = client.get("/progress")

    assert response.status_code == 503
    assert response.json()["detail"] == "Checkpoint database unavailable"


def test_runs_endpoint_database_unavailable(client):
    failing_runs = AsyncMock(side_effect=CheckpointError("Failed to list scrape runs"))

    with patch.object(app.state.store, "recent_runs", failing_runs):
        response = client.get("/runs")

    assert response.status_code == 503

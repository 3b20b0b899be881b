"""
Integration tests for the complete scrape pipeline:
Fetch → Transform → Append → Checkpoint → Resume
"""

import asyncio

import httpx
import pytest

from models.base import CollectionState, RunStatus
from models.checkpoint import ScrapeCheckpoint
from schemas.checkpoint import Checkpoint
from scraper.events import EventBus, EventType
from scraper.extractors.jira_extractor import JiraExtractor
from scraper.runner import ScrapeRunner


def build_runner(extractor, store, sink, collections, batch_delay=0.0, max_concurrent=5):
    return ScrapeRunner(
        collections=collections,
        extractor=extractor,
        store=store,
        sink=sink,
        max_concurrent=max_concurrent,
        batch_delay=batch_delay,
        events=EventBus(keep_history=True)
    )


async def saves_for(store, collection_id):
    async with store.session_factory() as session:
        row = await session.get(ScrapeCheckpoint, collection_id)
    return row.saves if row else 0


@pytest.mark.asyncio
async def test_full_scrape_of_one_collection(extractor, fake_jira, store, sink, issue_factory, jsonl_reader):
    """250 issues at 100 per page: three fetches, three saves, all issues written in order"""
    fake_jira.issues["HADOOP"] = [issue_factory("HADOOP", i) for i in range(250)]
    runner = build_runner(extractor, store, sink, ["HADOOP"])

    results = await runner.run()

    assert results[0].state is CollectionState.COMPLETED
    assert [r["start_at"] for r in fake_jira.requests] == [0, 100, 200]

    progress = runner.events.events_of(EventType.BATCH_PROGRESS)
    assert [e.data["processed"] for e in progress] == [100, 200, 250]
    assert await saves_for(store, "HADOOP") == 3

    checkpoint = await store.load("HADOOP")
    assert checkpoint.completed
    assert checkpoint.last_processed_index == 250
    assert checkpoint.total_records == 250

    records = jsonl_reader(sink.path_for("HADOOP"))
    assert [r["metadata"]["key"] for r in records] == [f"HADOOP-{i}" for i in range(250)]

    stats = runner.stats
    assert stats.records_seen == 250
    assert stats.successful == 250
    assert stats.failed == 0
    assert stats.collections_completed == 1

    completed = runner.events.events_of(EventType.RUN_COMPLETED)
    assert completed[0].data["statistics"]["successful"] == 250


@pytest.mark.asyncio
async def test_resume_from_saved_checkpoint(extractor, fake_jira, store, sink, issue_factory):
    """A saved cursor of 100 means the next request starts at 100, never below"""
    fake_jira.issues["HADOOP"] = [issue_factory("HADOOP", i) for i in range(250)]
    await store.save(Checkpoint.initial("HADOOP").advance(100, 250))
    runner = build_runner(extractor, store, sink, ["HADOOP"])

    await runner.run()

    assert [r["start_at"] for r in fake_jira.requests] == [100, 200]
    assert sink.count_lines("HADOOP") == 150
    assert (await store.load("HADOOP")).completed


@pytest.mark.asyncio
async def test_completed_collection_is_skipped(extractor, fake_jira, store, sink, issue_factory):
    fake_jira.issues["HADOOP"] = [issue_factory("HADOOP", i) for i in range(10)]
    await store.save(Checkpoint.initial("HADOOP").advance(10, 10))
    runner = build_runner(extractor, store, sink, ["HADOOP"])

    results = await runner.run()

    assert results[0].state is CollectionState.COMPLETED
    assert results[0].skipped
    assert fake_jira.requests == []
    assert await store.recent_runs() == []


@pytest.mark.asyncio
async def test_empty_collection_completes_without_save(extractor, fake_jira, store, sink):
    fake_jira.issues["EMPTY"] = []
    runner = build_runner(extractor, store, sink, ["EMPTY"])

    results = await runner.run()

    assert results[0].state is CollectionState.COMPLETED
    assert len(fake_jira.requests) == 1
    assert await saves_for(store, "EMPTY") == 0
    assert not sink.path_for("EMPTY").exists()


@pytest.mark.asyncio
async def test_collections_run_in_order(extractor, fake_jira, store, sink, issue_factory):
    for project in ("HADOOP", "KAFKA", "SPARK"):
        fake_jira.issues[project] = [issue_factory(project, i) for i in range(120)]
    runner = build_runner(extractor, store, sink, ["HADOOP", "KAFKA", "SPARK"])

    results = await runner.run()

    assert [r.collection_id for r in results] == ["HADOOP", "KAFKA", "SPARK"]
    assert all(r.succeeded and r.state.is_terminal for r in results)
    assert [r["project"] for r in fake_jira.requests] == [
        "HADOOP", "HADOOP", "KAFKA", "KAFKA", "SPARK", "SPARK"
    ]
    runs = await store.recent_runs()
    assert {r.status for r in runs} == {RunStatus.SUCCESS}


@pytest.mark.asyncio
async def test_malformed_issues_are_counted_and_skipped(extractor, fake_jira, store, sink, issue_factory, jsonl_reader):
    issues = [issue_factory("KAFKA", i) for i in range(5)]
    del issues[2]["fields"]["summary"]
    issues[4]["fields"] = None
    fake_jira.issues["KAFKA"] = issues
    runner = build_runner(extractor, store, sink, ["KAFKA"])

    results = await runner.run()

    assert results[0].state is CollectionState.COMPLETED
    assert [r["metadata"]["key"] for r in jsonl_reader(sink.path_for("KAFKA"))] == [
        "KAFKA-0", "KAFKA-1", "KAFKA-3"
    ]
    assert (await store.load("KAFKA")).last_processed_index == 5
    assert runner.stats.successful == 3
    assert runner.stats.failed == 2
    assert results[0].records_failed == 2


@pytest.mark.asyncio
async def test_stop_during_pacing_delay(extractor, fake_jira, store, sink, issue_factory):
    """A stop request cuts the pacing delay short and leaves a resumable checkpoint"""
    fake_jira.issues["HADOOP"] = [issue_factory("HADOOP", i) for i in range(250)]
    fake_jira.issues["KAFKA"] = [issue_factory("KAFKA", i) for i in range(10)]
    runner = build_runner(extractor, store, sink, ["HADOOP", "KAFKA"], batch_delay=30.0)
    loop = asyncio.get_running_loop()
    runner.events.subscribe(
        EventType.BATCH_PROGRESS,
        lambda event: loop.call_later(0.05, runner.request_stop)
    )

    results = await asyncio.wait_for(runner.run(), timeout=5)

    assert [r.state for r in results] == [CollectionState.INTERRUPTED, CollectionState.INTERRUPTED]
    assert [r["start_at"] for r in fake_jira.requests] == [0]
    assert (await store.load("HADOOP")).last_processed_index == 100
    assert sink.count_lines("HADOOP") == 100
    assert runner.stats.collections_interrupted == 2
    assert (await store.recent_runs())[0].status is RunStatus.INTERRUPTED


@pytest.mark.asyncio
async def test_stop_during_fetch_finishes_the_batch(extractor, fake_jira, store, sink, issue_factory):
    fake_jira.issues["HADOOP"] = [issue_factory("HADOOP", i) for i in range(250)]
    runner = build_runner(extractor, store, sink, ["HADOOP"])
    fake_jira.on_request = lambda project, start_at: runner.request_stop()

    results = await runner.run()

    assert results[0].state is CollectionState.INTERRUPTED
    assert results[0].cursor == 100
    assert sink.count_lines("HADOOP") == 100
    assert (await store.load("HADOOP")).last_processed_index == 100


@pytest.mark.asyncio
async def test_interrupted_run_resumes_to_completion(extractor, fake_jira, store, sink, issue_factory, jsonl_reader):
    fake_jira.issues["HADOOP"] = [issue_factory("HADOOP", i) for i in range(250)]
    first = build_runner(extractor, store, sink, ["HADOOP"])
    first.events.subscribe(EventType.BATCH_PROGRESS, lambda event: first.request_stop())
    await first.run()

    second = ScrapeRunner(["HADOOP"], extractor, store, sink, batch_delay=0)
    results = await second.run()

    assert results[0].state is CollectionState.COMPLETED
    keys = [r["metadata"]["key"] for r in jsonl_reader(sink.path_for("HADOOP"))]
    assert keys == [f"HADOOP-{i}" for i in range(250)]


@pytest.mark.asyncio
async def test_remote_start_at_mismatch_keeps_local_cursor(store, sink, issue_factory, recorded_sleep):
    issues = [issue_factory("HADOOP", i) for i in range(150)]

    def handler(request):
        start_at = int(request.url.params["startAt"])
        return httpx.Response(200, json={
            "startAt": 0,
            "maxResults": 100,
            "total": 150,
            "issues": issues[start_at:start_at + 100],
        })

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        extractor = JiraExtractor("https://jira.example.org", client=client, sleep=recorded_sleep)
        runner = build_runner(extractor, store, sink, ["HADOOP"])
        results = await runner.run()

    assert results[0].state is CollectionState.COMPLETED
    assert (await store.load("HADOOP")).last_processed_index == 150
    assert sink.count_lines("HADOOP") == 150

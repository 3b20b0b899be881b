"""
Pytest configuration and fixtures
"""

import json
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import pytest_asyncio

from scraper.checkpoint import CheckpointStore
from scraper.extractors.jira_extractor import JiraExtractor
from scraper.loaders.jsonl_sink import JSONLSink

BASE_URL = "https://jira.example.org"


def make_issue(project: str, number: int, **field_overrides: Any) -> Dict[str, Any]:
    """Raw Jira issue as returned by /rest/api/2/search"""
    fields = {
        "summary": f"Issue {number} of {project}",
        "description": f"<p>Description of <b>{project}-{number}</b></p>",
        "status": {"name": "Open"},
        "priority": {"name": "Major"},
        "assignee": {"displayName": "Ada Lovelace"},
        "reporter": {"displayName": "Alan Turing"},
        "created": "2024-01-15T10:00:00.000+0000",
        "updated": "2024-01-16T11:30:00.000+0000",
        "labels": ["triage"],
        "issuetype": {"name": "Bug"},
        "project": {"key": project},
        "comment": {
            "comments": [
                {
                    "author": {"displayName": "Grace Hopper"},
                    "body": "Reproduced on <i>trunk</i>",
                    "created": "2024-01-15T12:00:00.000+0000",
                }
            ]
        },
    }
    fields.update(field_overrides)
    return {"id": str(10000 + number), "key": f"{project}-{number}", "fields": fields}


class FakeJira:
    """
    In-memory Jira search endpoint for httpx.MockTransport.

    Serves `issues[project]` in startAt/maxResults pages. Scripted failures
    are queued per project as status codes or exceptions and consumed one
    per request; a queued None serves the real page.
    """

    def __init__(self, issues: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.issues = issues or {}
        self.failures: Dict[str, List[Any]] = {}
        self.requests: List[Dict[str, Any]] = []
        self.on_request: Optional[Callable[[str, int], None]] = None

    def fail(self, project: str, *outcomes: Any) -> None:
        self.failures.setdefault(project, []).extend(outcomes)

    def requests_for(self, project: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r["project"] == project]

    def handler(self, request: httpx.Request) -> httpx.Response:
        query = parse_qs(urlparse(str(request.url)).query)
        jql = query["jql"][0]
        project = jql.split("=", 1)[1].split()[0]
        start_at = int(query["startAt"][0])
        max_results = int(query["maxResults"][0])

        self.requests.append({
            "project": project,
            "start_at": start_at,
            "max_results": max_results,
            "path": request.url.path,
            "params": query,
        })
        if self.on_request is not None:
            self.on_request(project, start_at)

        queued = self.failures.get(project)
        outcome = queued.pop(0) if queued else None
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return httpx.Response(outcome, text=f"scripted {outcome}")

        if project not in self.issues:
            return httpx.Response(404, json={"errorMessages": [f"No project {project}"]})

        issues = self.issues[project]
        return httpx.Response(200, content=json.dumps({
            "startAt": start_at,
            "maxResults": max_results,
            "total": len(issues),
            "issues": issues[start_at:start_at + max_results],
        }))


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_jira():
    return FakeJira()


@pytest.fixture
def recorded_sleep():
    return RecordingSleep()


@pytest_asyncio.fixture
async def http_client(fake_jira):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_jira.handler)) as client:
        yield client


@pytest.fixture
def extractor(http_client, recorded_sleep):
    return JiraExtractor(
        base_url=BASE_URL,
        page_size=100,
        client=http_client,
        sleep=recorded_sleep
    )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'checkpoints' / 'checkpoints.db'}"


@pytest_asyncio.fixture
async def store(database_url):
    """Checkpoint store on a fresh SQLite file"""
    checkpoint_store = CheckpointStore.from_url(database_url)
    await checkpoint_store.init()
    yield checkpoint_store
    await checkpoint_store.dispose()


@pytest.fixture
def sink(tmp_path):
    return JSONLSink(tmp_path / "output")


def read_jsonl(path) -> List[Dict[str, Any]]:
    with open(path, encoding="utf-8") as fh:
        return [json.loads(line) for line in fh]


@pytest.fixture
def issue_factory():
    return make_issue


@pytest.fixture
def jsonl_reader():
    return read_jsonl

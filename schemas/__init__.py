"""
Pydantic schemas for data validation and serialization.

Schemas:
    jira: Search page returned by the Jira REST API
    checkpoint: Checkpoint value object (collection progress)
    training: LLM training documents written to the JSONL output
    api: Status API response models

Usage:
    from schemas.jira import JiraSearchPage
    from schemas.checkpoint import Checkpoint
    from schemas.training import TrainingDocument

Example:
    page = JiraSearchPage.model_validate(
        {"startAt": 0, "maxResults": 100, "total": 250, "issues": [...]}
    )
    checkpoint = Checkpoint.initial("KAFKA").advance(len(page.issues), page.total)
    assert checkpoint.last_processed_index == len(page.issues)
"""

__all__ = [
    "JiraSearchPage",
    "Checkpoint",
    "TrainingDocument",
    "HealthCheckResponse",
    "ProgressResponse",
    "RunsResponse",
]

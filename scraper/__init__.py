"""
Resumable Jira scraper.

Pipeline:
    JiraExtractor -> IssueTransformer -> JSONLSink, with CheckpointStore
    recording progress after every written batch and ScrapeRunner driving
    the per-collection state machine.
"""

__all__ = [
    "checkpoint",
    "concurrency",
    "events",
    "retry",
    "runner",
]

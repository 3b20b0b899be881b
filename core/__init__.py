"""
Core utilities and configuration for the Jira scraper.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory for the checkpoint database
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_engine, create_session_factory
    from core.exceptions import APIExtractionError, NetworkError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Open the checkpoint database
    engine = create_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)
"""

__all__ = [
    "settings",
    "create_engine",
    "create_session_factory",
    "setup_logging",
    # Exceptions
    "ScraperException",
    "ExtractionError",
    "APIExtractionError",
    "PermanentRequestError",
    "AuthenticationError",
    "ResourceNotFoundError",
    "RetriesExhaustedError",
    "NetworkError",
    "ServerError",
    "RateLimitError",
    "TransformationError",
    "LoadError",
    "SinkWriteError",
    "CheckpointError",
    "RetryableError",
    "NonRetryableError",
]

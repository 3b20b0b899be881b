"""
Custom exceptions for the scraper pipeline with structured error context.

Each exception carries context information (collection, offsets, status
codes) for debugging and for the per-collection error reports.

Exception Hierarchy:
    ScraperException (base)
    ├── ExtractionError
    │   └── APIExtractionError
    │       ├── PermanentRequestError
    │       │   ├── AuthenticationError
    │       │   └── ResourceNotFoundError
    │       ├── RetriesExhaustedError
    │       ├── NetworkError
    │       ├── RateLimitError
    │       └── ServerError
    ├── TransformationError
    ├── LoadError
    │   └── SinkWriteError
    ├── CheckpointError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ScraperException(Exception):
    """
    Base exception for all scraper errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (collection, start_at, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ScraperException):
    """
    Mixin for transient errors the fetcher retries with backoff:
    network failures and timeouts, HTTP 429, HTTP 5xx.
    """
    pass


class NonRetryableError(ScraperException):
    """
    Mixin for permanent errors that are escalated without retrying:
    HTTP 4xx other than 429, unparseable responses.
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ScraperException):
    """Base exception for data extraction failures."""
    pass


class APIExtractionError(ExtractionError):
    """
    Exception raised when fetching a page from the remote API fails.

    Context should include:
        - collection: The collection being fetched
        - start_at: Pagination offset of the request
        - status_code: HTTP status code (if applicable)
        - attempts: Number of attempts made
    """
    pass


class PermanentRequestError(NonRetryableError, APIExtractionError):
    """HTTP 4xx (other than 429); retrying cannot help."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


class AuthenticationError(PermanentRequestError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(PermanentRequestError):
    """Resource not found (HTTP 404), e.g. an unknown project key."""
    pass


class RetriesExhaustedError(APIExtractionError):
    """A transient failure persisted past the attempt ceiling."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
        attempts: int = 0
    ):
        super().__init__(message, context, original_exception)
        self.attempts = attempts
        self.context["attempts"] = attempts


class NetworkError(RetryableError, APIExtractionError):
    """Transport-level failure: connection reset, DNS failure, timeout."""
    pass


class ServerError(RetryableError, APIExtractionError):
    """HTTP 5xx response."""
    pass


class RateLimitError(RetryableError, APIExtractionError):
    """Rate limiting (HTTP 429)."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
        retry_after: Optional[str] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Informational; backoff schedule is fixed
        if retry_after:
            self.context["retry_after"] = retry_after


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ScraperException):
    """
    Raised inside the transformer for a malformed record.

    Never leaves the transformer: the record is dropped and counted.
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ScraperException):
    """Base exception for output write failures."""
    pass


class SinkWriteError(LoadError):
    """
    Exception raised when appending to a collection's output stream fails.

    Context should include:
        - collection: Collection whose stream failed
        - path: Output file path
        - documents: Number of documents in the failed append
    """
    pass


# ============================================================================
# Checkpoint Errors
# ============================================================================

class CheckpointError(ScraperException):
    """
    Exception raised when checkpoint persistence fails.

    Context should include:
        - collection: Collection whose checkpoint failed
        - operation: Operation that failed (load, save, delete)
    """
    pass

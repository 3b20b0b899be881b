"""
Retry classification and backoff schedule for remote API calls.

classify() is a pure function of the outcome of one HTTP attempt:

    transport failure (reset, DNS, timeout)   -> RETRYABLE
    429                                       -> RETRYABLE
    >= 500                                    -> RETRYABLE
    200-299                                   -> SUCCESS
    anything else (4xx, unexpected errors)    -> FATAL
"""

import asyncio
import enum
from dataclasses import dataclass
from typing import List, Optional

import httpx

# Transient failures below HTTP: timeouts, connection errors, a peer breaking
# the protocol, and the total per-call timeout enforced with asyncio.wait_for.
# UnsupportedProtocol, LocalProtocolError and ProxyError are request bugs.
TRANSPORT_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    asyncio.TimeoutError,
)


class RetryVerdict(str, enum.Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a single attempt: a status code or a raised error"""

    status_code: Optional[int] = None
    error: Optional[BaseException] = None

    @classmethod
    def from_response(cls, response: httpx.Response) -> "FetchOutcome":
        return cls(status_code=response.status_code)

    @classmethod
    def from_error(cls, error: BaseException) -> "FetchOutcome":
        return cls(error=error)

    @property
    def is_transport_error(self) -> bool:
        return self.error is not None and isinstance(self.error, TRANSPORT_ERRORS)

    def describe(self) -> str:
        if self.error is not None:
            return f"{type(self.error).__name__}: {self.error}"
        return f"HTTP {self.status_code}"


def classify(outcome: FetchOutcome) -> RetryVerdict:
    """Decide whether an attempt succeeded, may be retried, or is final"""
    if outcome.error is not None:
        if outcome.is_transport_error:
            return RetryVerdict.RETRYABLE
        return RetryVerdict.FATAL

    status = outcome.status_code
    if status is None:
        return RetryVerdict.FATAL
    if 200 <= status <= 299:
        return RetryVerdict.SUCCESS
    if status == 429 or status >= 500:
        return RetryVerdict.RETRYABLE
    return RetryVerdict.FATAL


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff bounded only by the attempt ceiling.

    max_attempts counts every call including the first, so with the
    defaults the waits before attempts 2..5 are 2, 4, 8 and 16 seconds.
    """

    max_attempts: int = 5
    base_delay: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")

    def delay_for(self, retry_number: int) -> float:
        """Wait before retry `retry_number` (1 = the second attempt)"""
        if retry_number < 1:
            raise ValueError(f"retry_number starts at 1, got {retry_number}")
        return self.base_delay * (2 ** (retry_number - 1))

    def schedule(self) -> List[float]:
        return [self.delay_for(n) for n in range(1, self.max_attempts)]

"""
Jira search extractor with per-call timeout and retry logic.

This module provides robust page fetching with:
- Retry classification of every attempt (scraper.retry.classify)
- Exponential backoff for transient failures up to an attempt ceiling
- Immediate escalation of permanent client errors
- Retry notifications for observability
- Total per-call timeout
"""

import asyncio
import httpx
from typing import Any, Awaitable, Callable, Dict, List, Optional
from pydantic import ValidationError as PydanticValidationError
from schemas.jira import JiraSearchPage, SEARCH_FIELDS
from scraper.retry import BackoffPolicy, FetchOutcome, RetryVerdict, classify
from core.exceptions import (
    APIExtractionError,
    AuthenticationError,
    NetworkError,
    PermanentRequestError,
    RateLimitError,
    ResourceNotFoundError,
    RetriesExhaustedError,
    ScraperException,
    ServerError,
)
import logging

logger = logging.getLogger(__name__)

# (collection_id, attempt, error, delay) -> None
RetryListener = Callable[[str, int, ScraperException, float], None]


class JiraExtractor:
    """
    Fetch pages of issues from the Jira REST search endpoint.

    Features:
    - One GET per page with startAt/maxResults pagination
    - Retry with exponential backoff on transport errors, 429 and 5xx
    - No retry on other 4xx responses
    - Retry listeners notified before every backoff sleep

    Attributes:
        page_size: maxResults requested on every call (default: 100)
        timeout: Total time budget of a single attempt in seconds (default: 30.0)
        backoff: Attempt ceiling and base delay (default: 5 attempts, 2s)
    """

    SEARCH_PATH = "/rest/api/2/search"

    def __init__(
        self,
        base_url: str,
        page_size: int = 100,
        timeout: float = 30.0,
        max_attempts: int = 5,
        retry_base_delay: float = 2.0,
        jql_template: str = "project = {collection} ORDER BY created DESC",
        fields: str = SEARCH_FIELDS,
        user_agent: str = "Academic-Research-Bot/1.0",
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        self.base_url = base_url.rstrip("/")
        self.search_url = f"{self.base_url}{self.SEARCH_PATH}"
        self.page_size = page_size
        self.timeout = timeout
        self.backoff = BackoffPolicy(max_attempts=max_attempts, base_delay=retry_base_delay)
        self.jql_template = jql_template
        self.fields = fields
        self.headers = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }

        self._client = client
        self._owns_client = client is None
        self._sleep = sleep or asyncio.sleep
        self._retry_listeners: List[RetryListener] = []

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "JiraExtractor":
        self._get_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this extractor created it"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Retry notifications
    # ------------------------------------------------------------------

    def add_retry_listener(self, listener: RetryListener) -> None:
        self._retry_listeners.append(listener)

    def remove_retry_listener(self, listener: RetryListener) -> None:
        if listener in self._retry_listeners:
            self._retry_listeners.remove(listener)

    def _notify_retry(
        self,
        collection_id: str,
        attempt: int,
        error: ScraperException,
        delay: float
    ) -> None:
        for listener in self._retry_listeners:
            try:
                listener(collection_id, attempt, error, delay)
            except Exception:
                logger.exception(f"Retry listener failed for {collection_id}")

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def build_params(self, collection_id: str, start_at: int) -> Dict[str, Any]:
        """Query parameters of the search call for one page"""
        return {
            "jql": self.jql_template.format(collection=collection_id),
            "startAt": start_at,
            "maxResults": self.page_size,
            "fields": self.fields,
        }

    async def _request(self, params: Dict[str, Any]) -> httpx.Response:
        client = self._get_client()
        return await asyncio.wait_for(
            client.get(
                self.search_url,
                params=params,
                headers=self.headers,
                timeout=self.timeout
            ),
            timeout=self.timeout
        )

    async def fetch_page(self, collection_id: str, start_at: int) -> JiraSearchPage:
        """
        Fetch one page of a collection, retrying transient failures.

        Args:
            collection_id: Jira project key
            start_at: Offset of the first issue to return

        Returns:
            Parsed search page

        Raises:
            PermanentRequestError: For 4xx responses other than 429
            RetriesExhaustedError: When transient failures outlast the attempt ceiling
            APIExtractionError: For unparseable responses or unexpected errors
        """
        params = self.build_params(collection_id, start_at)
        context = {"collection": collection_id, "start_at": start_at}
        last_error: Optional[ScraperException] = None

        for attempt in range(1, self.backoff.max_attempts + 1):
            logger.debug(
                f"Request attempt {attempt}/{self.backoff.max_attempts} "
                f"for {collection_id} at {start_at}"
            )

            response: Optional[httpx.Response] = None
            try:
                response = await self._request(params)
                outcome = FetchOutcome.from_response(response)
            except Exception as e:
                outcome = FetchOutcome.from_error(e)

            verdict = classify(outcome)

            if verdict is RetryVerdict.SUCCESS:
                return self._parse(response, context)

            error = self._error_for(outcome, response, {**context, "attempt": attempt})

            if verdict is RetryVerdict.FATAL:
                logger.error(f"{outcome.describe()} for {collection_id} at {start_at}, not retrying")
                raise error

            last_error = error
            if attempt >= self.backoff.max_attempts:
                break

            delay = self.backoff.delay_for(attempt)
            logger.warning(
                f"{outcome.describe()} for {collection_id} at {start_at}. "
                f"Retrying in {delay} seconds (attempt {attempt}/{self.backoff.max_attempts})"
            )
            self._notify_retry(collection_id, attempt, error, delay)
            await self._sleep(delay)

        raise RetriesExhaustedError(
            f"Giving up on {collection_id} at {start_at} after "
            f"{self.backoff.max_attempts} attempts",
            context=dict(context),
            original_exception=last_error,
            attempts=self.backoff.max_attempts
        )

    def _error_for(
        self,
        outcome: FetchOutcome,
        response: Optional[httpx.Response],
        context: Dict[str, Any]
    ) -> ScraperException:
        """Map a failed attempt onto the exception hierarchy"""
        if outcome.error is not None:
            if outcome.is_transport_error:
                return NetworkError(
                    f"Transport failure: {outcome.describe()}",
                    context=context,
                    original_exception=outcome.error
                )
            return APIExtractionError(
                "Unexpected error during request",
                context=context,
                original_exception=outcome.error
            )

        status = outcome.status_code
        context = {**context, "status_code": status, "response_body": response.text[:500]}

        if status == 429:
            return RateLimitError(
                "Rate limited by remote API",
                context=context,
                retry_after=response.headers.get("Retry-After")
            )
        if status >= 500:
            return ServerError(f"Server error {status}", context=context)
        if status in (401, 403):
            return AuthenticationError(
                f"Authentication failed with HTTP {status}",
                context=context,
                status_code=status
            )
        if status == 404:
            return ResourceNotFoundError(
                "Resource not found",
                context=context,
                status_code=status
            )
        return PermanentRequestError(
            f"Request rejected with HTTP {status}",
            context=context,
            status_code=status
        )

    @staticmethod
    def _parse(response: httpx.Response, context: Dict[str, Any]) -> JiraSearchPage:
        try:
            data = response.json()
        except ValueError as e:
            raise APIExtractionError(
                "Failed to parse JSON response",
                context={**context, "response_body": response.text[:500]},
                original_exception=e
            )

        if not isinstance(data, dict):
            raise APIExtractionError(
                "Unexpected response shape",
                context={**context, "response_type": type(data).__name__}
            )

        try:
            return JiraSearchPage.model_validate(data)
        except PydanticValidationError as e:
            raise APIExtractionError(
                "Search response failed validation",
                context=context,
                original_exception=e
            )

"""
Async client for the episodes (posts) API.
"""
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from episode_feed.core.logging import get_logger
from episode_feed.core.settings import get_settings
from episode_feed.models.episode import Episode
from episode_feed.utils.error_logger import log_http_error

logger = get_logger(__name__)

UNKNOWN_ERROR = "Unknown error"
POSTS_PATH = "/posts"


class FetchFailure(Exception):
    """The remote source could not deliver a page.

    ``message`` is the response body when the server sent one, otherwise the
    transport error text, otherwise ``"Unknown error"``.
    """

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or UNKNOWN_ERROR
        self.status_code = status_code
        super().__init__(self.message)


class _ServerError(Exception):
    """5xx response; retried, then surfaced as a FetchFailure."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"Server error {response.status_code}")


class EpisodesApi:
    """
    Fetches pages of episodes from the posts endpoint.

    Transport errors and 5xx responses are retried with exponential backoff.
    4xx responses are returned to the caller as a FetchFailure right away.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_seconds: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: API root, defaults to settings.api_base_url.
            timeout: Request timeout in seconds, defaults to settings.http_timeout_seconds.
            max_retries: Attempts per request, defaults to settings.http_max_retries.
            backoff_seconds: Multiplier for the exponential backoff between attempts.
            client: Pre-built httpx.AsyncClient (tests inject one with a MockTransport).
        """
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        if max_retries is None:
            max_retries = settings.http_max_retries
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self.headers = {
            "User-Agent": settings.http_user_agent,
            "Accept": "application/json",
        }
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    async def _request(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=8),
            retry=retry_if_exception_type((httpx.TransportError, _ServerError)),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._get_client().get(url, params=params)
                if response.status_code >= 500:
                    raise _ServerError(response)
        return response

    async def get_posts(
        self,
        search_term: Optional[str],
        category_id: Optional[str],
        created_at_before: Optional[str],
        limit: int,
    ) -> list[Episode]:
        """
        Fetch one page of episodes, newest first.

        Args:
            search_term: Free-text search, omitted when None.
            category_id: Category filter, omitted when None.
            created_at_before: Cursor; only episodes older than this date are returned.
            limit: Page size.

        Returns:
            The page of episodes (empty when the server returns no body).

        Raises:
            FetchFailure: On network errors, timeouts, non-success statuses or a
                malformed body.
        """
        url = f"{self.base_url}{POSTS_PATH}"
        params = {
            "search": search_term,
            "categories": category_id,
            "createdAtBefore": created_at_before,
            "limit": limit,
        }
        params = {k: v for k, v in params.items() if v is not None}

        logger.debug(f"Fetching episodes from {url} with params {params}")
        try:
            response = await self._request(url, params)
        except _ServerError as e:
            response = e.response
        except httpx.HTTPError as e:
            log_http_error("episodes_api", url, error=e, operation="get_posts", context=params)
            raise FetchFailure(str(e)) from e

        if not response.is_success:
            log_http_error(
                "episodes_api",
                url,
                response=response,
                operation="get_posts",
                context={**params, "status_code": response.status_code},
            )
            raise FetchFailure(response.text, status_code=response.status_code)

        try:
            data = response.json() if response.content else None
        except ValueError as e:
            raise FetchFailure(f"Malformed episodes response: {e}") from e

        if data is None:
            return []
        if not isinstance(data, list):
            raise FetchFailure(f"Expected a list of episodes, got {type(data).__name__}")

        try:
            episodes = [Episode.model_validate(item) for item in data]
        except ValidationError as e:
            raise FetchFailure(f"Malformed episodes response: {e}") from e

        logger.info(f"Fetched {len(episodes)} episodes from {url}")
        return episodes

    async def close(self) -> None:
        """Close the underlying httpx.AsyncClient."""
        if self._client is not None and not self._client.is_closed:
            logger.info("Closing EpisodesApi client")
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "EpisodesApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

"""
HTTP infrastructure layer with timeout and retry logic.

Provides:
- FetchError: raised when a request cannot produce a usable response
- HTTPClient: async HTTP client with a hard per-attempt timeout and
  exponential backoff on retryable failures

Retryable failures are transport errors, timeouts and the status codes in
RETRYABLE_STATUS_CODES. Every other response, including 4xx/5xx outside
that set, is handed back to the caller untouched so that feed adapters can
make provider-specific decisions.
"""

import asyncio
import logging
from typing import Any

import httpx

from src.ingestion.retry import BackoffPolicy, retry_with_policy

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

DEFAULT_TIMEOUT_SECONDS = 15.0


class FetchError(Exception):
    """Raised when a request fails in a way the caller has to handle."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: str = "",
        retryable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.context = context
        self.retryable = retryable


def is_retryable_status(status_code: int) -> bool:
    """Check if an HTTP status code should trigger a retry."""
    return status_code in RETRYABLE_STATUS_CODES


def is_retryable_error(exc: BaseException) -> bool:
    """Retry classifier handed to retry_with_policy."""
    return isinstance(exc, FetchError) and exc.retryable


class HTTPClient:
    """
    Async HTTP client with per-attempt timeout and retry.

    Features:
    - Hard timeout per attempt (asyncio cancellation on top of httpx timeouts)
    - Exponential backoff with jitter on 408, 429, 5xx gateway errors
    - Automatic retry on timeout/transport errors
    - Context manager for proper resource cleanup

    Example:
        async with HTTPClient(BackoffPolicy(max_retries=3)) as client:
            response = await client.fetch(
                "https://api.example.com/feed",
                params={"host_mid": 42},
                context="feed:42",
            )
    """

    def __init__(
        self,
        policy: BackoffPolicy | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            policy: Retry policy. Uses defaults if None.
            timeout: Per-attempt timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.policy = policy or BackoffPolicy()
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        """Enter async context manager, create client."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        method: str = "GET",
        context: str = "",
    ) -> httpx.Response:
        """
        Perform a request with timeout and retry.

        Args:
            url: Request URL
            params: Query parameters
            headers: Request headers
            method: HTTP method
            context: Label for logs and metrics (e.g. "feed:12345")

        Returns:
            httpx.Response for any status outside RETRYABLE_STATUS_CODES

        Raises:
            FetchError: After retries are exhausted
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        label = context or url
        return await retry_with_policy(
            lambda: self._attempt(method, url, params, headers, label),
            self.policy,
            is_retryable=is_retryable_error,
            context=label,
        )

    async def _attempt(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
        context: str,
    ) -> httpx.Response:
        """Issue one request, translating retryable outcomes into FetchError."""
        assert self._client is not None
        try:
            response = await asyncio.wait_for(
                self._client.request(method, url, params=params, headers=headers),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise FetchError(
                f"Request to {url} timed out after {self.timeout:.1f}s",
                context=context,
                retryable=True,
            ) from e
        except httpx.TransportError as e:
            raise FetchError(
                f"{type(e).__name__} for {url}: {e}",
                context=context,
                retryable=True,
            ) from e

        if is_retryable_status(response.status_code):
            raise FetchError(
                f"Retryable status {response.status_code} from {url}",
                status_code=response.status_code,
                context=context,
                retryable=True,
            )

        if response.status_code >= 400:
            logger.debug(
                "Non-retryable status %d from %s (%s)",
                response.status_code, url, context,
            )
        return response

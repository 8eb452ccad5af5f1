"""Shared httpx + server-sent-events plumbing for the reference transports.

Opens a streaming POST with tenacity retry on transient failures (429, 5xx,
connection errors) and fails fast on authentication errors. Once the
stream is open nothing is retried: a half-consumed stream cannot be
replayed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
import tenacity
from httpx_sse import EventSource

from strand.transport.errors import (
    TransportAuthError,
    TransportHTTPError,
    TransportRateLimitError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from httpx_sse import ServerSentEvent

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {500, 502, 503, 504}
_AUTH_ERROR_STATUS_CODES = {401, 403}


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception is retryable.

    Retryable: 429, 500, 502, 503, 504, connection errors.
    Not retryable: 401, 403, 400, other client errors.
    """
    if isinstance(exc, TransportAuthError):
        return False
    if isinstance(exc, TransportRateLimitError):
        return True
    if isinstance(exc, TransportHTTPError):
        return exc.status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


class SSEClient:
    """Async httpx client that POSTs JSON and yields server-sent events.

    Usage::

        async with SSEClient("https://api.example.com/v1", api_key="sk-...") as client:
            async for sse in client.events("/chat/completions", payload):
                print(sse.data)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 120.0,
        max_retries: int = 3,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._wait = (
            tenacity.wait_exponential(multiplier=1, min=1, max=30)
            + tenacity.wait_random(0, 2)
        )
        default_headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if api_key:
            default_headers["Authorization"] = f"Bearer {api_key}"
        default_headers.update(headers or {})
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0),
        )
        self._headers = default_headers

    @property
    def base_url(self) -> str:
        return self._base_url

    async def events(self, path: str, payload: dict[str, Any]) -> AsyncIterator[ServerSentEvent]:
        """POST ``payload`` to ``path`` and yield the response's SSE events.

        Uses tenacity.AsyncRetrying programmatically (not as decorator) so that
        max_retries is configurable per-instance.

        Raises:
            TransportAuthError: On 401/403 (no retry).
            TransportRateLimitError: On 429 after all retries exhausted.
            TransportHTTPError: On other non-success statuses.
        """
        retryer = tenacity.AsyncRetrying(
            retry=tenacity.retry_if_exception(_is_retryable),
            wait=self._wait,
            stop=tenacity.stop_after_attempt(self._max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        response = await retryer(self._open, path, payload)
        try:
            async for sse in EventSource(response).aiter_sse():
                yield sse
        finally:
            await response.aclose()

    async def _open(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        """Send the request and check the status (no retry)."""
        request = self._client.build_request(
            "POST", f"{self._base_url}{path}", json=payload, headers=self._headers
        )
        response = await self._client.send(request, stream=True)
        if response.status_code < 400:
            return response

        body = (await response.aread()).decode("utf-8", errors="replace")
        await response.aclose()

        if response.status_code in _AUTH_ERROR_STATUS_CODES:
            raise TransportAuthError(
                f"Authentication failed: HTTP {response.status_code} - {body}"
            )
        if response.status_code == 429:
            retry_after_raw = response.headers.get("Retry-After")
            retry_after: float | None = None
            if retry_after_raw is not None:
                try:
                    retry_after = float(retry_after_raw)
                except (ValueError, TypeError):
                    pass
            raise TransportRateLimitError(
                f"Rate limited: HTTP 429 - {body}", retry_after=retry_after
            )
        raise TransportHTTPError(response.status_code, body)

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    async def __aenter__(self) -> SSEClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

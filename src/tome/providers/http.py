# ABOUTME: Async HTTP client abstraction for metadata provider API calls.
# ABOUTME: Provides rate limiting, retry with backoff, typed failures, and injectable transport.

import asyncio
import logging
import time
from typing import Any, Protocol, runtime_checkable

import httpx

from tome import __version__
from tome.providers.errors import (
    ProviderAuthError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    TransientProviderError,
)

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for the HTTP calls providers make against metadata APIs.

    ``provider`` and ``operation`` label the typed errors raised on failure
    so the caller can attribute them without parsing messages.
    """

    async def get_json(
        self,
        url: str,
        *,
        provider: str,
        operation: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any: ...

    async def post_json(
        self,
        url: str,
        body: dict[str, Any],
        *,
        provider: str,
        operation: str,
        headers: dict[str, str] | None = None,
    ) -> Any: ...


class TomeHttpClient:
    """HTTP client with rate limiting and retry for metadata API calls.

    Wraps httpx.AsyncClient with a configurable minimum request interval and
    retry logic for transient failures (429, 5xx). Cancelling the awaiting
    task aborts the in-flight request.
    """

    def __init__(
        self,
        *,
        min_request_interval: float = 0.1,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {
                "User-Agent": f"tome/{__version__}",
                "Accept": "application/json",
            },
            "timeout": timeout,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._last_request_time: float = 0.0
        self._rate_lock = asyncio.Lock()

    async def get_json(
        self,
        url: str,
        *,
        provider: str,
        operation: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a GET request and return the parsed JSON body.

        Raises:
            ProviderNotFoundError: On HTTP 404.
            ProviderAuthError: On HTTP 401/403.
            TransientProviderError: On network errors, other non-2xx
                responses, undecodable bodies, or exhausted retries.
        """
        return await self._request(
            "GET", url, provider=provider, operation=operation, params=params, headers=headers
        )

    async def post_json(
        self,
        url: str,
        body: dict[str, Any],
        *,
        provider: str,
        operation: str,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Send a POST request with a JSON body and return the parsed JSON response."""
        return await self._request(
            "POST", url, provider=provider, operation=operation, json=body, headers=headers
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        provider: str,
        operation: str,
        **kwargs: Any,
    ) -> Any:
        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            await self._rate_limit()
            try:
                response = await self._client.request(method, url, **kwargs)
                last_status = response.status_code
            except httpx.TimeoutException as exc:
                raise ProviderTimeoutError(
                    provider, operation, f"Request timed out: {url}"
                ) from exc
            except httpx.HTTPError as exc:
                raise TransientProviderError(
                    provider, operation, f"Request failed: {url}: {exc}"
                ) from exc

            if response.is_success:
                try:
                    return response.json()
                except ValueError as exc:
                    raise TransientProviderError(
                        provider, operation, f"Invalid JSON from {url}"
                    ) from exc

            if response.status_code == 404:
                raise ProviderNotFoundError(provider, operation, f"Not found: {url}")
            if response.status_code in (401, 403):
                raise ProviderAuthError(
                    provider, operation, f"HTTP {response.status_code}: credentials rejected"
                )
            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise TransientProviderError(
                    provider, operation, f"HTTP {response.status_code} from {url}"
                )

            if attempt < attempts - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                    response.status_code,
                    url,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                await asyncio.sleep(delay)

        raise TransientProviderError(
            provider, operation, f"HTTP {last_status} from {url} after {attempts} attempts"
        )

    async def _rate_limit(self) -> None:
        """Sleep if needed to maintain minimum interval between requests."""
        if self._min_interval <= 0:
            return
        async with self._rate_lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval and self._last_request_time > 0:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

# ABOUTME: Federated search: fans one query out to every enabled searchable provider at once.
# ABOUTME: Settles all calls, isolating each provider's failure or timeout into its own result.

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from tome.db.provider_configs import ProviderConfig
from tome.providers.errors import (
    ProviderError,
    ProviderTimeoutError,
    ValidationError,
)
from tome.providers.provider import MetadataProvider
from tome.providers.types import SearchMatch
from tome.services.provider_service import ProviderService

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 500
DEFAULT_SEARCH_TIMEOUT = 5.0

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"
STATUS_TIMEOUT = "timeout"


@dataclass
class SearchResult:
    """Outcome of the query against one provider."""

    provider: str
    results: list[SearchMatch] = field(default_factory=list)
    status: str = STATUS_SUCCESS
    duration: int = 0
    error: str | None = None


@dataclass
class FederatedSearchResponse:
    """Per-provider outcomes in priority order plus aggregate counts."""

    query: str
    results: list[SearchResult]
    total_results: int
    successful_providers: int
    failed_providers: int


def validate_query(query: Any) -> str:
    """Trim and check a search query.

    Raises:
        ValidationError: If the query is not a string, is blank, or is too long.
    """
    if not isinstance(query, str):
        raise ValidationError("query must be a string")
    trimmed = query.strip()
    if not trimmed:
        raise ValidationError("query must not be empty")
    if len(trimmed) > MAX_QUERY_LENGTH:
        raise ValidationError(f"query must be at most {MAX_QUERY_LENGTH} characters")
    return trimmed


def provider_timeout(config: ProviderConfig, default: float) -> float:
    """Seconds allowed for one provider, from its ``timeout`` setting in ms."""
    raw = config.settings.get("timeout")
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and raw > 0:
        return raw / 1000
    return default


class FederatedSearchService:
    """Queries every enabled searchable provider in parallel.

    A slow or failing provider never delays or spoils the others: each call
    has its own timeout and its own error capture, and the response always
    carries exactly one entry per dispatched provider.
    """

    def __init__(
        self, provider_service: ProviderService, default_timeout: float = DEFAULT_SEARCH_TIMEOUT
    ) -> None:
        self._service = provider_service
        self._default_timeout = default_timeout

    async def search(self, query: Any) -> FederatedSearchResponse:
        """Run ``query`` against all enabled providers that declare search.

        Raises:
            ValidationError: If the query is blank or too long. No provider
                is contacted in that case.
        """
        trimmed = validate_query(query)
        targets = self._service.registry.enabled_with_capability("has_search")
        logger.info("Federated search for %r across %d providers", trimmed, len(targets))

        results = await asyncio.gather(
            *(self._search_one(provider, config, trimmed) for provider, config in targets)
        )

        successful = sum(1 for r in results if r.status == STATUS_SUCCESS)
        response = FederatedSearchResponse(
            query=trimmed,
            results=list(results),
            total_results=sum(len(r.results) for r in results),
            successful_providers=successful,
            failed_providers=len(results) - successful,
        )
        logger.info(
            "Federated search for %r: %d results, %d ok, %d failed",
            trimmed,
            response.total_results,
            response.successful_providers,
            response.failed_providers,
        )
        return response

    async def _search_one(
        self, provider: MetadataProvider, config: ProviderConfig, query: str
    ) -> SearchResult:
        key = str(provider.id)
        timeout = provider_timeout(config, self._default_timeout)
        started = time.monotonic()

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            matches = await self._service.search(key, query, timeout=timeout)
        except ProviderTimeoutError as exc:
            duration = min(elapsed(), int(timeout * 1000))
            return SearchResult(key, status=STATUS_TIMEOUT, duration=duration, error=exc.reason)
        except ProviderError as exc:
            # Includes an open circuit: the provider was skipped, not called.
            return SearchResult(key, status=STATUS_ERROR, duration=elapsed(), error=exc.reason)
        except Exception as exc:
            # Already logged with traceback by the provider service.
            return SearchResult(key, status=STATUS_ERROR, duration=elapsed(), error=str(exc))

        return SearchResult(key, results=matches, duration=elapsed())

# ABOUTME: Hardcover.app metadata provider implementation (GraphQL API).
# ABOUTME: Searches the Hardcover catalog and fetches book records using a stored API key.

import logging
from typing import Any

from tome.providers.errors import (
    ProviderConfigurationError,
    ProviderNotFoundError,
    TransientProviderError,
    ValidationError,
)
from tome.providers.hardcover_parser import parse_book, parse_search_results
from tome.providers.http import HttpClient
from tome.providers.provider import ProviderConfigSource
from tome.providers.types import (
    BookMetadata,
    ProviderCapabilities,
    ProviderHealth,
    ProviderId,
    SearchMatch,
)

logger = logging.getLogger(__name__)

_HARDCOVER_GRAPHQL = "https://api.hardcover.app/v1/graphql"
_SEARCH_PER_PAGE = 25

_SEARCH_QUERY = """
query SearchBooks($query: String!, $perPage: Int!) {
  search(query: $query, query_type: "Book", per_page: $perPage, page: 1) {
    results
  }
}
"""

_BOOK_QUERY = """
query BookById($id: Int!) {
  books_by_pk(id: $id) {
    id
    title
    description
    pages
    release_date
    release_year
    rating
    cached_tags
    image { url }
    contributions { author { name } }
    book_series { position series { name } }
    editions(limit: 1, order_by: {users_count: desc}) {
      isbn_13
      isbn_10
      pages
      release_date
      publisher { name }
    }
  }
}
"""


class HardcoverProvider:
    """Metadata provider backed by the Hardcover.app GraphQL API.

    Search goes through Hardcover's Typesense-backed ``search`` field; fetch
    reads ``books_by_pk``. The bearer token is read from the provider's
    stored credentials (``apiKey``) on every call.
    """

    id = ProviderId.HARDCOVER
    name = "Hardcover"
    capabilities = ProviderCapabilities(
        has_search=True,
        has_metadata_fetch=True,
        has_sync=False,
        requires_auth=True,
    )

    def __init__(
        self,
        http_client: HttpClient,
        config_source: ProviderConfigSource,
        endpoint: str = _HARDCOVER_GRAPHQL,
    ) -> None:
        self._http = http_client
        self._config = config_source
        self._endpoint = endpoint

    async def search(self, query: str) -> list[SearchMatch]:
        """Search the Hardcover catalog by free text."""
        data = await self._graphql(
            _SEARCH_QUERY, {"query": query, "perPage": _SEARCH_PER_PAGE}, operation="search"
        )
        matches = parse_search_results(data)
        logger.debug("Hardcover search for %r returned %d matches", query, len(matches))
        return matches

    async def fetch_metadata(self, external_id: str) -> BookMetadata:
        """Fetch a Hardcover book by its numeric id.

        Raises:
            ValidationError: If the id is blank.
            ProviderNotFoundError: If Hardcover has no book with that id. Ids
                are numeric, so any other id is answered without a request.
        """
        book_id = external_id.strip()
        if not book_id:
            raise ValidationError("externalId is required")
        if not book_id.isdigit():
            raise ProviderNotFoundError(
                self.id, "fetchMetadata", f"No book with id {external_id!r}"
            )

        data = await self._graphql(_BOOK_QUERY, {"id": int(book_id)}, operation="fetchMetadata")
        book = (data.get("data") or {}).get("books_by_pk")
        if not book:
            raise ProviderNotFoundError(self.id, "fetchMetadata", f"No book with id {book_id}")
        return parse_book(book, book_id)

    async def health_check(self) -> ProviderHealth:
        """Healthy when an API key is configured; no network probe is spent."""
        if self._api_key():
            return ProviderHealth.HEALTHY
        logger.debug("Hardcover has no API key configured")
        return ProviderHealth.UNAVAILABLE

    def _api_key(self) -> str | None:
        key = self._config.credentials_for(self.id).get("apiKey", "")
        return key.strip() or None

    async def _graphql(
        self, query: str, variables: dict[str, Any], *, operation: str
    ) -> dict[str, Any]:
        api_key = self._api_key()
        if not api_key:
            raise ProviderConfigurationError(
                self.id, operation, "API key required; set the 'apiKey' credential"
            )

        data = await self._http.post_json(
            self._endpoint,
            {"query": query, "variables": variables},
            provider=self.id,
            operation=operation,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        if not isinstance(data, dict):
            raise TransientProviderError(self.id, operation, "Unexpected GraphQL response shape")
        errors = data.get("errors")
        if errors:
            first_error = errors[0] if isinstance(errors, list) else errors
            message = (
                first_error.get("message", "Unknown error")
                if isinstance(first_error, dict)
                else str(first_error)
            )
            logger.error("Hardcover GraphQL error during %s: %s", operation, message)
            raise TransientProviderError(self.id, operation, f"GraphQL error: {message}")
        return data

# ABOUTME: Open Library metadata provider implementation.
# ABOUTME: Searches openlibrary.org and fetches full work metadata by OL work id.

import asyncio
import logging
import re

from tome.providers.errors import ProviderError, ProviderNotFoundError, ValidationError
from tome.providers.http import HttpClient
from tome.providers.openlibrary_parser import (
    parse_author_keys,
    parse_author_name,
    parse_search_results,
    parse_works_metadata,
    select_best_edition,
)
from tome.providers.types import (
    BookMetadata,
    ProviderCapabilities,
    ProviderHealth,
    ProviderId,
    SearchMatch,
)

logger = logging.getLogger(__name__)

_OL_BASE = "https://openlibrary.org"
_SEARCH_LIMIT = 25
_SEARCH_FIELDS = (
    "key,title,author_name,publish_date,first_publish_year,isbn,publisher,"
    "cover_i,number_of_pages_median"
)
_WORK_ID_RE = re.compile(r"^(?:/works/)?(OL\d+W)$", re.IGNORECASE)


class OpenLibraryProvider:
    """Metadata provider backed by the public Open Library REST API.

    Search goes through the Solr-backed /search.json endpoint. Metadata fetch
    combines the works record with the best edition (ISBN, publisher, pages)
    and resolved author names. Uses a dependency-injected HttpClient.
    """

    id = ProviderId.OPENLIBRARY
    name = "Open Library"
    capabilities = ProviderCapabilities(
        has_search=True,
        has_metadata_fetch=True,
        has_sync=False,
        requires_auth=False,
    )

    def __init__(self, http_client: HttpClient, base_url: str = _OL_BASE) -> None:
        self._http = http_client
        self._base = base_url.rstrip("/")

    async def search(self, query: str) -> list[SearchMatch]:
        """Search the Open Library catalog by free text (title, author, ISBN)."""
        params = {"q": query, "limit": str(_SEARCH_LIMIT), "fields": _SEARCH_FIELDS}
        data = await self._http.get_json(
            f"{self._base}/search.json", provider=self.id, operation="search", params=params
        )
        matches = parse_search_results(data if isinstance(data, dict) else {})
        logger.debug("Open Library search for %r returned %d matches", query, len(matches))
        return matches

    async def fetch_metadata(self, external_id: str) -> BookMetadata:
        """Fetch full metadata for an Open Library work id (e.g. "OL27448W").

        Raises:
            ValidationError: If the id is blank.
            ProviderNotFoundError: If Open Library has no such work, including
                any id that is not an OL work id.
        """
        if not external_id.strip():
            raise ValidationError("externalId is required")
        match = _WORK_ID_RE.match(external_id.strip())
        if not match:
            raise ProviderNotFoundError(
                self.id, "fetchMetadata", f"No work with id {external_id!r}"
            )
        work_id = match.group(1).upper()

        work = await self._http.get_json(
            f"{self._base}/works/{work_id}.json", provider=self.id, operation="fetchMetadata"
        )
        if not isinstance(work, dict):
            work = {}

        edition, authors = await asyncio.gather(
            self._best_edition(work_id),
            self._resolve_authors(parse_author_keys(work)),
        )
        return parse_works_metadata(work, work_id, authors=authors, edition=edition)

    async def health_check(self) -> ProviderHealth:
        """Probe the search endpoint with a one-result query."""
        try:
            await self._http.get_json(
                f"{self._base}/search.json",
                provider=self.id,
                operation="healthCheck",
                params={"q": "test", "limit": "1", "fields": "key"},
            )
        except ProviderError as exc:
            logger.warning("Open Library health probe failed: %s", exc)
            return ProviderHealth.UNAVAILABLE
        return ProviderHealth.HEALTHY

    async def _best_edition(self, work_id: str) -> dict | None:
        """Fetch editions for a work and pick the best one. Best-effort."""
        try:
            data = await self._http.get_json(
                f"{self._base}/works/{work_id}/editions.json",
                provider=self.id,
                operation="fetchMetadata",
            )
        except ProviderError as exc:
            logger.warning("Open Library editions lookup failed for %s: %s", work_id, exc)
            return None
        entries = data.get("entries", []) if isinstance(data, dict) else []
        return select_best_edition([e for e in entries if isinstance(e, dict)])

    async def _resolve_authors(self, author_keys: list[str]) -> list[str]:
        """Fetch author names for author keys, skipping any that fail."""
        if not author_keys:
            return []

        async def _one(key: str) -> str | None:
            try:
                data = await self._http.get_json(
                    f"{self._base}{key}.json", provider=self.id, operation="fetchMetadata"
                )
            except ProviderError:
                return None
            return parse_author_name(data) if isinstance(data, dict) else None

        names = await asyncio.gather(*(_one(key) for key in author_keys))
        return [name for name in names if name]

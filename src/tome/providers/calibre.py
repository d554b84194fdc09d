# ABOUTME: Calibre library provider: fetches book metadata from a local metadata.db.
# ABOUTME: Read-only SQLite access; the library path comes from provider settings.

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any

from tome.providers.errors import (
    ProviderConfigurationError,
    ProviderNotFoundError,
    TransientProviderError,
    ValidationError,
)
from tome.providers.normalize import clean_isbn, parse_publish_date
from tome.providers.provider import ProviderConfigSource
from tome.providers.types import BookMetadata, ProviderCapabilities, ProviderHealth, ProviderId

logger = logging.getLogger(__name__)

_BOOK_QUERY = """
SELECT
    b.id,
    b.title,
    b.pubdate,
    b.series_index,
    c.text AS description,
    p.name AS publisher,
    s.name AS series,
    r.rating AS rating,
    (SELECT i.val FROM identifiers i WHERE i.book = b.id AND i.type = 'isbn' LIMIT 1) AS isbn
FROM books b
LEFT JOIN comments c ON c.book = b.id
LEFT JOIN books_publishers_link bpl ON bpl.book = b.id
LEFT JOIN publishers p ON p.id = bpl.publisher
LEFT JOIN books_series_link bsl ON bsl.book = b.id
LEFT JOIN series s ON s.id = bsl.series
LEFT JOIN books_ratings_link brl ON brl.book = b.id
LEFT JOIN ratings r ON r.id = brl.rating
WHERE b.id = ?
"""

_AUTHORS_QUERY = """
SELECT a.name FROM books_authors_link bal
JOIN authors a ON a.id = bal.author
WHERE bal.book = ? ORDER BY bal.id
"""

_TAGS_QUERY = """
SELECT t.name FROM books_tags_link btl
JOIN tags t ON t.id = btl.tag
WHERE btl.book = ? ORDER BY t.name
"""


def resolve_metadata_db(library_path: str | Path) -> Path:
    """Accept either a Calibre library directory or its metadata.db path."""
    path = Path(library_path).expanduser()
    return path if path.suffix == ".db" else path / "metadata.db"


class CalibreProvider:
    """Fetch-only provider over a Calibre library database.

    Calibre has no search API worth federating and its bulk sync lives
    elsewhere, so only ``fetch_metadata`` (by Calibre book id) is offered.
    Queries run in a worker thread so the event loop is never blocked.
    """

    id = ProviderId.CALIBRE
    name = "Calibre Library"
    capabilities = ProviderCapabilities(
        has_search=False,
        has_metadata_fetch=True,
        has_sync=False,
        requires_auth=False,
    )

    def __init__(
        self, config_source: ProviderConfigSource, default_library: Path | None = None
    ) -> None:
        self._config = config_source
        self._default_library = default_library

    async def fetch_metadata(self, external_id: str) -> BookMetadata:
        """Read one book from metadata.db by its Calibre id.

        Raises:
            ValidationError: If the id is blank.
            ProviderNotFoundError: If the library has no such book, including
                any id that is not an integer.
            ProviderConfigurationError: If no library path is configured.
            TransientProviderError: If the database cannot be read.
        """
        book_id = external_id.strip()
        if not book_id:
            raise ValidationError("externalId is required")
        if not book_id.isdigit():
            raise ProviderNotFoundError(
                self.id, "fetchMetadata", f"No book with id {external_id!r}"
            )
        db_path = self._metadata_db("fetchMetadata")
        return await asyncio.to_thread(self._read_book, db_path, int(book_id))

    async def health_check(self) -> ProviderHealth:
        try:
            db_path = self._metadata_db("healthCheck")
        except ProviderConfigurationError:
            return ProviderHealth.UNAVAILABLE
        return ProviderHealth.HEALTHY if db_path.is_file() else ProviderHealth.UNAVAILABLE

    def _metadata_db(self, operation: str) -> Path:
        configured = self._config.settings_for(self.id).get("libraryPath")
        library = configured or self._default_library
        if not library:
            raise ProviderConfigurationError(
                self.id, operation, "No Calibre library configured; set 'libraryPath'"
            )
        return resolve_metadata_db(library)

    def _read_book(self, db_path: Path, book_id: int) -> BookMetadata:
        if not db_path.is_file():
            raise TransientProviderError(
                self.id, "fetchMetadata", f"Calibre database not found: {db_path}"
            )
        try:
            conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as exc:
            raise TransientProviderError(self.id, "fetchMetadata", str(exc)) from exc

        try:
            conn.row_factory = sqlite3.Row
            row = conn.execute(_BOOK_QUERY, (book_id,)).fetchone()
            if row is None:
                raise ProviderNotFoundError(
                    self.id, "fetchMetadata", f"No Calibre book with id {book_id}"
                )
            authors = [r[0] for r in conn.execute(_AUTHORS_QUERY, (book_id,))]
            tags = [r[0] for r in conn.execute(_TAGS_QUERY, (book_id,))]
        except sqlite3.Error as exc:
            raise TransientProviderError(self.id, "fetchMetadata", str(exc)) from exc
        finally:
            conn.close()

        return _row_to_metadata(row, authors, tags)


def _row_to_metadata(row: Any, authors: list[str], tags: list[str]) -> BookMetadata:
    # Calibre stores ratings on a 0-10 scale and uses 0101-01-01 for "no date".
    rating = row["rating"]
    pubdate = row["pubdate"] or ""
    pub_date = parse_publish_date(pubdate[:10]) if not pubdate.startswith("0101") else None
    return BookMetadata(
        title=row["title"] or "Untitled",
        authors=authors,
        isbn=clean_isbn(row["isbn"]),
        description=row["description"] or None,
        tags=tags,
        publisher=row["publisher"],
        pub_date=pub_date,
        series=row["series"],
        series_index=row["series_index"] if row["series"] else None,
        external_id=str(row["id"]),
        rating=rating / 2 if rating else None,
    )

# ABOUTME: Parsing functions for Hardcover GraphQL API responses.
# ABOUTME: Normalizes Typesense search hits and books_by_pk records into Tome data types.

import json
import logging
from datetime import date
from typing import Any

from tome.providers.normalize import clean_isbn, first, parse_publish_date
from tome.providers.types import BookMetadata, SearchMatch

logger = logging.getLogger(__name__)


def _search_documents(results: Any) -> list[dict[str, Any]]:
    """Unwrap the ``search.results`` payload into a list of book documents.

    Hardcover returns Typesense output, sometimes as a JSON string, usually
    as {"hits": [{"document": {...}}]}, and occasionally as a bare list.
    """
    if isinstance(results, str):
        try:
            results = json.loads(results)
        except ValueError:
            logger.warning("Hardcover search results were not valid JSON")
            return []

    if isinstance(results, dict):
        items = results.get("hits", []) or []
    elif isinstance(results, list):
        items = results
    else:
        return []

    documents: list[dict[str, Any]] = []
    for item in items:
        if isinstance(item, str):
            try:
                item = json.loads(item)
            except ValueError:
                continue
        if not isinstance(item, dict):
            continue
        doc = item.get("document", item)
        if isinstance(doc, dict):
            documents.append(doc)
    return documents


def _image_url(image: Any) -> str | None:
    if isinstance(image, dict):
        return image.get("url") or None
    if isinstance(image, str):
        return image or None
    return None


def _release_date(record: dict[str, Any]) -> date | None:
    pub_date = parse_publish_date(record.get("release_date"))
    if pub_date is None and record.get("release_year"):
        pub_date = parse_publish_date(str(record["release_year"]))
    return pub_date


def parse_search_results(data: dict[str, Any]) -> list[SearchMatch]:
    """Parse a Hardcover ``search`` GraphQL response into SearchMatch records."""
    search = ((data or {}).get("data") or {}).get("search") or {}
    matches: list[SearchMatch] = []
    for doc in _search_documents(search.get("results")):
        external_id = str(doc.get("id") or "").strip()
        if not external_id:
            continue
        pages = doc.get("pages")
        publisher = doc.get("publisher")
        matches.append(
            SearchMatch(
                external_id=external_id,
                title=doc.get("title") or "Untitled",
                authors=[a for a in doc.get("author_names", []) or [] if isinstance(a, str)],
                isbn=clean_isbn(first(doc.get("isbns"))),
                publisher=publisher if isinstance(publisher, str) else None,
                pub_date=_release_date(doc),
                total_pages=pages if isinstance(pages, int) and pages > 0 else None,
                cover_image_url=_image_url(doc.get("image")),
            )
        )
    return matches


def _tag_names(cached_tags: Any) -> list[str]:
    """Flatten Hardcover ``cached_tags`` ({"Genre": [{"tag": "Fantasy"}], ...})."""
    if isinstance(cached_tags, str):
        try:
            cached_tags = json.loads(cached_tags)
        except ValueError:
            return []
    groups = cached_tags.values() if isinstance(cached_tags, dict) else [cached_tags]
    names: list[str] = []
    for group in groups:
        if not isinstance(group, list):
            continue
        for entry in group:
            if isinstance(entry, dict) and entry.get("tag"):
                names.append(str(entry["tag"]))
            elif isinstance(entry, str):
                names.append(entry)
    return names


def parse_book(book: dict[str, Any], external_id: str) -> BookMetadata:
    """Map a Hardcover ``books_by_pk`` record to BookMetadata."""
    authors = []
    for contribution in book.get("contributions", []) or []:
        author = contribution.get("author") if isinstance(contribution, dict) else None
        if isinstance(author, dict) and author.get("name"):
            authors.append(author["name"])

    edition = first(book.get("editions"))
    if not isinstance(edition, dict):
        edition = {}
    isbn = clean_isbn(edition.get("isbn_13")) or clean_isbn(edition.get("isbn_10"))
    publisher_ref = edition.get("publisher")
    publisher = publisher_ref.get("name") if isinstance(publisher_ref, dict) else None

    pages = book.get("pages") or edition.get("pages")
    series = first(book.get("book_series"))
    if not isinstance(series, dict):
        series = {}
    position = series.get("position")
    rating = book.get("rating")

    return BookMetadata(
        title=book.get("title") or "Untitled",
        authors=authors,
        isbn=isbn,
        description=book.get("description") or None,
        tags=_tag_names(book.get("cached_tags")),
        publisher=publisher,
        pub_date=_release_date(book) or parse_publish_date(edition.get("release_date")),
        total_pages=pages if isinstance(pages, int) and pages > 0 else None,
        cover_image_url=_image_url(book.get("image")),
        series=(series.get("series") or {}).get("name"),
        series_index=float(position) if isinstance(position, (int, float)) else None,
        external_id=external_id,
        rating=round(float(rating), 2) if isinstance(rating, (int, float)) and rating > 0 else None,
    )

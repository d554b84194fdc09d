# ABOUTME: Parsing functions for Open Library API JSON responses.
# ABOUTME: Converts OL search docs and works/editions payloads into SearchMatch and BookMetadata.

from typing import Any

from tome.providers.normalize import clean_isbn, first, parse_publish_date
from tome.providers.types import BookMetadata, SearchMatch

_COVERS_BASE_URL = "https://covers.openlibrary.org/b/id"


def build_cover_url(cover_id: int | str, size: str = "L") -> str:
    """Build an Open Library cover image URL for a cover id.

    Args:
        cover_id: Numeric cover id from a search doc or works record.
        size: Image size - "S" (small), "M" (medium), or "L" (large).
    """
    return f"{_COVERS_BASE_URL}/{cover_id}-{size}.jpg"


def work_id_from_key(key: str | None) -> str:
    """Extract the bare work id from a works key ("/works/OL27448W" -> "OL27448W")."""
    if not key:
        return ""
    return key.rstrip("/").rsplit("/", 1)[-1]


def parse_search_results(data: dict[str, Any]) -> list[SearchMatch]:
    """Parse an Open Library Search API response into SearchMatch records.

    Docs without a works key are dropped since they cannot be fetched later.
    Upstream ordering is preserved.
    """
    matches: list[SearchMatch] = []
    for doc in data.get("docs", []) or []:
        if not isinstance(doc, dict):
            continue
        external_id = work_id_from_key(doc.get("key"))
        if not external_id:
            continue

        cover_id = doc.get("cover_i")
        pages = doc.get("number_of_pages_median")
        pub_date = parse_publish_date(first(doc.get("publish_date")))
        if pub_date is None and doc.get("first_publish_year"):
            pub_date = parse_publish_date(str(doc["first_publish_year"]))

        matches.append(
            SearchMatch(
                external_id=external_id,
                title=doc.get("title") or "Untitled",
                authors=list(doc.get("author_name") or []),
                isbn=clean_isbn(first(doc.get("isbn"))),
                publisher=first(doc.get("publisher")),
                pub_date=pub_date,
                total_pages=pages if isinstance(pages, int) else None,
                cover_image_url=build_cover_url(cover_id, "M") if cover_id else None,
            )
        )
    return matches


def parse_description(data: dict[str, Any]) -> str | None:
    """Extract the description from an Open Library Works response.

    Handles the OL quirk where description can be either a plain string
    or a dict with {"type": ..., "value": "actual text"}.
    """
    desc = data.get("description")
    if isinstance(desc, str):
        return desc or None
    if isinstance(desc, dict):
        return desc.get("value") or None
    return None


def parse_author_keys(data: dict[str, Any]) -> list[str]:
    """Collect author keys from a works record.

    Works responses store authors as [{"author": {"key": "/authors/..."}}];
    some older records use [{"key": "/authors/..."}] directly.
    """
    keys: list[str] = []
    for entry in data.get("authors", []) or []:
        if not isinstance(entry, dict):
            continue
        ref = entry.get("author")
        key = ref.get("key") if isinstance(ref, dict) else entry.get("key")
        if key:
            keys.append(key)
    return keys


def parse_author_name(data: dict[str, Any]) -> str | None:
    """Extract the author name from an Open Library Author response."""
    return data.get("name") or data.get("personal_name") or None


# Format preference for edition selection (lower = better).
_FORMAT_RANK: dict[str, int] = {
    "hardcover": 0,
    "paperback": 1,
    "trade paperback": 1,
    "mass market paperback": 1,
    "electronic resource": 2,
    "ebook": 2,
    "audio cd": 3,
    "audio cassette": 3,
}
_FORMAT_RANK_DEFAULT = 2


def select_best_edition(entries: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Pick the best edition from a list of Open Library edition entries.

    Prefers physical formats with ISBNs, then ISBN-13 over ISBN-10. Falls
    back to the first entry when no edition has an ISBN so that publisher
    and page count can still be used. Returns None for an empty list.
    """
    scored: list[tuple[int, int, dict[str, Any]]] = []

    for entry in entries:
        isbn_13 = entry.get("isbn_13") or []
        isbn_10 = entry.get("isbn_10") or []
        isbn = isbn_13[0] if isbn_13 else (isbn_10[0] if isbn_10 else None)
        if not isbn:
            continue
        fmt = (entry.get("physical_format") or "").lower()
        format_rank = _FORMAT_RANK.get(fmt, _FORMAT_RANK_DEFAULT)
        isbn_rank = 0 if isbn_13 else 1
        scored.append((format_rank, isbn_rank, entry))

    if scored:
        scored.sort(key=lambda item: (item[0], item[1]))
        return scored[0][2]
    return entries[0] if entries else None


def parse_works_metadata(
    work: dict[str, Any],
    external_id: str,
    *,
    authors: list[str] | None = None,
    edition: dict[str, Any] | None = None,
) -> BookMetadata:
    """Map an Open Library works record (plus optional edition) to BookMetadata.

    ISBN, publisher, publish date and page count live on editions, not
    works, so they are only filled when an edition is supplied.
    """
    covers = [c for c in work.get("covers", []) or [] if isinstance(c, int) and c > 0]
    subjects = [s for s in work.get("subjects", []) or [] if isinstance(s, str)]

    metadata = BookMetadata(
        title=work.get("title") or "Untitled",
        authors=list(authors or []),
        description=parse_description(work),
        tags=subjects,
        cover_image_url=build_cover_url(covers[0]) if covers else None,
        external_id=external_id,
    )

    if edition:
        isbn_13 = edition.get("isbn_13") or []
        isbn_10 = edition.get("isbn_10") or []
        metadata.isbn = clean_isbn(first(isbn_13) or first(isbn_10))
        metadata.publisher = first(edition.get("publishers"))
        metadata.pub_date = parse_publish_date(edition.get("publish_date"))
        pages = edition.get("number_of_pages")
        metadata.total_pages = pages if isinstance(pages, int) and pages > 0 else None
        if metadata.cover_image_url is None:
            edition_covers = [
                c for c in edition.get("covers", []) or [] if isinstance(c, int) and c > 0
            ]
            if edition_covers:
                metadata.cover_image_url = build_cover_url(edition_covers[0])

    if metadata.pub_date is None:
        metadata.pub_date = parse_publish_date(work.get("first_publish_date"))

    return metadata

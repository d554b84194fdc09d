# ABOUTME: Field normalizers shared by provider response parsers.
# ABOUTME: Turns loose upstream publish dates and ISBN strings into clean values.

import re
from datetime import date, datetime

# Placeholders ("19xx", "[ca. 1960]") and year ranges carry no usable date.
_UNUSABLE_DATE_RE = re.compile(r"[xX\[]|^\d{4}\s*-\s*\d{4}$")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m",
    "%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %Y",
    "%b %Y",
    "%Y %B %d",
    "%Y %B",
)


def parse_publish_date(value: str | None) -> date | None:
    """Parse a free-form publish date as found in Open Library and Hardcover.

    Handles ISO dates ("2022-02-15", "1967-07"), bare years, and English
    month-name forms ("May 16, 2019", "October 2007", "2007 October 1").
    Partial dates resolve to the first day of the month or year. Returns
    None for placeholders, ranges, and anything unparseable.
    """
    if not value or not isinstance(value, str):
        return None
    text = " ".join(value.strip().rstrip(".").split())
    if not text or _UNUSABLE_DATE_RE.search(text):
        return None

    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.date()
    return None


def clean_isbn(value: str | None) -> str | None:
    """Strip separators from an ISBN, returning None unless 10 or 13 chars remain."""
    if not value:
        return None
    cleaned = re.sub(r"[^0-9X]", "", value.upper())
    if len(cleaned) in (10, 13):
        return cleaned
    return None


def first(values: object) -> object | None:
    """Return the first element of a list-valued field, or None."""
    if isinstance(values, list) and values:
        return values[0]
    return None

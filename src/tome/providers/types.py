# ABOUTME: Core data structures shared by metadata providers and the services using them.
# ABOUTME: Provider identity, capability flags, health/circuit enums, and normalized book records.

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class ProviderId(str, Enum):
    """Identity key of every compiled-in metadata provider."""

    MANUAL = "manual"
    CALIBRE = "calibre"
    HARDCOVER = "hardcover"
    OPENLIBRARY = "openlibrary"

    def __str__(self) -> str:
        return self.value


class ProviderHealth(str, Enum):
    HEALTHY = "healthy"
    UNAVAILABLE = "unavailable"

    def __str__(self) -> str:
        return self.value


class CircuitState(str, Enum):
    """Circuit breaker states persisted on each provider config row."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ProviderCapabilities:
    """Declares which operations are meaningful to invoke on a provider.

    Callers check these flags before dispatching; invoking an undeclared
    operation is a caller error, not a provider failure.
    """

    has_search: bool = False
    has_metadata_fetch: bool = False
    has_sync: bool = False
    requires_auth: bool = False


@dataclass
class SearchMatch:
    """A lightweight search hit, enough to let a user pick the right book."""

    external_id: str
    title: str
    authors: list[str] = field(default_factory=list)
    isbn: str | None = None
    publisher: str | None = None
    pub_date: date | None = None
    total_pages: int | None = None
    cover_image_url: str | None = None


@dataclass
class BookMetadata:
    """Normalized metadata fetched from an external provider.

    This is what a caller uses to populate a local book record. Only title
    and authors are guaranteed; every upstream leaves something out.
    """

    title: str
    authors: list[str] = field(default_factory=list)
    isbn: str | None = None
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    publisher: str | None = None
    pub_date: date | None = None
    total_pages: int | None = None
    cover_image_url: str | None = None
    series: str | None = None
    series_index: float | None = None
    external_id: str | None = None
    rating: float | None = None

    def __post_init__(self) -> None:
        # Tags behave as a set but keep upstream order for display.
        seen: set[str] = set()
        unique: list[str] = []
        for tag in self.tags:
            key = tag.strip()
            if key and key.casefold() not in seen:
                seen.add(key.casefold())
                unique.append(key)
        self.tags = unique

    @property
    def author(self) -> str:
        """Convenience property: joined author string for display."""
        return ", ".join(self.authors) if self.authors else ""

# ABOUTME: Unit tests for provider identity, capability, and book record types.
# ABOUTME: Validates enum string forms, capability defaults, and tag normalization.

from dataclasses import FrozenInstanceError
from datetime import date

import pytest

from tome.providers.types import (
    BookMetadata,
    CircuitState,
    ProviderCapabilities,
    ProviderHealth,
    ProviderId,
    SearchMatch,
)


class TestEnums:
    """Tests for the provider-related enums."""

    def test_provider_id_str_is_value(self) -> None:
        """ProviderId renders as its bare value for keys and messages."""
        assert str(ProviderId.OPENLIBRARY) == "openlibrary"
        assert f"{ProviderId.HARDCOVER}" == "hardcover"

    def test_provider_id_compares_to_plain_string(self) -> None:
        assert ProviderId.CALIBRE == "calibre"
        assert ProviderId("manual") is ProviderId.MANUAL

    def test_circuit_state_values(self) -> None:
        assert [s.value for s in CircuitState] == ["CLOSED", "OPEN", "HALF_OPEN"]

    def test_health_values(self) -> None:
        assert ProviderHealth("healthy") is ProviderHealth.HEALTHY
        assert str(ProviderHealth.UNAVAILABLE) == "unavailable"


class TestProviderCapabilities:
    """Tests for ProviderCapabilities."""

    def test_defaults_to_nothing(self) -> None:
        """An empty capability set declares no operations."""
        caps = ProviderCapabilities()
        assert not caps.has_search
        assert not caps.has_metadata_fetch
        assert not caps.has_sync
        assert not caps.requires_auth

    def test_is_immutable(self) -> None:
        caps = ProviderCapabilities(has_search=True)
        with pytest.raises(FrozenInstanceError):
            caps.has_search = False  # type: ignore[misc]


class TestSearchMatch:
    def test_optional_fields_default_to_none(self) -> None:
        match = SearchMatch(external_id="OL1W", title="Dune")
        assert match.authors == []
        assert match.isbn is None
        assert match.pub_date is None
        assert match.cover_image_url is None


class TestBookMetadata:
    """Tests for BookMetadata."""

    def test_minimal_construction(self) -> None:
        """A BookMetadata can be created with just a title."""
        meta = BookMetadata(title="Dune")
        assert meta.authors == []
        assert meta.author == ""
        assert meta.tags == []
        assert meta.series_index is None
        assert meta.rating is None

    def test_author_joins_names(self) -> None:
        meta = BookMetadata(title="Good Omens", authors=["Terry Pratchett", "Neil Gaiman"])
        assert meta.author == "Terry Pratchett, Neil Gaiman"

    def test_tags_are_deduplicated_case_insensitively(self) -> None:
        """Tags behave as a set but keep the first spelling and order."""
        meta = BookMetadata(title="X", tags=["Fantasy", "magic", "fantasy", "Magic ", "  "])
        assert meta.tags == ["Fantasy", "magic"]

    def test_full_construction(self) -> None:
        meta = BookMetadata(
            title="Dune",
            authors=["Frank Herbert"],
            isbn="9780441172719",
            pub_date=date(1965, 8, 1),
            total_pages=412,
            series="Dune Chronicles",
            series_index=1.0,
            external_id="1",
            rating=4.5,
        )
        assert meta.pub_date.year == 1965
        assert meta.series_index == 1.0

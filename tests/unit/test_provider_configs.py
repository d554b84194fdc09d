# ABOUTME: Unit tests for ProviderConfigRepository.
# ABOUTME: Covers get-or-create idempotence, admin updates, JSON columns, and breaker updates.

import sqlite3
from datetime import UTC, datetime

import pytest

from tome.db.provider_configs import ProviderConfigRepository
from tome.providers.errors import ValidationError
from tome.providers.types import CircuitState, ProviderHealth

WHEN = datetime(2026, 3, 1, 9, 30, 0, tzinfo=UTC)


class TestGetOrCreate:
    """Tests for get_or_create."""

    def test_creates_with_defaults(self, repo: ProviderConfigRepository) -> None:
        config = repo.get_or_create("openlibrary", "Open Library")
        assert config.enabled is True
        assert config.priority == 100
        assert config.settings == {}
        assert config.credentials is None
        assert config.circuit_state is CircuitState.CLOSED
        assert config.failure_count == 0
        assert config.health_status is ProviderHealth.HEALTHY
        assert config.created_at is not None

    def test_is_idempotent(
        self, repo: ProviderConfigRepository, conn: sqlite3.Connection
    ) -> None:
        """Repeated calls return the same row and never duplicate it."""
        first = repo.get_or_create("openlibrary", "Open Library", priority=20)
        second = repo.get_or_create("openlibrary", "Renamed", priority=99)
        count = conn.execute("SELECT COUNT(*) FROM provider_configs").fetchone()[0]

        assert count == 1
        assert second.display_name == "Open Library"
        assert second.priority == first.priority == 20

    def test_find_missing(self, repo: ProviderConfigRepository) -> None:
        assert repo.find_by_provider("nope") is None


class TestListing:
    def test_list_enabled_orders_by_priority_then_id(
        self, repo: ProviderConfigRepository
    ) -> None:
        repo.get_or_create("openlibrary", "Open Library", priority=20)
        repo.get_or_create("hardcover", "Hardcover", priority=10)
        repo.get_or_create("calibre", "Calibre", priority=10)
        repo.get_or_create("manual", "Manual", enabled=False, priority=1)

        assert [c.provider for c in repo.list_enabled()] == [
            "calibre",
            "hardcover",
            "openlibrary",
        ]
        assert [c.provider for c in repo.list_all()][0] == "manual"


class TestAdminUpdates:
    """Tests for the admin-facing setters."""

    def test_set_enabled_and_priority(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("hardcover", "Hardcover")
        repo.set_enabled("hardcover", False)
        repo.set_priority("hardcover", 5)
        config = repo.find_by_provider("hardcover")
        assert config.enabled is False
        assert config.priority == 5

    def test_settings_round_trip(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("openlibrary", "Open Library")
        repo.update_settings("openlibrary", {"timeout": 3000, "nested": {"a": [1, 2]}})
        assert repo.settings_for("openlibrary") == {"timeout": 3000, "nested": {"a": [1, 2]}}

    def test_settings_must_be_object(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("openlibrary", "Open Library")
        with pytest.raises(ValidationError):
            repo.update_settings("openlibrary", ["not", "an", "object"])  # type: ignore[arg-type]

    def test_credentials_are_stored_and_cleared(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("hardcover", "Hardcover")
        repo.update_credentials("hardcover", {"apiKey": "abc"})
        assert repo.credentials_for("hardcover") == {"apiKey": "abc"}
        assert repo.find_by_provider("hardcover").has_credentials

        repo.update_credentials("hardcover", {})
        config = repo.find_by_provider("hardcover")
        assert config.credentials is None
        assert not config.has_credentials

    def test_credentials_must_be_strings(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("hardcover", "Hardcover")
        with pytest.raises(ValidationError):
            repo.update_credentials("hardcover", {"apiKey": 123})  # type: ignore[dict-item]

    def test_update_unknown_row(self, repo: ProviderConfigRepository) -> None:
        with pytest.raises(ValueError, match="No configuration"):
            repo.set_enabled("ghost", True)

    def test_malformed_stored_json(
        self, repo: ProviderConfigRepository, conn: sqlite3.Connection
    ) -> None:
        repo.get_or_create("openlibrary", "Open Library")
        conn.execute(
            "UPDATE provider_configs SET settings = '{broken' WHERE provider = ?", ("openlibrary",)
        )
        with pytest.raises(ValidationError, match="Malformed settings"):
            repo.find_by_provider("openlibrary")

    def test_lookups_for_missing_provider_are_empty(
        self, repo: ProviderConfigRepository
    ) -> None:
        assert repo.settings_for("ghost") == {}
        assert repo.credentials_for("ghost") == {}


class TestBreakerColumns:
    """Tests for the counter and state updates used by the circuit breaker."""

    def test_increment_failure_is_cumulative(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("openlibrary", "Open Library")
        assert repo.increment_failure("openlibrary", WHEN) == 1
        assert repo.increment_failure("openlibrary", WHEN) == 2
        config = repo.find_by_provider("openlibrary")
        assert config.failure_count == 2
        assert config.last_failure == WHEN

    def test_reset_failures(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("openlibrary", "Open Library")
        repo.increment_failure("openlibrary", WHEN)
        repo.update_health("openlibrary", ProviderHealth.UNAVAILABLE, WHEN)
        repo.reset_failures("openlibrary", WHEN)
        config = repo.find_by_provider("openlibrary")
        assert config.failure_count == 0
        assert config.health_status is ProviderHealth.HEALTHY

    def test_transition_is_compare_and_set(self, repo: ProviderConfigRepository) -> None:
        """Only the caller that observed the current state wins the transition."""
        repo.get_or_create("openlibrary", "Open Library")
        assert repo.transition_state(
            "openlibrary", CircuitState.CLOSED, CircuitState.OPEN, WHEN,
            health=ProviderHealth.UNAVAILABLE,
        )
        assert not repo.transition_state(
            "openlibrary", CircuitState.CLOSED, CircuitState.OPEN, WHEN
        )
        config = repo.find_by_provider("openlibrary")
        assert config.circuit_state is CircuitState.OPEN
        assert config.state_changed_at == WHEN
        assert config.health_status is ProviderHealth.UNAVAILABLE

    def test_transition_without_expected_state(self, repo: ProviderConfigRepository) -> None:
        repo.get_or_create("openlibrary", "Open Library")
        repo.transition_state("openlibrary", CircuitState.CLOSED, CircuitState.HALF_OPEN, WHEN)
        assert repo.transition_state("openlibrary", None, CircuitState.CLOSED, WHEN)
        assert repo.find_by_provider("openlibrary").circuit_state is CircuitState.CLOSED

# ABOUTME: Unit tests for database schema creation and connection management.
# ABOUTME: Validates the provider_configs table, constraints, migrations, and pragmas.

import sqlite3
from pathlib import Path

import pytest

from tome.db.connection import DEFAULT_DB_PATH, get_schema_version, open_database
from tome.db.schema import LATEST_VERSION, SCHEMA_V1


class TestOpenDatabase:
    """Tests for open_database()."""

    def test_creates_database_file(self, db_path: Path) -> None:
        conn = open_database(db_path)
        conn.close()
        assert db_path.exists()

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        nested = tmp_path / "deep" / "nested" / "tome.db"
        conn = open_database(nested)
        conn.close()
        assert nested.exists()

    def test_provider_configs_columns(self, conn: sqlite3.Connection) -> None:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(provider_configs)")}
        assert {
            "provider",
            "display_name",
            "enabled",
            "settings",
            "credentials",
            "priority",
            "circuit_state",
            "last_failure",
            "failure_count",
            "health_status",
            "last_health_check",
            "state_changed_at",
            "created_at",
            "updated_at",
        } <= columns

    def test_wal_mode(self, conn: sqlite3.Connection) -> None:
        mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        assert mode == "wal"

    def test_row_factory(self, conn: sqlite3.Connection) -> None:
        assert conn.row_factory is sqlite3.Row

    def test_at_latest_version(self, conn: sqlite3.Connection) -> None:
        assert get_schema_version(conn) == LATEST_VERSION

    def test_empty_file_is_version_zero(self, tmp_path: Path) -> None:
        bare = sqlite3.connect(tmp_path / "bare.db")
        assert get_schema_version(bare) == 0
        bare.close()

    def test_reopen_is_idempotent(self, db_path: Path) -> None:
        open_database(db_path).close()
        conn = open_database(db_path)
        versions = [row[0] for row in conn.execute("SELECT version FROM schema_version")]
        conn.close()
        assert versions == list(range(1, LATEST_VERSION + 1))

    def test_default_path(self) -> None:
        assert DEFAULT_DB_PATH == Path.home() / ".tome" / "tome.db"


class TestConstraints:
    """The schema rejects rows that would break the breaker's invariants."""

    def insert(self, conn: sqlite3.Connection, **overrides) -> None:
        row = {"provider": "openlibrary", "display_name": "Open Library"} | overrides
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        conn.execute(
            f"INSERT INTO provider_configs ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )

    def test_provider_is_unique(self, conn: sqlite3.Connection) -> None:
        self.insert(conn)
        with pytest.raises(sqlite3.IntegrityError):
            self.insert(conn)

    def test_circuit_state_is_checked(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            self.insert(conn, circuit_state="BROKEN")

    def test_failure_count_not_negative(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            self.insert(conn, failure_count=-1)

    def test_health_status_is_checked(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            self.insert(conn, health_status="degraded")


class TestMigrations:
    """A database created at version 1 is brought up to date on open."""

    def test_v1_database_is_migrated(self, db_path: Path) -> None:
        legacy = sqlite3.connect(db_path)
        legacy.executescript(SCHEMA_V1)
        legacy.execute(
            "INSERT INTO provider_configs (provider, display_name) VALUES ('manual', 'Manual')"
        )
        legacy.commit()
        legacy.close()

        conn = open_database(db_path)
        columns = {row[1] for row in conn.execute("PRAGMA table_info(provider_configs)")}
        row = conn.execute("SELECT * FROM provider_configs").fetchone()
        version = get_schema_version(conn)
        conn.close()

        assert "state_changed_at" in columns
        assert row["provider"] == "manual"
        assert row["state_changed_at"] is None
        assert version == LATEST_VERSION

# ABOUTME: Persistence for per-provider configuration and circuit breaker state.
# ABOUTME: ProviderConfig record plus a repository with atomic counter and state updates.

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from tome.providers.errors import ValidationError
from tome.providers.types import CircuitState, ProviderHealth


def utcnow() -> datetime:
    return datetime.now(UTC)


def _to_db_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds")


def _from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


@dataclass
class ProviderConfig:
    """Persisted configuration and breaker state for one provider."""

    provider: str
    display_name: str
    enabled: bool = True
    settings: dict[str, Any] = field(default_factory=dict)
    credentials: dict[str, str] | None = None
    priority: int = 100
    circuit_state: CircuitState = CircuitState.CLOSED
    last_failure: datetime | None = None
    failure_count: int = 0
    health_status: ProviderHealth = ProviderHealth.HEALTHY
    last_health_check: datetime | None = None
    state_changed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_credentials(self) -> bool:
        """Whether any credential is stored. Raw values are never exposed."""
        return bool(self.credentials)


def _load_json(raw: str | None, column: str, provider: str) -> Any:
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except ValueError as exc:
        raise ValidationError(f"Malformed {column} JSON for provider '{provider}'") from exc
    if not isinstance(value, dict):
        raise ValidationError(f"{column} for provider '{provider}' must be a JSON object")
    return value


def _dump_json(value: Any, column: str) -> str:
    if not isinstance(value, dict):
        raise ValidationError(f"{column} must be an object")
    try:
        return json.dumps(value, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{column} is not JSON-serializable: {exc}") from exc


def row_to_config(row: Any) -> ProviderConfig:
    """Convert a provider_configs row to a ProviderConfig.

    Raises:
        ValidationError: If the stored settings or credentials are not a JSON object.
    """
    provider = row["provider"]
    return ProviderConfig(
        provider=provider,
        display_name=row["display_name"],
        enabled=bool(row["enabled"]),
        settings=_load_json(row["settings"], "settings", provider) or {},
        credentials=_load_json(row["credentials"], "credentials", provider),
        priority=row["priority"],
        circuit_state=CircuitState(row["circuit_state"]),
        last_failure=_from_db_time(row["last_failure"]),
        failure_count=row["failure_count"],
        health_status=ProviderHealth(row["health_status"]),
        last_health_check=_from_db_time(row["last_health_check"]),
        state_changed_at=_from_db_time(row["state_changed_at"]),
        created_at=_from_db_time(row["created_at"]),
        updated_at=_from_db_time(row["updated_at"]),
    )


class ProviderConfigRepository:
    """Wraps a sqlite3 connection and provides typed access to provider_configs.

    Counter and state changes are single UPDATE statements (increment in
    SQL, compare-and-set on the current state) so concurrent requests never
    lose an update.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def find_by_provider(self, provider: str) -> ProviderConfig | None:
        cursor = self._conn.execute(
            "SELECT * FROM provider_configs WHERE provider = ?", (str(provider),)
        )
        row = cursor.fetchone()
        return row_to_config(row) if row else None

    def get_or_create(
        self,
        provider: str,
        display_name: str,
        *,
        enabled: bool = True,
        priority: int = 100,
        settings: dict[str, Any] | None = None,
    ) -> ProviderConfig:
        """Return the config row for a provider, inserting defaults if absent.

        Idempotent: the unique index on ``provider`` plus INSERT OR IGNORE
        guarantee at most one row however many callers race here.
        """
        now = _to_db_time(utcnow())
        self._conn.execute(
            "INSERT OR IGNORE INTO provider_configs "
            "(provider, display_name, enabled, settings, priority, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                str(provider),
                display_name,
                int(enabled),
                _dump_json(settings or {}, "settings"),
                priority,
                now,
                now,
            ),
        )
        self._conn.commit()
        config = self.find_by_provider(provider)
        assert config is not None
        return config

    def list_all(self) -> list[ProviderConfig]:
        cursor = self._conn.execute("SELECT * FROM provider_configs ORDER BY priority, provider")
        return [row_to_config(row) for row in cursor.fetchall()]

    def list_enabled(self) -> list[ProviderConfig]:
        """Enabled providers ordered by priority, ties broken by provider id."""
        cursor = self._conn.execute(
            "SELECT * FROM provider_configs WHERE enabled = 1 ORDER BY priority, provider"
        )
        return [row_to_config(row) for row in cursor.fetchall()]

    def set_enabled(self, provider: str, enabled: bool) -> None:
        self._update(provider, "enabled = ?", (int(enabled),))

    def set_priority(self, provider: str, priority: int) -> None:
        self._update(provider, "priority = ?", (priority,))

    def update_settings(self, provider: str, settings: dict[str, Any]) -> None:
        self._update(provider, "settings = ?", (_dump_json(settings, "settings"),))

    def update_credentials(self, provider: str, credentials: dict[str, str]) -> None:
        """Replace stored credentials. An empty mapping clears them."""
        if not isinstance(credentials, dict) or not all(
            isinstance(v, str) for v in credentials.values()
        ):
            raise ValidationError("credentials must be an object of string values")
        raw = _dump_json(credentials, "credentials") if credentials else None
        self._update(provider, "credentials = ?", (raw,))

    def increment_failure(self, provider: str, when: datetime) -> int:
        """Atomically add one to failure_count and stamp last_failure.

        Returns:
            The failure count after the increment.
        """
        self._update(
            provider,
            "failure_count = failure_count + 1, last_failure = ?",
            (_to_db_time(when),),
        )
        row = self._conn.execute(
            "SELECT failure_count FROM provider_configs WHERE provider = ?", (str(provider),)
        ).fetchone()
        return row["failure_count"]

    def reset_failures(self, provider: str, when: datetime) -> None:
        """Zero the failure count and mark the provider healthy."""
        self._update(
            provider,
            "failure_count = 0, health_status = ?, last_health_check = ?",
            (ProviderHealth.HEALTHY.value, _to_db_time(when)),
        )

    def transition_state(
        self,
        provider: str,
        expected: CircuitState | None,
        new_state: CircuitState,
        when: datetime,
        *,
        health: ProviderHealth | None = None,
        last_failure: datetime | None = None,
    ) -> bool:
        """Compare-and-set the circuit state.

        Args:
            expected: The state the caller observed; None skips the check.
            health: Optional health status to write alongside the state.
            last_failure: Optional failure timestamp to write alongside.

        Returns:
            True if this call performed the transition, False if another
            writer changed the state first.
        """
        assignments = ["circuit_state = ?", "state_changed_at = ?"]
        params: list[Any] = [new_state.value, _to_db_time(when)]
        if health is not None:
            assignments.append("health_status = ?")
            assignments.append("last_health_check = ?")
            params.extend([health.value, _to_db_time(when)])
        if last_failure is not None:
            assignments.append("last_failure = ?")
            params.append(_to_db_time(last_failure))
        assignments.append("updated_at = ?")
        params.append(_to_db_time(utcnow()))

        sql = f"UPDATE provider_configs SET {', '.join(assignments)} WHERE provider = ?"
        params.append(str(provider))
        if expected is not None:
            sql += " AND circuit_state = ?"
            params.append(expected.value)

        cursor = self._conn.execute(sql, params)
        self._conn.commit()
        return cursor.rowcount == 1

    def update_health(self, provider: str, status: ProviderHealth, when: datetime) -> None:
        self._update(
            provider,
            "health_status = ?, last_health_check = ?",
            (status.value, _to_db_time(when)),
        )

    def settings_for(self, provider_id: str) -> dict[str, Any]:
        config = self.find_by_provider(provider_id)
        return dict(config.settings) if config else {}

    def credentials_for(self, provider_id: str) -> dict[str, str]:
        config = self.find_by_provider(provider_id)
        return dict(config.credentials or {}) if config else {}

    def _update(self, provider: str, set_clause: str, values: tuple[Any, ...]) -> None:
        """Run a single-row UPDATE, stamping updated_at.

        Raises:
            ValueError: If no config row exists for the provider.
        """
        cursor = self._conn.execute(
            f"UPDATE provider_configs SET {set_clause}, updated_at = ? WHERE provider = ?",
            (*values, _to_db_time(utcnow()), str(provider)),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            raise ValueError(f"No configuration for provider '{provider}'")

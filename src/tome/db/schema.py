# ABOUTME: SQL DDL statements for the Tome provider configuration database.
# ABOUTME: Defines the provider_configs table, schema versioning, and sequential migrations.

SCHEMA_V1 = """
-- One row per compiled-in provider: admin settings plus circuit breaker state
CREATE TABLE provider_configs (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    provider          TEXT NOT NULL,
    display_name      TEXT NOT NULL,
    enabled           INTEGER NOT NULL DEFAULT 1,
    settings          TEXT NOT NULL DEFAULT '{}',
    credentials       TEXT,
    priority          INTEGER NOT NULL DEFAULT 100,
    circuit_state     TEXT NOT NULL DEFAULT 'CLOSED'
                      CHECK (circuit_state IN ('CLOSED', 'OPEN', 'HALF_OPEN')),
    last_failure      TEXT,
    failure_count     INTEGER NOT NULL DEFAULT 0 CHECK (failure_count >= 0),
    health_status     TEXT NOT NULL DEFAULT 'healthy'
                      CHECK (health_status IN ('healthy', 'unavailable')),
    last_health_check TEXT,
    created_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    updated_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

CREATE UNIQUE INDEX idx_provider_configs_provider ON provider_configs(provider);
CREATE INDEX idx_provider_configs_enabled ON provider_configs(enabled, priority);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

# Records when the breaker last changed state so a half-open trial that
# never reported back can be expired.
MIGRATION_V2 = """
ALTER TABLE provider_configs ADD COLUMN state_changed_at TEXT;

INSERT INTO schema_version (version) VALUES (2);
"""

MIGRATIONS: list[tuple[int, str]] = [
    (2, MIGRATION_V2),
]

LATEST_VERSION = MIGRATIONS[-1][0]

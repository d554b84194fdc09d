# ABOUTME: Public API for the Tome database layer.
# ABOUTME: Exports connection management and the provider configuration repository.

from tome.db.connection import DEFAULT_DB_PATH, open_database
from tome.db.provider_configs import ProviderConfig, ProviderConfigRepository

__all__ = [
    "DEFAULT_DB_PATH",
    "ProviderConfig",
    "ProviderConfigRepository",
    "open_database",
]

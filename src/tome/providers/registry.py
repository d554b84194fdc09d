# ABOUTME: Registry of compiled-in metadata providers and their persisted configuration.
# ABOUTME: Resolves providers by id, creates default config rows, and orders enabled providers.

import logging
from collections.abc import Iterable
from typing import Any

from tome.db.provider_configs import ProviderConfig, ProviderConfigRepository
from tome.providers.errors import UnknownProviderError, ValidationError
from tome.providers.provider import MetadataProvider, validate_provider
from tome.providers.types import ProviderCapabilities

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 100

# Seeded on first start; an id missing here falls back to DEFAULT_PRIORITY.
# No timeout is seeded, so TomeSettings.search_timeout applies until an admin
# sets a per-provider "timeout" (ms).
DEFAULT_PROVIDER_CONFIGS: dict[str, dict[str, Any]] = {
    "calibre": {"priority": 1, "settings": {}},
    "hardcover": {"priority": 10, "settings": {}},
    "openlibrary": {"priority": 20, "settings": {}},
    "manual": {"priority": DEFAULT_PRIORITY, "settings": {}},
}


class ProviderRegistry:
    """Compiled-in provider list plus access to each provider's config row.

    The identity/capability list is fixed at construction and never changes
    afterwards; only the persisted configuration is mutable.
    """

    def __init__(
        self, providers: Iterable[MetadataProvider], configs: ProviderConfigRepository
    ) -> None:
        self._providers: dict[str, MetadataProvider] = {}
        for provider in providers:
            validate_provider(provider)
            key = str(provider.id)
            if key in self._providers:
                raise ValueError(f"Provider '{key}' already registered")
            self._providers[key] = provider
            logger.debug(
                "Registered provider %s (capabilities=%s)", key, provider.capabilities
            )
        self._configs = configs

    @property
    def configs(self) -> ProviderConfigRepository:
        return self._configs

    def get_all_providers(self) -> list[MetadataProvider]:
        """All compiled-in providers in registration order."""
        return list(self._providers.values())

    def has(self, provider_id: str) -> bool:
        return str(provider_id) in self._providers

    def get(self, provider_id: str) -> MetadataProvider:
        """Look up a provider by id.

        Raises:
            UnknownProviderError: If no compiled-in provider has this id.
        """
        provider = self._providers.get(str(provider_id))
        if provider is None:
            raise UnknownProviderError(str(provider_id))
        return provider

    def resolve_config(self, provider_id: str) -> ProviderConfig:
        """Return the provider's config row, creating a default one if none exists.

        Defaults are enabled=True, priority=100, circuit CLOSED. Calling this
        repeatedly never creates more than one row.

        Raises:
            UnknownProviderError: If no compiled-in provider has this id.
            ValidationError: If the stored settings/credentials are malformed.
        """
        provider = self.get(provider_id)
        return self._configs.get_or_create(str(provider.id), provider.name)

    def list_enabled(self, sorted_by_priority: bool = True) -> list[ProviderConfig]:
        """Config rows of enabled providers.

        Ordered by ascending priority with ties broken by provider id, or in
        registration order when ``sorted_by_priority`` is False.
        """
        configs = [self.resolve_config(key) for key in self._providers]
        enabled = [config for config in configs if config.enabled]
        if sorted_by_priority:
            enabled.sort(key=lambda config: (config.priority, config.provider))
        return enabled

    def enabled_with_capability(
        self, capability: str
    ) -> list[tuple[MetadataProvider, ProviderConfig]]:
        """Enabled providers declaring ``capability`` (e.g. "has_search"), by priority."""
        if capability not in ProviderCapabilities.__dataclass_fields__:
            raise ValueError(f"Unknown capability: {capability}")
        pairs = []
        for config in self.list_enabled():
            provider = self.get(config.provider)
            if getattr(provider.capabilities, capability):
                pairs.append((provider, config))
        return pairs

    def update_config(
        self,
        provider_id: str,
        *,
        enabled: bool | None = None,
        priority: int | None = None,
        settings: dict[str, Any] | None = None,
        credentials: dict[str, str] | None = None,
    ) -> ProviderConfig:
        """Apply admin changes to a provider's configuration.

        Raises:
            UnknownProviderError: If no compiled-in provider has this id.
            ValidationError: If nothing was supplied or a value is malformed.
        """
        if enabled is None and priority is None and settings is None and credentials is None:
            raise ValidationError(
                "At least one of enabled, priority, settings, or credentials must be provided"
            )
        if priority is not None and (isinstance(priority, bool) or not isinstance(priority, int)):
            raise ValidationError("priority must be an integer")
        if priority is not None and priority < 0:
            raise ValidationError("priority must not be negative")

        config = self.resolve_config(provider_id)
        key = config.provider
        if enabled is not None:
            self._configs.set_enabled(key, enabled)
        if priority is not None:
            self._configs.set_priority(key, priority)
        if settings is not None:
            self._configs.update_settings(key, settings)
        if credentials is not None:
            self._configs.update_credentials(key, credentials)

        logger.info(
            "Updated provider %s config (enabled=%s priority=%s settings=%s credentials=%s)",
            key,
            enabled,
            priority,
            settings is not None,
            "updated" if credentials is not None else "unchanged",
        )
        return self.resolve_config(key)

    def seed_defaults(self) -> None:
        """Create config rows for every provider with the shipped defaults.

        Existing rows are left untouched.
        """
        for key, provider in self._providers.items():
            defaults = DEFAULT_PROVIDER_CONFIGS.get(key, {})
            self._configs.get_or_create(
                key,
                provider.name,
                priority=defaults.get("priority", DEFAULT_PRIORITY),
                settings=defaults.get("settings"),
            )

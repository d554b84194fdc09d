# ABOUTME: MetadataProvider protocol defining the contract for every metadata source.
# ABOUTME: Also validates that a provider implements the operations its capabilities declare.

import inspect
from typing import Any, Protocol, runtime_checkable

from tome.providers.types import ProviderCapabilities, ProviderHealth, ProviderId

_CAPABILITY_METHODS = {
    "has_search": "search",
    "has_metadata_fetch": "fetch_metadata",
    "has_sync": "sync",
}


@runtime_checkable
class MetadataProvider(Protocol):
    """Protocol for book metadata sources.

    Every provider exposes its identity, capabilities, and a health check.
    ``search`` and ``fetch_metadata`` are optional and only meaningful when
    the matching capability flag is set:

        async def search(self, query: str) -> list[SearchMatch]
        async def fetch_metadata(self, external_id: str) -> BookMetadata
    """

    @property
    def id(self) -> ProviderId: ...

    @property
    def name(self) -> str: ...

    @property
    def capabilities(self) -> ProviderCapabilities: ...

    async def health_check(self) -> ProviderHealth: ...


def validate_provider(provider: object) -> None:
    """Ensure a provider implements the methods its capabilities declare.

    Raises:
        TypeError: If the provider is missing identity fields, a health check,
            or a coroutine for one of its declared capabilities.
    """
    if not isinstance(provider, MetadataProvider):
        raise TypeError(f"{provider!r} does not implement MetadataProvider")

    caps = provider.capabilities
    for flag, method in _CAPABILITY_METHODS.items():
        if not getattr(caps, flag):
            continue
        impl = getattr(provider, method, None)
        if impl is None or not inspect.iscoroutinefunction(impl):
            raise TypeError(
                f"Provider '{provider.id}' declares {flag} but {method} is not implemented"
            )


@runtime_checkable
class ProviderConfigSource(Protocol):
    """Read access to a provider's stored settings and credentials.

    Providers that need an API key or a local path look it up at call time,
    so changes made through the config store apply without a restart.
    """

    def settings_for(self, provider_id: str) -> dict[str, Any]: ...

    def credentials_for(self, provider_id: str) -> dict[str, str]: ...

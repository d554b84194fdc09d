# ABOUTME: Metadata provider package: capability model, typed errors, and concrete sources.
# ABOUTME: Exports the provider protocol and the data types shared with the services layer.

from tome.providers.errors import (
    CircuitOpenError,
    ProviderError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    TomeError,
    TransientProviderError,
    UnknownProviderError,
    ValidationError,
)
from tome.providers.provider import MetadataProvider, validate_provider
from tome.providers.types import (
    BookMetadata,
    CircuitState,
    ProviderCapabilities,
    ProviderHealth,
    ProviderId,
    SearchMatch,
)

__all__ = [
    "BookMetadata",
    "CircuitOpenError",
    "CircuitState",
    "MetadataProvider",
    "ProviderCapabilities",
    "ProviderError",
    "ProviderHealth",
    "ProviderId",
    "ProviderNotFoundError",
    "ProviderTimeoutError",
    "SearchMatch",
    "TomeError",
    "TransientProviderError",
    "UnknownProviderError",
    "ValidationError",
    "validate_provider",
]

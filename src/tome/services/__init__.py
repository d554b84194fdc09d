# ABOUTME: Services layer: circuit breaker, single-provider operations, and federated search.
# ABOUTME: Sits between the provider registry and the outer surfaces (CLI and HTTP API).

from tome.services.circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitStats
from tome.services.federated_search import (
    FederatedSearchResponse,
    FederatedSearchService,
    SearchResult,
)
from tome.services.provider_service import ProviderService

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitStats",
    "FederatedSearchResponse",
    "FederatedSearchService",
    "ProviderService",
    "SearchResult",
]

# ABOUTME: Single-provider operations routed through capability checks and the circuit breaker.
# ABOUTME: Classifies every outcome for breaker accounting and logs failures with context.

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tome.db.provider_configs import ProviderConfig, utcnow
from tome.providers.errors import (
    ProviderError,
    ProviderNotFoundError,
    ProviderTimeoutError,
    UnsupportedOperationError,
    ValidationError,
)
from tome.providers.provider import MetadataProvider
from tome.providers.registry import ProviderRegistry
from tome.providers.types import BookMetadata, CircuitState, ProviderHealth, SearchMatch
from tome.services.circuit_breaker import CircuitBreaker, CircuitStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

_OPERATION_CAPABILITY = {
    "search": "has_search",
    "fetchMetadata": "has_metadata_fetch",
}


class ProviderService:
    """Runs one operation against one provider.

    Every outbound call passes through the breaker: it is rejected while the
    circuit is open, and its outcome is recorded afterwards. Only failures
    that mark the provider unhealthy count against it; a NotFound answer
    proves the provider is up and counts as a success.
    """

    def __init__(self, registry: ProviderRegistry, breaker: CircuitBreaker) -> None:
        self._registry = registry
        self._breaker = breaker

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def search(
        self, provider_id: str, query: str, *, timeout: float | None = None
    ) -> list[SearchMatch]:
        """Search one provider.

        Raises:
            UnknownProviderError: If the provider id is not compiled in.
            UnsupportedOperationError: If the provider does not declare search.
            CircuitOpenError: If the provider's circuit is open.
            ProviderError: If the provider call failed.
        """
        provider = self._require(provider_id, "search")
        return await self._call(provider, "search", provider.search, query, timeout=timeout)

    async def fetch_metadata(
        self, provider_id: str, external_id: str, *, timeout: float | None = None
    ) -> BookMetadata:
        """Fetch the full record for ``external_id`` from one provider.

        Raises:
            ValidationError: If ``external_id`` is empty or malformed.
            UnknownProviderError: If the provider id is not compiled in.
            UnsupportedOperationError: If the provider does not declare fetch.
            ProviderNotFoundError: If the provider has no such record.
            CircuitOpenError: If the provider's circuit is open.
            ProviderError: If the provider call failed.
        """
        if not external_id or not external_id.strip():
            raise ValidationError("externalId is required")
        provider = self._require(provider_id, "fetchMetadata")
        return await self._call(
            provider, "fetchMetadata", provider.fetch_metadata, external_id.strip(), timeout=timeout
        )

    async def health_check(self, provider_id: str) -> ProviderHealth:
        """Probe one provider and persist the result.

        A provider whose circuit is open is reported unavailable without
        being contacted.
        """
        provider = self._registry.get(provider_id)
        key = str(provider.id)
        config = self._registry.resolve_config(key)
        now = utcnow()

        if config.circuit_state == CircuitState.OPEN:
            status = ProviderHealth.UNAVAILABLE
        else:
            try:
                status = await provider.health_check()
            except ProviderError as exc:
                logger.warning("Health check for %s failed: %s", key, exc)
                status = ProviderHealth.UNAVAILABLE
            except Exception:
                logger.exception("Unexpected error during health check for %s", key)
                status = ProviderHealth.UNAVAILABLE

        self._registry.configs.update_health(key, status, now)
        logger.debug("Provider %s health: %s", key, status)
        return status

    async def health_check_all(self) -> dict[str, ProviderHealth]:
        """Probe every compiled-in provider concurrently."""
        keys = [str(p.id) for p in self._registry.get_all_providers()]
        statuses = await asyncio.gather(*(self.health_check(key) for key in keys))
        return dict(zip(keys, statuses, strict=True))

    def set_enabled(self, provider_id: str, enabled: bool) -> ProviderConfig:
        return self._registry.update_config(provider_id, enabled=enabled)

    def circuit_stats(self, provider_id: str) -> CircuitStats:
        provider = self._registry.get(provider_id)
        self._registry.resolve_config(str(provider.id))
        return self._breaker.stats(str(provider.id))

    def reset_circuit(self, provider_id: str) -> CircuitStats:
        provider = self._registry.get(provider_id)
        self._registry.resolve_config(str(provider.id))
        return self._breaker.reset(str(provider.id))

    def _require(self, provider_id: str, operation: str) -> Any:
        provider = self._registry.get(provider_id)
        if not getattr(provider.capabilities, _OPERATION_CAPABILITY[operation]):
            raise UnsupportedOperationError(str(provider.id), operation)
        return provider

    async def _call(
        self,
        provider: MetadataProvider,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        timeout: float | None = None,
    ) -> T:
        key = str(provider.id)
        self._registry.resolve_config(key)
        self._breaker.before_call(key, operation)

        try:
            if timeout is None:
                result = await func(*args)
            else:
                result = await asyncio.wait_for(func(*args), timeout)
        except TimeoutError as exc:
            self._breaker.record_failure(key)
            limit = f"{timeout:.1f}s" if timeout is not None else "the transport timeout"
            logger.warning("Provider %s %s timed out after %s", key, operation, limit)
            raise ProviderTimeoutError(key, operation, f"No response within {limit}") from exc
        except ProviderNotFoundError:
            self._breaker.record_success(key)
            logger.info("Provider %s %s: not found", key, operation)
            raise
        except ProviderError as exc:
            if exc.trips_breaker:
                self._breaker.record_failure(key)
            logger.warning("Provider %s %s failed: %s", key, operation, exc.reason)
            raise
        except ValidationError:
            raise
        except Exception:
            logger.exception("Unexpected error from provider %s during %s", key, operation)
            raise

        self._breaker.record_success(key)
        logger.debug("Provider %s %s succeeded", key, operation)
        return result

# ABOUTME: Wires settings, the config store, providers, breaker, and services into one object.
# ABOUTME: Shared by the CLI and the web app so both run the same object graph.

import logging
import sqlite3
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from tome.config import TomeSettings
from tome.db.connection import open_database
from tome.db.provider_configs import ProviderConfigRepository, utcnow
from tome.providers.calibre import CalibreProvider
from tome.providers.hardcover import HardcoverProvider
from tome.providers.http import TomeHttpClient
from tome.providers.manual import ManualProvider
from tome.providers.openlibrary import OpenLibraryProvider
from tome.providers.provider import MetadataProvider
from tome.providers.registry import ProviderRegistry
from tome.services.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from tome.services.federated_search import FederatedSearchService
from tome.services.provider_service import ProviderService

logger = logging.getLogger(__name__)


@dataclass
class TomeContext:
    settings: TomeSettings
    conn: sqlite3.Connection
    configs: ProviderConfigRepository
    registry: ProviderRegistry
    breaker: CircuitBreaker
    provider_service: ProviderService
    search_service: FederatedSearchService
    http_clients: list[TomeHttpClient] = field(default_factory=list)
    owns_connection: bool = False

    async def aclose(self) -> None:
        """Close HTTP clients, and the database if this context opened it."""
        for client in self.http_clients:
            await client.aclose()
        self.http_clients.clear()
        if self.owns_connection:
            self.conn.close()


def build_context(
    settings: TomeSettings | None = None,
    *,
    conn: sqlite3.Connection | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    providers: Iterable[MetadataProvider] | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> TomeContext:
    """Assemble the full service graph.

    Args:
        settings: Runtime settings; read from the environment when omitted.
        conn: An open database; one is opened at ``settings.db_path`` otherwise.
        transport: httpx transport for every provider's client, used by tests
            to answer requests without the network.
        providers: Replaces the compiled-in provider list.
        clock: Time source for the circuit breaker.
    """
    settings = settings or TomeSettings.from_env()
    owns_connection = conn is None
    if conn is None:
        conn = open_database(settings.db_path)
    configs = ProviderConfigRepository(conn)

    http_clients: list[TomeHttpClient] = []
    if providers is None:

        def new_client() -> TomeHttpClient:
            # One client per provider so rate limiting is per upstream API.
            client = TomeHttpClient(
                min_request_interval=settings.http_min_interval,
                max_retries=settings.http_max_retries,
                transport=transport,
            )
            http_clients.append(client)
            return client

        providers = [
            ManualProvider(),
            CalibreProvider(configs, default_library=settings.calibre_library),
            HardcoverProvider(new_client(), configs),
            OpenLibraryProvider(new_client()),
        ]

    providers = list(providers)
    registry = ProviderRegistry(providers, configs)
    registry.seed_defaults()

    breaker = CircuitBreaker(
        configs,
        CircuitBreakerConfig(
            failure_threshold=settings.failure_threshold,
            cooldown_seconds=settings.cooldown_seconds,
        ),
        clock=clock,
    )
    provider_service = ProviderService(registry, breaker)
    search_service = FederatedSearchService(
        provider_service, default_timeout=settings.search_timeout
    )
    logger.debug("Context ready with providers %s", [str(p.id) for p in providers])

    return TomeContext(
        settings=settings,
        conn=conn,
        configs=configs,
        registry=registry,
        breaker=breaker,
        provider_service=provider_service,
        search_service=search_service,
        http_clients=http_clients,
        owns_connection=owns_connection,
    )

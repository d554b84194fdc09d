# ABOUTME: FastAPI application exposing provider listing, config, search, fetch, and health.
# ABOUTME: Maps the typed error taxonomy onto HTTP status codes and a uniform error body.

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tome import __version__
from tome.api.models import (
    BookMetadataModel,
    CapabilitiesModel,
    CircuitStatsModel,
    ConfigUpdateRequest,
    FederatedSearchModel,
    ProviderConfigModel,
    ProviderSummary,
    SearchRequest,
    envelope,
)
from tome.context import TomeContext
from tome.db.provider_configs import ProviderConfig
from tome.providers.errors import (
    CircuitOpenError,
    ProviderError,
    ProviderNotFoundError,
    TomeError,
    UnknownProviderError,
    ValidationError,
)
from tome.providers.provider import MetadataProvider
from tome.services.circuit_breaker import CircuitStats

logger = logging.getLogger(__name__)


def error_response(
    status_code: int, message: str, code: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code},
        headers=headers,
    )


def classify_error(exc: Exception) -> tuple[int, str]:
    """HTTP status and error code for an exception raised by the services."""
    if isinstance(exc, UnknownProviderError):
        return 404, "PROVIDER_NOT_FOUND"
    if isinstance(exc, ProviderNotFoundError):
        return 404, "NOT_FOUND"
    if isinstance(exc, CircuitOpenError):
        return 503, "CIRCUIT_OPEN"
    if isinstance(exc, ValidationError):
        return 400, "VALIDATION_ERROR"
    if isinstance(exc, ProviderError):
        return 500, "PROVIDER_ERROR"
    return 500, "INTERNAL_ERROR"


def _summary(provider: MetadataProvider, config: ProviderConfig) -> ProviderSummary:
    return ProviderSummary(
        id=str(provider.id),
        name=provider.name,
        capabilities=CapabilitiesModel(**asdict(provider.capabilities)),
        enabled=config.enabled,
        priority=config.priority,
        settings=config.settings,
        has_credentials=config.has_credentials,
    )


def _config_model(config: ProviderConfig) -> ProviderConfigModel:
    return ProviderConfigModel(
        provider=config.provider,
        display_name=config.display_name,
        enabled=config.enabled,
        priority=config.priority,
        settings=config.settings,
        has_credentials=config.has_credentials,
        health_status=config.health_status.value,
        last_health_check=config.last_health_check,
        circuit_state=config.circuit_state.value,
        failure_count=config.failure_count,
        last_failure=config.last_failure,
        created_at=config.created_at,
        updated_at=config.updated_at,
    )


def _stats_model(stats: CircuitStats) -> CircuitStatsModel:
    return CircuitStatsModel(
        provider=stats.provider,
        state=stats.state.value,
        failure_count=stats.failure_count,
        last_failure=stats.last_failure,
        state_changed_at=stats.state_changed_at,
        retry_after=stats.retry_after,
    )


def create_app(context: TomeContext) -> FastAPI:
    """Build the API around an already-wired context.

    The context's HTTP clients are closed when the app shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await context.aclose()

    app = FastAPI(title="Tome providers", version=__version__, lifespan=lifespan)
    registry = context.registry
    service = context.provider_service

    @app.exception_handler(TomeError)
    async def tome_error_handler(request: Request, exc: TomeError) -> JSONResponse:
        status_code, code = classify_error(exc)
        headers = None
        if isinstance(exc, CircuitOpenError) and exc.retry_after is not None:
            headers = {"Retry-After": str(max(int(exc.retry_after), 1))}
        message = exc.reason if isinstance(exc, ProviderError) else str(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return error_response(status_code, message, code, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = first.get("msg", "invalid request")
        message = f"{location}: {detail}" if location else detail
        return error_response(400, message, "VALIDATION_ERROR")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error", "INTERNAL_ERROR")

    @app.get("/api/providers")
    async def list_providers() -> dict[str, Any]:
        summaries = [
            _summary(provider, registry.resolve_config(str(provider.id)))
            for provider in registry.get_all_providers()
        ]
        return envelope(summaries)

    @app.get("/api/providers/health")
    async def providers_health() -> dict[str, Any]:
        statuses = await service.health_check_all()
        return envelope({key: status.value for key, status in statuses.items()})

    @app.get("/api/providers/{provider_id}/config")
    async def get_config(provider_id: str) -> dict[str, Any]:
        return envelope(_config_model(registry.resolve_config(provider_id)))

    @app.patch("/api/providers/{provider_id}/config")
    async def update_config(provider_id: str, body: ConfigUpdateRequest) -> dict[str, Any]:
        config = registry.update_config(
            provider_id,
            enabled=body.enabled,
            priority=body.priority,
            settings=body.settings,
            credentials=body.credentials,
        )
        return envelope(_config_model(config))

    @app.post("/api/providers/search")
    async def federated_search(body: SearchRequest) -> dict[str, Any]:
        response = await context.search_service.search(body.query)
        return envelope(FederatedSearchModel.model_validate(asdict(response)))

    @app.get("/api/providers/{provider_id}/metadata/{external_id:path}")
    async def fetch_metadata(provider_id: str, external_id: str) -> dict[str, Any]:
        metadata = await service.fetch_metadata(provider_id, external_id)
        return envelope(BookMetadataModel.model_validate(asdict(metadata)))

    @app.get("/api/providers/{provider_id}/circuit")
    async def circuit_stats(provider_id: str) -> dict[str, Any]:
        return envelope(_stats_model(service.circuit_stats(provider_id)))

    @app.post("/api/providers/{provider_id}/circuit/reset")
    async def reset_circuit(provider_id: str) -> dict[str, Any]:
        return envelope(_stats_model(service.reset_circuit(provider_id)))

    return app

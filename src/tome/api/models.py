# ABOUTME: Pydantic request and response models for the provider HTTP API.
# ABOUTME: Fields are snake_case in Python and camelCase on the wire.

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CapabilitiesModel(ApiModel):
    has_search: bool
    has_metadata_fetch: bool
    has_sync: bool
    requires_auth: bool


class ProviderSummary(ApiModel):
    id: str
    name: str
    capabilities: CapabilitiesModel
    enabled: bool
    priority: int
    settings: dict[str, Any]
    has_credentials: bool


class ProviderConfigModel(ApiModel):
    """Full config row. Credentials are reduced to ``hasCredentials``."""

    provider: str
    display_name: str
    enabled: bool
    priority: int
    settings: dict[str, Any]
    has_credentials: bool
    health_status: str
    last_health_check: datetime | None = None
    circuit_state: str
    failure_count: int
    last_failure: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ConfigUpdateRequest(ApiModel):
    enabled: bool | None = None
    priority: int | None = None
    settings: dict[str, Any] | None = None
    credentials: dict[str, str] | None = None


class SearchRequest(ApiModel):
    query: str


class SearchMatchModel(ApiModel):
    external_id: str
    title: str
    authors: list[str]
    isbn: str | None = None
    publisher: str | None = None
    pub_date: date | None = None
    total_pages: int | None = None
    cover_image_url: str | None = None


class SearchResultModel(ApiModel):
    provider: str
    results: list[SearchMatchModel]
    status: str
    duration: int
    error: str | None = None


class FederatedSearchModel(ApiModel):
    query: str
    results: list[SearchResultModel]
    total_results: int
    successful_providers: int
    failed_providers: int


class BookMetadataModel(ApiModel):
    title: str
    authors: list[str]
    isbn: str | None = None
    description: str | None = None
    tags: list[str]
    publisher: str | None = None
    pub_date: date | None = None
    total_pages: int | None = None
    cover_image_url: str | None = None
    series: str | None = None
    series_index: float | None = None
    external_id: str | None = None
    rating: float | None = None


class CircuitStatsModel(ApiModel):
    provider: str
    state: str
    failure_count: int
    last_failure: datetime | None = None
    state_changed_at: datetime | None = None
    retry_after: float | None = None


def envelope(model: BaseModel | list[BaseModel] | dict[str, Any]) -> dict[str, Any]:
    """Wrap a payload in the ``{success, data}`` envelope, camelCased."""
    if isinstance(model, BaseModel):
        data: Any = model.model_dump(by_alias=True, mode="json")
    elif isinstance(model, list):
        data = [item.model_dump(by_alias=True, mode="json") for item in model]
    else:
        data = model
    return {"success": True, "data": data}

# ABOUTME: End-to-end tests for the Tome CLI.
# ABOUTME: Runs commands via Click's CliRunner against a temp database with scripted providers.

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

import tome.cli.options
from tests.fixtures.fakes import FETCH_ONLY, FakeProvider, make_matches
from tome.cli import cli, configure_logging
from tome.config import TomeSettings
from tome.context import TomeContext, build_context
from tome.providers.errors import TransientProviderError
from tome.providers.types import BookMetadata, ProviderCapabilities, ProviderHealth


@pytest.fixture
def providers() -> dict[str, FakeProvider]:
    return {
        "manual": FakeProvider("manual", capabilities=ProviderCapabilities()),
        "calibre": FakeProvider("calibre", capabilities=FETCH_ONLY),
        "hardcover": FakeProvider("hardcover", search_result=make_matches(3, "hc")),
        "openlibrary": FakeProvider(
            "openlibrary",
            name="Open Library",
            search_result=make_matches(2, "ol"),
            fetch_result=BookMetadata(
                title="Dune", authors=["Frank Herbert"], isbn="9780441172719"
            ),
        ),
    }


@pytest.fixture(autouse=True)
def scripted_context(
    monkeypatch: pytest.MonkeyPatch, providers: dict[str, FakeProvider]
) -> None:
    """Every command builds its context around the scripted providers."""

    def fake_build(settings: TomeSettings) -> TomeContext:
        return build_context(settings, providers=providers.values())

    monkeypatch.setattr(tome.cli.options, "build_context", fake_build)
    for name in (
        "TOME_DB_PATH",
        "TOME_SEARCH_TIMEOUT",
        "TOME_CB_FAILURE_THRESHOLD",
        "TOME_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def invoke(db_path: Path) -> Callable[..., object]:
    runner = CliRunner()

    def run(*args: str):
        return runner.invoke(cli, [*args, "--db", str(db_path)])

    return run


class TestProvidersCommand:
    def test_lists_providers(self, invoke) -> None:
        result = invoke("providers")
        assert result.exit_code == 0
        for provider in ("manual", "calibre", "hardcover", "openlibrary"):
            assert provider in result.output
        assert "CLOSED" in result.output


class TestSearchCommand:
    def test_search_prints_per_provider_status(self, invoke) -> None:
        result = invoke("search", "dune")
        assert result.exit_code == 0
        assert "hardcover: success" in result.output
        assert "openlibrary: success" in result.output
        assert "5 result(s) from 2 provider(s), 0 failed" in result.output

    def test_failed_provider_is_reported(
        self, invoke, providers: dict[str, FakeProvider]
    ) -> None:
        providers["hardcover"].search_result = TransientProviderError(
            "hardcover", "search", "HTTP 503"
        )
        result = invoke("search", "dune")
        assert result.exit_code == 0
        assert "hardcover: error" in result.output
        assert "HTTP 503" in result.output
        assert "1 failed" in result.output

    def test_blank_query_fails(self, invoke) -> None:
        result = invoke("search", "   ")
        assert result.exit_code == 1

    def test_no_enabled_providers(self, invoke) -> None:
        invoke("config", "hardcover", "--disable")
        invoke("config", "openlibrary", "--disable")
        result = invoke("search", "dune")
        assert result.exit_code == 0
        assert "No search providers are enabled." in result.output


class TestFetchCommand:
    def test_fetch_shows_metadata(self, invoke, providers: dict[str, FakeProvider]) -> None:
        result = invoke("fetch", "openlibrary", "OL1W")
        assert result.exit_code == 0
        assert "Dune" in result.output
        assert "Frank Herbert" in result.output
        assert "9780441172719" in result.output
        assert providers["openlibrary"].fetch_calls == ["OL1W"]

    def test_unknown_provider_fails(self, invoke) -> None:
        result = invoke("fetch", "goodreads", "1")
        assert result.exit_code == 1

    def test_unsupported_operation_fails(self, invoke) -> None:
        result = invoke("fetch", "manual", "1")
        assert result.exit_code == 1


class TestConfigCommand:
    def test_show(self, invoke) -> None:
        result = invoke("config", "openlibrary")
        assert result.exit_code == 0
        assert "Priority" in result.output
        assert "20" in result.output

    def test_update_persists(self, invoke, db_path: Path) -> None:
        result = invoke(
            "config", "openlibrary", "--priority", "3", "--setting", "timeout=2500"
        )
        assert result.exit_code == 0
        assert "Updated openlibrary." in result.output

        shown = invoke("config", "openlibrary")
        assert '"timeout": 2500' in shown.output

    def test_credentials_are_merged_and_values_hidden(self, invoke) -> None:
        invoke("config", "hardcover", "--credential", "apiKey=secret")
        result = invoke("config", "hardcover")
        assert result.exit_code == 0
        assert "apiKey" in result.output
        assert "secret" not in result.output

    def test_bad_pair_is_rejected(self, invoke) -> None:
        result = invoke("config", "openlibrary", "--setting", "timeout")
        assert result.exit_code == 2


class TestHealthCommand:
    def test_reports_each_provider(self, invoke, providers: dict[str, FakeProvider]) -> None:
        providers["hardcover"].health = ProviderHealth.UNAVAILABLE
        result = invoke("health")
        assert result.exit_code == 0
        assert "hardcover: unavailable" in result.output
        assert "openlibrary: healthy" in result.output


class TestCircuitCommand:
    def test_open_then_reset(self, invoke, providers: dict[str, FakeProvider]) -> None:
        providers["openlibrary"].fetch_result = TransientProviderError(
            "openlibrary", "fetchMetadata", "HTTP 503"
        )
        for _ in range(5):
            invoke("fetch", "openlibrary", "OL1W")

        shown = invoke("circuit", "openlibrary")
        assert shown.exit_code == 0
        assert "State: OPEN" in shown.output
        assert "Failures: 5" in shown.output

        reset = invoke("circuit", "openlibrary", "--reset")
        assert reset.exit_code == 0
        assert "Circuit for openlibrary reset." in reset.output
        assert "State: CLOSED" in reset.output


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.usefixtures("restore_root_logger")
class TestLogging:
    """Log level comes from validated settings."""

    def test_level_from_settings(self) -> None:
        configure_logging(False, TomeSettings(log_level="INFO"))
        assert logging.getLogger().level == logging.INFO

    def test_verbose_forces_debug(self) -> None:
        configure_logging(True, TomeSettings(log_level="ERROR"))
        assert logging.getLogger().level == logging.DEBUG

    def test_env_level_applies(self, invoke, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOME_LOG_LEVEL", "error")
        result = invoke("health")
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.ERROR

    def test_invalid_env_level_is_reported(
        self, invoke, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TOME_LOG_LEVEL", "LOUD")
        result = invoke("health")
        assert result.exit_code == 1
        assert "TOME_LOG_LEVEL" in result.output

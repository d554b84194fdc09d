# ABOUTME: The `tome providers` command listing every compiled-in metadata provider.
# ABOUTME: Shows capabilities alongside each provider's stored config and breaker state.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from tome.cli.options import db_option, run_with_context
from tome.context import TomeContext
from tome.providers.types import CircuitState, ProviderCapabilities

console = Console()

_CAPABILITY_LABELS = {
    "has_search": "search",
    "has_metadata_fetch": "fetch",
    "has_sync": "sync",
    "requires_auth": "auth",
}

_CIRCUIT_STYLES = {
    CircuitState.CLOSED: "green",
    CircuitState.HALF_OPEN: "yellow",
    CircuitState.OPEN: "red",
}


def capability_labels(capabilities: ProviderCapabilities) -> str:
    labels = [label for flag, label in _CAPABILITY_LABELS.items() if getattr(capabilities, flag)]
    return ", ".join(labels) if labels else "-"


@click.command("providers")
@db_option
def providers(db_path: Path | None) -> None:
    """List metadata providers with their configuration."""

    async def body(context: TomeContext) -> None:
        table = Table()
        table.add_column("ID", style="bold")
        table.add_column("Name")
        table.add_column("Capabilities")
        table.add_column("Enabled", justify="center")
        table.add_column("Priority", justify="right")
        table.add_column("Health")
        table.add_column("Circuit")
        table.add_column("Credentials", justify="center")

        for provider in context.registry.get_all_providers():
            config = context.registry.resolve_config(str(provider.id))
            style = _CIRCUIT_STYLES[config.circuit_state]
            table.add_row(
                str(provider.id),
                provider.name,
                capability_labels(provider.capabilities),
                "yes" if config.enabled else "[dim]no[/dim]",
                str(config.priority),
                config.health_status.value,
                f"[{style}]{config.circuit_state.value}[/{style}]",
                "yes" if config.has_credentials else "-",
            )

        console.print(table)

    run_with_context(db_path, body)

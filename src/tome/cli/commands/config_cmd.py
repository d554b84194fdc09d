# ABOUTME: The `tome config` command for viewing and changing a provider's configuration.
# ABOUTME: Toggles enablement, sets priority, and merges settings or credentials.

import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from tome.cli.options import db_option, parse_pairs, run_with_context
from tome.context import TomeContext
from tome.db.provider_configs import ProviderConfig

console = Console()


def _setting_value(raw: str) -> Any:
    """Settings keep JSON types, so `timeout=3000` stores a number."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _show(config: ProviderConfig) -> None:
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    table.add_row("Provider", f"{config.provider} ({config.display_name})")
    table.add_row("Enabled", "yes" if config.enabled else "no")
    table.add_row("Priority", str(config.priority))
    settings = json.dumps(config.settings, sort_keys=True) if config.settings else "-"
    table.add_row("Settings", settings)
    table.add_row("Credentials", ", ".join(sorted(config.credentials or {})) or "-")
    table.add_row("Health", config.health_status.value)
    table.add_row("Circuit", config.circuit_state.value)
    table.add_row("Failures", str(config.failure_count))
    if config.last_failure:
        table.add_row("Last failure", config.last_failure.isoformat())

    console.print(table)


@click.command("config")
@click.argument("provider_id")
@click.option("--enable/--disable", "enabled", default=None, help="Turn the provider on or off.")
@click.option("--priority", type=int, default=None, help="Lower runs first in listings.")
@click.option("--setting", "settings", multiple=True, help="Set a setting as key=value.")
@click.option("--credential", "credentials", multiple=True, help="Set a credential as key=value.")
@db_option
def config(
    provider_id: str,
    enabled: bool | None,
    priority: int | None,
    settings: tuple[str, ...],
    credentials: tuple[str, ...],
    db_path: Path | None,
) -> None:
    """Show or update configuration for PROVIDER_ID.

    Settings and credentials are merged into what is already stored.
    """
    new_settings = {k: _setting_value(v) for k, v in parse_pairs(settings, "--setting").items()}
    new_credentials = parse_pairs(credentials, "--credential")

    async def body(context: TomeContext) -> None:
        registry = context.registry
        current = registry.resolve_config(provider_id)
        if enabled is None and priority is None and not new_settings and not new_credentials:
            _show(current)
            return

        updated = registry.update_config(
            provider_id,
            enabled=enabled,
            priority=priority,
            settings={**current.settings, **new_settings} if new_settings else None,
            credentials={**(current.credentials or {}), **new_credentials}
            if new_credentials
            else None,
        )
        console.print(f"Updated [bold]{updated.provider}[/bold].")
        _show(updated)

    run_with_context(db_path, body)

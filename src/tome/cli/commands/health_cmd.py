# ABOUTME: The `tome health` command probing every provider concurrently.
# ABOUTME: Persists and prints each provider's health status.

from pathlib import Path

import click
from rich.console import Console

from tome.cli.options import db_option, run_with_context
from tome.context import TomeContext
from tome.providers.types import ProviderHealth

console = Console()


@click.command("health")
@db_option
def health(db_path: Path | None) -> None:
    """Run health checks against all providers."""

    async def body(context: TomeContext) -> None:
        statuses = await context.provider_service.health_check_all()
        for provider, status in statuses.items():
            style = "green" if status == ProviderHealth.HEALTHY else "red"
            console.print(f"[bold]{provider}[/bold]: [{style}]{status.value}[/{style}]")

    run_with_context(db_path, body)

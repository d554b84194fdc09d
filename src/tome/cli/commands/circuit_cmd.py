# ABOUTME: The `tome circuit` command showing or resetting a provider's circuit breaker.
# ABOUTME: A reset closes the circuit and clears the failure count.

from pathlib import Path

import click
from rich.console import Console

from tome.cli.options import db_option, run_with_context
from tome.context import TomeContext

console = Console()


@click.command("circuit")
@click.argument("provider_id")
@click.option("--reset", is_flag=True, help="Force the circuit closed.")
@db_option
def circuit(provider_id: str, reset: bool, db_path: Path | None) -> None:
    """Show the circuit breaker state for PROVIDER_ID."""

    async def body(context: TomeContext) -> None:
        service = context.provider_service
        stats = service.reset_circuit(provider_id) if reset else service.circuit_stats(provider_id)
        if reset:
            console.print(f"Circuit for [bold]{stats.provider}[/bold] reset.")
        console.print(f"State: [bold]{stats.state.value}[/bold]")
        console.print(f"Failures: {stats.failure_count}")
        if stats.last_failure:
            console.print(f"Last failure: {stats.last_failure.isoformat()}")
        if stats.retry_after is not None:
            console.print(f"Retry after: {stats.retry_after:.0f}s")

    run_with_context(db_path, body)

# ABOUTME: The `tome search` command running a federated search across providers.
# ABOUTME: Prints one status line per provider followed by the merged matches.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from tome.cli.options import db_option, run_with_context
from tome.context import TomeContext

console = Console()

_STATUS_STYLES = {"success": "green", "error": "red", "timeout": "yellow"}


@click.command("search")
@click.argument("query")
@click.option(
    "--limit", type=int, default=10, show_default=True, help="Matches shown per provider."
)
@db_option
def search(query: str, limit: int, db_path: Path | None) -> None:
    """Search every enabled provider for QUERY in parallel."""

    async def body(context: TomeContext) -> None:
        response = await context.search_service.search(query)

        if not response.results:
            console.print("[yellow]No search providers are enabled.[/yellow]")
            return

        for result in response.results:
            style = _STATUS_STYLES.get(result.status, "white")
            line = (
                f"[bold]{result.provider}[/bold]: [{style}]{result.status}[/{style}] "
                f"({len(result.results)} results, {result.duration} ms)"
            )
            if result.error:
                line += f" [dim]{result.error}[/dim]"
            console.print(line)

        matches = [(r.provider, m) for r in response.results for m in r.results[:limit]]
        if matches:
            table = Table()
            table.add_column("Provider", style="dim")
            table.add_column("ID")
            table.add_column("Title", style="bold")
            table.add_column("Author")
            table.add_column("Year", width=5)
            for provider, match in matches:
                table.add_row(
                    provider,
                    match.external_id,
                    match.title,
                    ", ".join(match.authors) or "[dim]unknown[/dim]",
                    str(match.pub_date.year) if match.pub_date else "?",
                )
            console.print(table)

        console.print(
            f"\n[dim]{response.total_results} result(s) from "
            f"{response.successful_providers} provider(s), "
            f"{response.failed_providers} failed[/dim]"
        )

    run_with_context(db_path, body)

# ABOUTME: The `tome fetch` command retrieving full metadata for one external id.
# ABOUTME: Goes through the provider service, so open circuits fail fast.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from tome.cli.options import db_option, run_with_context
from tome.context import TomeContext

console = Console()


@click.command("fetch")
@click.argument("provider_id")
@click.argument("external_id")
@db_option
def fetch(provider_id: str, external_id: str, db_path: Path | None) -> None:
    """Fetch metadata for EXTERNAL_ID from PROVIDER_ID."""

    async def body(context: TomeContext) -> None:
        meta = await context.provider_service.fetch_metadata(provider_id, external_id)

        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Field", style="bold", width=14)
        table.add_column("Value")

        table.add_row("Title", meta.title)
        table.add_row("Author", meta.author or "unknown")
        if meta.external_id:
            table.add_row("ID", meta.external_id)
        if meta.isbn:
            table.add_row("ISBN", meta.isbn)
        if meta.publisher:
            table.add_row("Publisher", meta.publisher)
        if meta.pub_date:
            table.add_row("Published", meta.pub_date.isoformat())
        if meta.total_pages:
            table.add_row("Pages", str(meta.total_pages))
        if meta.series:
            idx = meta.series_index
            table.add_row("Series", f"{meta.series} #{idx:g}" if idx is not None else meta.series)
        if meta.rating is not None:
            table.add_row("Rating", f"{meta.rating:.1f}")
        if meta.tags:
            table.add_row("Tags", ", ".join(meta.tags))
        if meta.cover_image_url:
            table.add_row("Cover", meta.cover_image_url)
        if meta.description:
            table.add_row("Description", meta.description)

        console.print(table)

    run_with_context(db_path, body)

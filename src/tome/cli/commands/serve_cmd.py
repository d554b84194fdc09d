# ABOUTME: The `tome serve` command running the provider HTTP API under uvicorn.
# ABOUTME: Builds the app from the same context the other commands use.

from pathlib import Path

import click
import uvicorn

from tome.api import create_app
from tome.cli.options import db_option, load_context


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=8000, show_default=True)
@db_option
def serve(host: str, port: int, db_path: Path | None) -> None:
    """Serve the provider API over HTTP."""
    context = load_context(db_path)
    uvicorn.run(create_app(context), host=host, port=port, log_level="info")

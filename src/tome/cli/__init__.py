# ABOUTME: CLI package for Tome, built on Click.
# ABOUTME: Defines the root command group, sets up logging, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from tome.cli.commands import (
    circuit_cmd,
    config_cmd,
    fetch_cmd,
    health_cmd,
    providers_cmd,
    search_cmd,
    serve_cmd,
)
from tome.config import TomeSettings


def configure_logging(verbose: bool, settings: TomeSettings) -> None:
    """Send log records to stderr through rich.

    ``-v`` forces DEBUG; otherwise the level comes from ``TOME_LOG_LEVEL``.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level_number,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="tome")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Tome - federated book metadata search across providers."""
    try:
        settings = TomeSettings.from_env()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(verbose, settings)


cli.add_command(providers_cmd.providers)
cli.add_command(search_cmd.search)
cli.add_command(fetch_cmd.fetch)
cli.add_command(config_cmd.config)
cli.add_command(health_cmd.health)
cli.add_command(circuit_cmd.circuit)
cli.add_command(serve_cmd.serve)

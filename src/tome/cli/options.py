# ABOUTME: Shared Click options and context plumbing for Tome CLI commands.
# ABOUTME: Provides the --db flag and runs async command bodies against a wired context.

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import click
from rich.console import Console

from tome.config import TomeSettings
from tome.context import TomeContext, build_context
from tome.db.connection import DEFAULT_DB_PATH
from tome.providers.errors import TomeError

T = TypeVar("T")

err_console = Console(stderr=True)

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to Tome database (default: $TOME_DB_PATH or {DEFAULT_DB_PATH})",
)


def load_context(db_path: Path | None) -> TomeContext:
    """Build a context from the environment, with --db taking precedence."""
    try:
        settings = TomeSettings.from_env()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    if db_path is not None:
        settings.db_path = db_path
    return build_context(settings)


def run_with_context(
    db_path: Path | None, body: Callable[[TomeContext], Awaitable[T]]
) -> T:
    """Run an async command body, then close the context.

    Tome errors are printed in red and exit with status 1.
    """
    context = load_context(db_path)

    async def runner() -> T:
        try:
            return await body(context)
        finally:
            await context.aclose()

    try:
        return asyncio.run(runner())
    except TomeError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc


def parse_pairs(pairs: tuple[str, ...], option: str) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a dict."""
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint=option)
        result[key.strip()] = value
    return result

"""
Main CLI entry point for imagecache.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from imagecache import __version__
from imagecache.cli.commands.api import api_app
from imagecache.cli.commands.cache import app as cache_app
from imagecache.cli.commands.db import db_app
from imagecache.cli.commands.tasks import tasks_app
from imagecache.config.logging import configure_logging
from imagecache.config.settings import settings

console = Console()

app = typer.Typer(
    name="imagecache",
    help="Caching image proxy for serving remote images from your own site",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Add subcommands
app.add_typer(cache_app, name="cache", help="Image cache maintenance and settings")
app.add_typer(tasks_app, name="tasks", help="Scheduled task commands")
app.add_typer(db_app, name="db", help="Database schema commands")
app.add_typer(api_app, name="api", help="API server management commands")


@app.command()
def version() -> None:
    """Show version and the active proxy configuration."""
    if settings.is_postgresql:
        backend = "PostgreSQL"
    elif settings.is_sqlite:
        backend = "SQLite"
    else:
        backend = "[red]unsupported[/red]"

    console.print(
        Panel(
            f"[bold blue]imagecache[/bold blue] v{__version__}\n"
            f"Site: {settings.site_url}\n"
            f"Cache directory: {settings.cache_dir}\n"
            f"Database: {backend}",
            title="Version",
            border_style="blue",
        )
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override the configured log level"
    ),
) -> None:
    """
    imagecache - caching image proxy.

    Fetches remote images embedded in site content, stores resized copies
    and serves them from the site's own origin.
    """
    if version:
        console.print(f"imagecache v{__version__}")
        raise typer.Exit(code=0)

    configure_logging(log_level or settings.log_level, sql_echo=settings.db_log_queries)

    if ctx.invoked_subcommand is None:
        console.print(
            "[yellow]Use 'imagecache --help' for available commands[/yellow]"
        )
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

"""CLI commands for the database schema."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from imagecache.config.database import db_manager

console = Console()

db_app = typer.Typer(
    name="db",
    help="Database schema commands",
    no_args_is_help=True,
)


@db_app.command(name="init")
def init() -> None:
    """
    Create the image cache tables if they do not exist.

    Use ``alembic upgrade head`` instead on databases managed by migrations.

    Examples:
        imagecache db init
    """
    asyncio.run(_init_async())
    console.print("[green]Database tables ready.[/green]")


async def _init_async() -> None:
    try:
        await db_manager.create_tables()
    finally:
        await db_manager.close()

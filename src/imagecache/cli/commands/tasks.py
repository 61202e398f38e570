"""
CLI commands for scheduled tasks.

``imagecache tasks run`` executes every due task once; call it from cron
(e.g. every few minutes).
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from imagecache.config.database import db_manager
from imagecache.container import container

console = Console()

tasks_app = typer.Typer(
    name="tasks",
    help="Scheduled task commands",
    no_args_is_help=True,
)


@tasks_app.command(name="run")
def run() -> None:
    """
    Run all scheduled tasks that are due.

    Exits with code 1 if any task failed.

    Examples:
        imagecache tasks run
    """
    try:
        failed = asyncio.run(_run_async())
    except KeyboardInterrupt:
        console.print("\n[yellow]Task run interrupted by user[/yellow]")
        raise typer.Exit(code=130)

    if failed:
        raise typer.Exit(code=1)


async def _run_async() -> bool:
    """Async implementation of the tasks run command."""
    async for session in db_manager.get_session():
        summary = await container.task_runner.run_due(session)

    if not (summary.ran or summary.failed or summary.skipped):
        console.print("[blue]No tasks due.[/blue]")
    for name in summary.ran:
        console.print(f"[green]✓[/green] {name}")
    for name in summary.failed:
        console.print(f"[red]✗[/red] {name}")
    for name in summary.skipped:
        console.print(f"[yellow]-[/yellow] {name} (no handler)")
    return bool(summary.failed)

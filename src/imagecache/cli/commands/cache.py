"""
CLI commands for managing the image cache.

Provides ``imagecache cache status|clean|sweep|proxify|forget`` for cache
maintenance and ``imagecache cache settings|enable|disable`` for the
persisted administrator options.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from imagecache.config.database import db_manager
from imagecache.container import container
from imagecache.models.options import ImageCacheOptions
from imagecache.services.image_cache import build_proxy_url

console = Console()

app = typer.Typer(
    name="cache",
    help="Manage the image cache.",
    no_args_is_help=True,
)


def _format_size(size_bytes: int) -> str:
    """Convert bytes to human-readable format."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


def _format_time(epoch: Optional[int]) -> str:
    if epoch is None:
        return "-"
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _run(coro: object, action: str) -> None:
    try:
        asyncio.run(coro)  # type: ignore[arg-type]
    except KeyboardInterrupt:
        console.print(f"\n[yellow]{action} interrupted by user[/yellow]")
        raise typer.Exit(code=130)


# ═══════════════════════════════════════════════════════════════════════════
# Maintenance
# ═══════════════════════════════════════════════════════════════════════════


@app.command(name="status")
def status() -> None:
    """
    Display cache statistics.

    Shows index rows per state, blob count and size, and entry ages.

    Examples:
        imagecache cache status
    """
    _run(_status_async(), "Status check")


async def _status_async() -> None:
    """Async implementation of the cache status command."""
    config = container.cache_config
    async for session in db_manager.get_session():
        stats = await container.admin_service.stats(session, config.max_retry)
    file_count, total_bytes = container.blob_store.total_size()

    table = Table(title="Image Cache Status")
    table.add_column("State", style="cyan")
    table.add_column("Entries", style="green", justify="right")

    table.add_row("Cached", f"{stats.succeeded:,}")
    table.add_row("Retrying", f"{stats.failed:,}")
    table.add_row("Abandoned", f"{stats.abandoned:,}")
    table.add_row("[bold]Total[/bold]", f"[bold]{stats.total:,}[/bold]")

    console.print()
    console.print(table)
    console.print()
    console.print(f"  Cache directory: {config.cache_dir}")
    console.print(f"  Files: {file_count:,} ({_format_size(total_bytes)})")
    console.print(f"  Oldest entry: {_format_time(stats.oldest_log_time)}")
    console.print(f"  Newest entry: {_format_time(stats.newest_log_time)}")


@app.command(name="clean")
def clean(
    force: bool = typer.Option(
        False,
        "--force",
        help="Skip confirmation prompt",
    ),
) -> None:
    """
    Empty the image cache.

    Deletes every index row and every cached file. Images are fetched again
    the next time a page embeds them.

    Examples:
        imagecache cache clean
        imagecache cache clean --force
    """
    if not force and not typer.confirm("Delete ALL cached images?"):
        console.print("[yellow]Aborted.[/yellow]")
        raise typer.Exit(code=0)

    _run(_clean_async(), "Clean")


async def _clean_async() -> None:
    """Async implementation of the cache clean command."""
    async for session in db_manager.get_session():
        removed = await container.admin_service.clean_cache(session)
    console.print(f"[green]Image cache emptied ({removed:,} files removed).[/green]")


@app.command(name="sweep")
def sweep(
    days: Optional[int] = typer.Option(
        None,
        "--days",
        "-d",
        help="Retention in days (defaults to the saved keep-days setting)",
        min=0,
    ),
) -> None:
    """
    Remove entries not accessed within the retention window.

    Examples:
        imagecache cache sweep
        imagecache cache sweep --days 30
    """
    _run(_sweep_async(days=days), "Sweep")


async def _sweep_async(*, days: Optional[int]) -> None:
    """Async implementation of the cache sweep command."""
    async for session in db_manager.get_session():
        if days is None:
            options = await container.admin_service.load_options(session)
            days = options.keep_days
        result = await container.expiry_sweeper.sweep(session, days)

    if result.cutoff is None:
        console.print("[yellow]Retention is 0 days (keep forever); nothing removed.[/yellow]")
        return
    console.print(
        f"[green]Removed {result.removed:,} entries ({result.files_removed:,} files) "
        f"not used since {_format_time(result.cutoff)}.[/green]"
    )


@app.command(name="proxify")
def proxify(
    url: str = typer.Argument(..., help="Remote image URL"),
) -> None:
    """
    Cache an image now and print its proxy URL.

    Examples:
        imagecache cache proxify http://example.com/a.png
    """
    _run(_proxify_async(url=url), "Proxify")


async def _proxify_async(*, url: str) -> None:
    """Async implementation of the cache proxify command."""
    async for session in db_manager.get_session():
        service = await container.get_image_cache_service(session)
        result = await service.access(session, url)
    proxy_url = build_proxy_url(service.config.site_url, url, result.key)

    state = result.state.kind.value
    colour = "green" if result.is_hit else "yellow"
    console.print(proxy_url)
    console.print(f"  State: [{colour}]{state}[/{colour}]")


@app.command(name="forget")
def forget(
    url: str = typer.Argument(..., help="Remote image URL"),
) -> None:
    """
    Remove a single image from the cache.

    Examples:
        imagecache cache forget http://example.com/a.png
    """
    _run(_forget_async(url=url), "Forget")


async def _forget_async(*, url: str) -> None:
    """Async implementation of the cache forget command."""
    async for session in db_manager.get_session():
        service = await container.get_image_cache_service(session)
        removed = await service.remove_entry(session, url)

    if removed:
        console.print("[green]Removed from the image cache.[/green]")
    else:
        console.print("[yellow]Image was not cached.[/yellow]")


# ═══════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════


def _print_options(options: ImageCacheOptions) -> None:
    table = Table(title="Image Cache Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Enabled", "yes" if options.enabled else "no")
    table.add_row("Cache all images", "yes" if options.cache_all else "no")
    table.add_row("Hide original link", "yes" if options.nolink else "no")
    table.add_row(
        "Keep days",
        str(options.keep_days) if options.keep_days else "0 (forever)",
    )
    console.print(table)


@app.command(name="settings")
def show_settings() -> None:
    """
    Show the saved image cache settings.

    Examples:
        imagecache cache settings
    """
    _run(_settings_async(), "Settings")


async def _settings_async() -> None:
    """Async implementation of the cache settings command."""
    async for session in db_manager.get_session():
        options = await container.admin_service.load_options(session)
    _print_options(options)


@app.command(name="enable")
def enable(
    cache_all: Optional[bool] = typer.Option(
        None,
        "--cache-all/--insecure-only",
        help="Cache every remote image, or only those a secure site needs",
    ),
    nolink: Optional[bool] = typer.Option(
        None,
        "--nolink/--link",
        help="Hide or show the inline link to the original image",
    ),
    keep_days: Optional[int] = typer.Option(
        None,
        "--keep-days",
        help="Remove images not accessed for this many days (0 keeps forever)",
        min=0,
    ),
) -> None:
    """
    Enable the image cache and schedule the daily expiry task.

    Options not given keep their saved values.

    Examples:
        imagecache cache enable
        imagecache cache enable --cache-all --keep-days 30
    """
    _run(
        _save_async(enabled=True, cache_all=cache_all, nolink=nolink, keep_days=keep_days),
        "Enable",
    )


@app.command(name="disable")
def disable() -> None:
    """
    Disable the image cache and remove the expiry task.

    Cached files are kept; use ``imagecache cache clean`` to delete them.

    Examples:
        imagecache cache disable
    """
    _run(_save_async(enabled=False), "Disable")


async def _save_async(
    *,
    enabled: bool,
    cache_all: Optional[bool] = None,
    nolink: Optional[bool] = None,
    keep_days: Optional[int] = None,
) -> None:
    """Load, update and save the persisted options."""
    async for session in db_manager.get_session():
        options = await container.admin_service.load_options(session)
        updates: dict[str, object] = {"enabled": enabled}
        if cache_all is not None:
            updates["cache_all"] = cache_all
        if nolink is not None:
            updates["nolink"] = nolink
        if keep_days is not None:
            updates["keep_days"] = keep_days
        options = await container.admin_service.save_options(
            session, options.model_copy(update=updates)
        )

    state = "[green]enabled[/green]" if options.enabled else "[yellow]disabled[/yellow]"
    console.print(f"Image cache {state}.")
    _print_options(options)

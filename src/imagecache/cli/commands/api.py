"""CLI commands for running the image proxy server."""

from __future__ import annotations

import typer

from imagecache.config.settings import settings

api_app = typer.Typer(
    name="api",
    help="API server management commands",
    no_args_is_help=True,
)


@api_app.command()
def start(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to run the server on"),
    workers: int = typer.Option(
        1, "--workers", "-w", min=1, help="Worker processes (ignored with --reload)"
    ),
    reload: bool = typer.Option(
        False, "--reload", help="Restart on code changes (development only)"
    ),
    forwarded_allow_ips: str = typer.Option(
        "127.0.0.1",
        "--forwarded-allow-ips",
        help="Front-end proxies trusted to set X-Forwarded-* headers",
    ),
) -> None:
    """
    Start the imagecache proxy server.

    The proxy normally sits behind the site's own web server, which forwards
    ``/imagecache`` requests to it. Each worker holds its own fetch
    concurrency limit, so total simultaneous downloads are
    ``workers * max_concurrent_fetches``.

    Examples:
        imagecache api start
        imagecache api start --port 3000 --reload
        imagecache api start -h 0.0.0.0 -p 8080 --workers 4
    """
    import uvicorn

    run_kwargs: dict[str, object] = {
        "host": host,
        "port": port,
        "log_level": settings.log_level.lower(),
        "proxy_headers": True,
        "forwarded_allow_ips": forwarded_allow_ips,
    }
    if reload:
        run_kwargs["reload"] = True
    else:
        run_kwargs["workers"] = workers

    uvicorn.run("imagecache.api.main:app", **run_kwargs)

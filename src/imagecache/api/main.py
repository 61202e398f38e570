"""FastAPI application for the imagecache proxy."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from imagecache import __version__
from imagecache.api.exception_handlers import register_exception_handlers
from imagecache.api.routers import health, images
from imagecache.config.database import db_manager
from imagecache.container import container

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Startup
    container.blob_store.ensure_directory()
    yield
    # Shutdown
    await db_manager.close()


app = FastAPI(
    title="imagecache",
    description="Caching image proxy serving remote images from the site's own origin",
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)


def _get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxied requests."""
    # Check for forwarded headers (common with reverse proxies)
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host
    return "unknown"


@app.middleware("http")
async def log_requests(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """
    Middleware to log incoming requests and outgoing responses.

    Logs request method, path, and client IP at DEBUG level, since image
    requests are frequent. Logs response status code and timing:
    - DEBUG for 2xx/3xx responses
    - INFO for 4xx responses
    - ERROR for 5xx responses

    Query strings are never logged; they carry the source URL and key.
    """
    start_time = time.perf_counter()

    method = request.method
    path = request.url.path
    client_ip = _get_client_ip(request)

    logger.debug("Request: %s %s from %s", method, path, client_ip)

    response = await call_next(request)

    duration = time.perf_counter() - start_time
    status_code = response.status_code

    if status_code >= 500:
        log_level = logging.ERROR
    elif status_code >= 400:
        log_level = logging.INFO
    else:
        log_level = logging.DEBUG

    logger.log(
        log_level,
        "Response: %s %s - %d (%.3fs)",
        method,
        path,
        status_code,
        duration,
    )

    return response


app.include_router(images.router)
app.include_router(health.router, prefix="/api/v1", tags=["health"])

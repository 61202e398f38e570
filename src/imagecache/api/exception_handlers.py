"""Exception handlers for the imagecache API.

Proxy validation failures are answered with a bare ``403`` so that clients
learn nothing about why a request was refused. Other domain errors become a
generic ``500``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse, Response

from imagecache.exceptions import ImageCacheError, InvalidProxyRequestError

logger = logging.getLogger(__name__)


async def invalid_proxy_request_handler(
    request: Request, exc: InvalidProxyRequestError
) -> Response:
    """Reject an invalid proxy request with an empty 403."""
    logger.debug("Rejected proxy request %s: %s", request.url.path, exc.reason)
    return Response(status_code=403)


async def image_cache_error_handler(request: Request, exc: ImageCacheError) -> JSONResponse:
    """Handle unexpected domain errors without exposing details."""
    logger.exception("Unhandled image cache error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Parameters
    ----------
    app : FastAPI
        The FastAPI application instance.
    """
    app.add_exception_handler(InvalidProxyRequestError, invalid_proxy_request_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ImageCacheError, image_cache_error_handler)  # type: ignore[arg-type]

"""Image cache proxy endpoint.

- GET /imagecache?image=<url>&hash=<key> - Serve a cached remote image (public)

The endpoint is public; the ``hash`` parameter, derived from the secret
salt, is what stops it being used as an open proxy. Every rejection is an
empty ``403``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from imagecache.api.deps import get_db, get_image_proxy
from imagecache.services.image_cache import PROXY_PATH
from imagecache.services.image_proxy import ImageProxy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Router - no auth dependency (cached images are public)
# ---------------------------------------------------------------------------
router = APIRouter(tags=["imagecache"])


@router.get(
    PROXY_PATH,
    responses={
        200: {
            "content": {
                "image/jpeg": {},
                "image/png": {},
                "image/gif": {},
                "image/webp": {},
            },
            "description": "Cached image (or placeholder while the source is failing)",
        },
        304: {"description": "Client copy is still current"},
        403: {"description": "Invalid request"},
    },
    response_class=Response,
)
async def get_cached_image(
    image: Optional[str] = Query(None, description="Source image URL"),
    image_hash: Optional[str] = Query(None, alias="hash", description="Cache key of the URL"),
    referer: Optional[str] = Header(None),
    if_modified_since: Optional[str] = Header(None),
    if_none_match: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    proxy: ImageProxy = Depends(get_image_proxy),
) -> Response:
    """Serve a cached image.

    Parameters
    ----------
    image : str | None
        Source image URL (already URL-decoded by the framework).
    image_hash : str | None
        Cache key supplied by the embedding page.
    referer : str | None
        ``Referer`` header; must point at this site when present.
    if_modified_since : str | None
        Conditional GET date.
    if_none_match : str | None
        Conditional GET entity tags.
    db : AsyncSession
        Database session.
    proxy : ImageProxy
        Serving proxy.

    Returns
    -------
    Response
        Image bytes, a ``304``, or (through the exception handler) an empty
        ``403``.
    """
    return await proxy.serve(
        db,
        image,
        image_hash,
        referer=referer,
        if_modified_since=if_modified_since,
        if_none_match=if_none_match,
    )

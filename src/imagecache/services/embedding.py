"""
Embed-time helpers.

Decides whether an image URL found in rendered content should go through the
proxy and, if so, rewrites it to the proxy URL while seeding the cache.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional
from urllib.parse import urlparse

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.models.options import ImageCacheOptions
from imagecache.services.image_cache import ImageCacheService, build_proxy_url

logger = logging.getLogger(__name__)

DEFAULT_WARN_TEXT = "External image, click here to view original"

_PROTOCOL_PATTERN = re.compile(r"^(http://|https://)", re.IGNORECASE)


def add_protocol(url: str) -> str:
    """Normalise the scheme of ``url``.

    An existing ``http://`` or ``https://`` prefix is lower-cased; anything
    else gets ``http://`` prepended.

    Examples
    --------
    >>> add_protocol("HTTPS://example.com/a.png")
    'https://example.com/a.png'
    >>> add_protocol("example.com/a.png")
    'http://example.com/a.png'
    """
    match = _PROTOCOL_PATTERN.match(url)
    if match:
        return match.group(1).lower() + url[match.end() :]
    return "http://" + url


def needs_caching(source_url: str, board_url: str, always_cache: bool = False) -> bool:
    """Whether ``source_url`` embedded on ``board_url`` should be proxied.

    Parameters
    ----------
    source_url : str
        Absolute image URL.
    board_url : str
        Public base URL of the site.
    always_cache : bool
        Proxy every external image, not only those that would trigger
        mixed-content warnings.

    Returns
    -------
    bool
        ``False`` for malformed URLs, images on the site's own host, and
        (unless ``always_cache``) when the site is plain HTTP or both share a
        scheme.
    """
    try:
        board = urlparse(board_url)
        image = urlparse(source_url)
        board_host = board.hostname
        image_host = image.hostname
    except ValueError:
        return False

    if not image_host or not board_host:
        return False

    if board_host.startswith(image_host):
        return False

    if not always_cache and (board.scheme == "http" or board.scheme == image.scheme):
        return False

    return True


class RenderContext(BaseModel):
    """State shared across one render pass of a page.

    Attributes
    ----------
    warn_text : str
        Text of the inline "view original" link.
    suppress_link : bool
        Omit the inline link attributes.
    loader_requested : bool
        Set once the page needs the client-side loader script.
    """

    warn_text: str = DEFAULT_WARN_TEXT
    suppress_link: bool = False
    loader_requested: bool = False

    def request_loader(self) -> bool:
        """Mark the loader as needed; returns ``True`` the first time only."""
        if self.loader_requested:
            return False
        self.loader_requested = True
        return True


class EmbeddedImage(BaseModel):
    """A rewritten image reference."""

    src: str
    original_url: str
    rel: Optional[str] = None
    data_warn: Optional[str] = None
    data_url: Optional[str] = None

    @property
    def html_attributes(self) -> Dict[str, str]:
        """Attributes to place on the ``<img>`` element."""
        attributes = {"src": self.src}
        if self.rel is not None:
            attributes["rel"] = self.rel
        if self.data_warn is not None:
            attributes["data-warn"] = self.data_warn
        if self.data_url is not None:
            attributes["data-url"] = self.data_url
        return attributes


class ImageEmbedder:
    """Rewrites image URLs to go through the cache proxy.

    Parameters
    ----------
    service : ImageCacheService
        Orchestrator used to seed the cache.
    options : ImageCacheOptions
        Persisted feature switches.
    """

    def __init__(self, service: ImageCacheService, options: ImageCacheOptions) -> None:
        self._service = service
        self._options = options

    def new_context(self, warn_text: str = DEFAULT_WARN_TEXT) -> RenderContext:
        """Start a render pass."""
        return RenderContext(warn_text=warn_text, suppress_link=self._options.nolink)

    def proxy_url(self, url: str) -> str:
        """Proxy URL for ``url`` without touching the cache."""
        return build_proxy_url(self._service.config.site_url, url, self._service.key_for(url))

    async def rewrite(
        self,
        session: AsyncSession,
        ctx: RenderContext,
        url: str,
    ) -> Optional[EmbeddedImage]:
        """Rewrite ``url`` for embedding, seeding the cache.

        Returns
        -------
        EmbeddedImage | None
            ``None`` when the feature is disabled or the image can be linked
            directly.
        """
        if not self._options.enabled:
            return None

        url = add_protocol(url.strip())
        if not needs_caching(url, self._service.config.site_url, self._options.cache_all):
            return None

        if ctx.request_loader():
            logger.debug("Image cache loader requested for this render")

        src = await self._service.proxify(session, url)
        if ctx.suppress_link:
            return EmbeddedImage(src=src, original_url=url)
        return EmbeddedImage(
            src=src,
            original_url=url,
            rel="cached",
            data_warn=ctx.warn_text,
            data_url=url,
        )

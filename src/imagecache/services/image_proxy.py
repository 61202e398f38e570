"""
HTTP serving side of the image cache.

Validates ``/imagecache`` requests (hash, blob presence, referrer), optionally
runs the orchestrator, and answers with the cached blob: conditional GET via
``If-Modified-Since`` / ``If-None-Match``, long-lived client caching for real
images and chunked streaming for large files.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from email.utils import formatdate, parsedate_to_datetime
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response, StreamingResponse

from imagecache.exceptions import InvalidProxyRequestError
from imagecache.services.image_cache import ImageCacheService

logger = logging.getLogger(__name__)

_FALLBACK_CONTENT_TYPE = "image/jpeg"
_ETAG_MAX_LENGTH = 64


class ProxyRequest(BaseModel):
    """A validated proxy request."""

    image: str
    key: str
    path: Path


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------


def detect_content_type(file_path: Path) -> str:
    """Detect image content type by reading magic bytes.

    Parameters
    ----------
    file_path : Path
        Path to the image file on disk.

    Returns
    -------
    str
        MIME type string (``image/jpeg``, ``image/png``, ``image/gif``,
        ``image/webp``, or ``image/jpeg`` as fallback).
    """
    try:
        with file_path.open("rb") as f:
            header = f.read(12)
    except OSError:
        return _FALLBACK_CONTENT_TYPE

    if header[:2] == b"\xff\xd8":
        return "image/jpeg"
    if header[:4] == b"\x89PNG":
        return "image/png"
    if header[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "image/webp"
    return _FALLBACK_CONTENT_TYPE


def make_etag(key: str, mtime: float) -> str:
    """Quoted ETag derived from the key and the blob's modification time."""
    return '"' + f"{key}{int(mtime)}"[:_ETAG_MAX_LENGTH] + '"'


def _parse_http_date(value: str) -> Optional[float]:
    # Some clients append "; length=..." to If-Modified-Since
    raw = value.split(";", 1)[0].strip()
    if not raw:
        return None
    try:
        return parsedate_to_datetime(raw).timestamp()
    except (TypeError, ValueError):
        return None


def _iter_file(path: Path, chunk_size: int) -> Iterator[bytes]:
    with path.open("rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield chunk


class ImageProxy:
    """Serves cached images to browsers.

    Parameters
    ----------
    service : ImageCacheService
        Orchestrator providing keys, blob paths and the access state machine.
    """

    def __init__(self, service: ImageCacheService) -> None:
        self._service = service
        self._config = service.config

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def validate(
        self,
        session: AsyncSession,
        image: Optional[str],
        supplied_hash: Optional[str],
        referer: Optional[str] = None,
    ) -> ProxyRequest:
        """Validate a proxy request.

        Parameters
        ----------
        session : AsyncSession
            Database session, used to drop a stale index row.
        image : str | None
            Decoded ``image`` query parameter.
        supplied_hash : str | None
            ``hash`` query parameter.
        referer : str | None
            ``Referer`` request header.

        Returns
        -------
        ProxyRequest
            The validated request.

        Raises
        ------
        InvalidProxyRequestError
            If parameters are missing, the hash does not match, the blob is
            missing or the referrer belongs to another host.
        """
        if image is None or supplied_hash is None:
            raise InvalidProxyRequestError("missing_params")

        image = image.strip()
        supplied_hash = supplied_hash.strip()
        if not image or not self._service.hasher.verify(image, supplied_hash):
            raise InvalidProxyRequestError("hash_mismatch")

        key = self._service.key_for(image)
        path = self._service.blob_path(key)
        if not path.is_file():
            await self._service.repository.delete_entry(session, key)
            await session.commit()
            raise InvalidProxyRequestError("missing_file")

        if not self.is_valid_referrer(referer):
            raise InvalidProxyRequestError("bad_referrer")

        return ProxyRequest(image=image, key=key, path=path)

    def is_valid_referrer(self, referer: Optional[str]) -> bool:
        """Whether ``referer`` is absent or points at the site host."""
        if not referer:
            return True
        referer_host = urlparse(referer).hostname
        site_host = urlparse(self._config.site_url).hostname
        if not referer_host or not site_host:
            return True
        return referer_host == site_host

    # ------------------------------------------------------------------
    # Serving
    # ------------------------------------------------------------------

    async def serve(
        self,
        session: AsyncSession,
        image: Optional[str],
        supplied_hash: Optional[str],
        *,
        referer: Optional[str] = None,
        if_modified_since: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> Response:
        """Validate, refresh and answer one proxy request.

        Raises
        ------
        InvalidProxyRequestError
            If the request fails validation.
        """
        request = await self.validate(session, image, supplied_hash, referer)

        cache_hit = True
        if self._config.fetch_on_demand:
            result = await self._service.access(session, request.image)
            cache_hit = result.is_hit

        return self.build_response(
            request.path,
            request.key,
            cache_hit=cache_hit,
            if_modified_since=if_modified_since,
            if_none_match=if_none_match,
        )

    def build_response(
        self,
        path: Path,
        key: str,
        *,
        cache_hit: bool,
        if_modified_since: Optional[str] = None,
        if_none_match: Optional[str] = None,
    ) -> Response:
        """Build the HTTP response for the blob at ``path``.

        Conditional requests are only honoured on a cache hit so that a
        placeholder is never pinned in the browser.
        """
        stat = path.stat()
        mtime = stat.st_mtime
        etag = make_etag(key, mtime)

        if cache_hit:
            if if_modified_since:
                since = _parse_http_date(if_modified_since)
                if since is not None and since >= int(mtime):
                    return Response(status_code=304)
            if if_none_match and etag in if_none_match:
                return Response(status_code=304)

        headers = {
            "Content-Length": str(stat.st_size),
            "Content-Disposition": "inline",
            "Last-Modified": formatdate(mtime, usegmt=True),
            "Accept-Ranges": "bytes",
        }
        if cache_hit:
            max_age = self._config.client_cache_seconds
            headers["ETag"] = etag
            headers["Cache-Control"] = f"max-age={max_age}, private"
            headers["Expires"] = formatdate(time.time() + max_age, usegmt=True)

        content_type = detect_content_type(path)
        if stat.st_size > self._config.stream_threshold_bytes:
            return StreamingResponse(
                _iter_file(path, self._config.stream_chunk_size),
                media_type=content_type,
                headers=headers,
            )
        return Response(content=path.read_bytes(), media_type=content_type, headers=headers)

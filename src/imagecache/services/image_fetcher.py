"""
Remote image fetch pipeline.

Downloads a source image, downscales it to the configured bounding box with
Pillow, re-encodes it in the family implied by the source extension and
publishes it atomically through :class:`BlobStore`. Any failure leaves a
placeholder image at the blob path instead.
"""

from __future__ import annotations

import asyncio
import io
import logging
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import httpx
from PIL import Image, ImageDraw, ImageOps

from imagecache.exceptions import BlobStorageError, FetchError, ImageProcessingError
from imagecache.models.cache_state import FetchResult
from imagecache.models.enums import ImageFormat
from imagecache.services.blob_store import BlobStore
from imagecache.services.cache_config import ImageCacheConfig

logger = logging.getLogger(__name__)

_USER_AGENT = "imagecache/0.3 (+image proxy)"

# ---------------------------------------------------------------------------
# Built-in placeholder
# ---------------------------------------------------------------------------
_PLACEHOLDER_SIZE = (160, 120)
_PLACEHOLDER_BACKGROUND = (226, 232, 240)
_PLACEHOLDER_FOREGROUND = (148, 163, 184)


@lru_cache(maxsize=1)
def default_placeholder_png() -> bytes:
    """Render the built-in "broken image" placeholder as PNG bytes."""
    width, height = _PLACEHOLDER_SIZE
    image = Image.new("RGB", _PLACEHOLDER_SIZE, _PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    draw.rectangle((8, 8, width - 9, height - 9), outline=_PLACEHOLDER_FOREGROUND, width=3)
    draw.ellipse((28, 24, 52, 48), fill=_PLACEHOLDER_FOREGROUND)
    draw.polygon(
        [(20, height - 20), (64, 56), (92, 84), (112, 64), (width - 20, height - 20)],
        fill=_PLACEHOLDER_FOREGROUND,
    )
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def format_for_url(source_url: str) -> ImageFormat:
    """Encoding family for ``source_url`` based on its path extension."""
    suffix = PurePosixPath(urlparse(source_url).path).suffix
    return ImageFormat.from_extension(suffix)


def resize_image(
    data: bytes,
    image_format: ImageFormat,
    max_width: int,
    max_height: int,
) -> bytes:
    """Fit ``data`` inside ``max_width`` x ``max_height`` and re-encode it.

    Aspect ratio is preserved and images are never upscaled. JPEG output
    has any transparency flattened onto white.

    Parameters
    ----------
    data : bytes
        Raw downloaded image bytes.
    image_format : ImageFormat
        Target encoding family.
    max_width : int
        Bounding box width.
    max_height : int
        Bounding box height.

    Returns
    -------
    bytes
        The encoded image.

    Raises
    ------
    ImageProcessingError
        If the bytes cannot be decoded or encoded.
    """
    try:
        with Image.open(io.BytesIO(data)) as source:
            image = ImageOps.exif_transpose(source)
            image.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)

            save_kwargs: dict[str, object] = {}
            if image_format is ImageFormat.JPEG:
                if image.mode in ("RGBA", "LA", "P", "PA"):
                    rgba = image.convert("RGBA")
                    background = Image.new("RGB", rgba.size, (255, 255, 255))
                    background.paste(rgba, mask=rgba.split()[3])
                    image = background
                elif image.mode != "RGB":
                    image = image.convert("RGB")
                save_kwargs = {"quality": 85, "optimize": True}
            elif image_format is ImageFormat.GIF:
                if image.mode not in ("P", "L"):
                    image = image.convert("P", palette=Image.Palette.ADAPTIVE)
            elif image.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
                image = image.convert("RGBA")

            buffer = io.BytesIO()
            image.save(buffer, format=image_format.value, **save_kwargs)
            return buffer.getvalue()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageProcessingError(f"Could not process image: {exc}") from exc


class ImageFetcher:
    """Downloads, resizes and stores remote images.

    Parameters
    ----------
    config : ImageCacheConfig
        Service configuration (limits, timeouts, placeholder).
    blob_store : BlobStore | None
        Blob store; one rooted at ``config.cache_dir`` is created if omitted.
    """

    def __init__(
        self,
        config: ImageCacheConfig,
        blob_store: Optional[BlobStore] = None,
    ) -> None:
        self._config = config
        self._blob_store = blob_store or BlobStore(config.cache_dir)
        self._semaphore = asyncio.Semaphore(config.max_concurrent_fetches)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_and_store(
        self,
        key: str,
        source_url: str,
        max_width: Optional[int] = None,
        max_height: Optional[int] = None,
    ) -> FetchResult:
        """Fetch ``source_url`` and publish it as the blob for ``key``.

        On failure the placeholder is written to the blob path instead and
        a failed result is returned; no exception escapes.

        Parameters
        ----------
        key : str
            Cache key of the image.
        source_url : str
            Remote URL to download.
        max_width : int | None
            Bounding box width override.
        max_height : int | None
            Bounding box height override.

        Returns
        -------
        FetchResult
            Success flag, failure reason and stored size.
        """
        width = max_width or self._config.max_width
        height = max_height or self._config.max_height

        try:
            body = await self._download(source_url)
            encoded = await asyncio.to_thread(
                resize_image, body, format_for_url(source_url), width, height
            )
            self._blob_store.write_atomic(key, encoded)
        except FetchError as exc:
            logger.warning("Fetch failed for %s: %s", source_url, exc.reason)
            return self._fail(key, exc.reason)
        except ImageProcessingError as exc:
            logger.warning("Could not decode image from %s: %s", source_url, exc.message)
            return self._fail(key, "decode_error")
        except BlobStorageError as exc:
            logger.error("Could not store image %s: %s", key, exc.message)
            return self._fail(key, "storage_error")

        logger.info("Cached image %s from %s (%d bytes)", key, source_url, len(encoded))
        return FetchResult(success=True, size_bytes=len(encoded))

    def placeholder_bytes(self) -> bytes:
        """The configured placeholder, or the built-in one."""
        path = self._config.placeholder_path
        if path is not None:
            try:
                return path.read_bytes()
            except OSError:
                logger.warning("Placeholder %s unreadable; using built-in image", path)
        return default_placeholder_png()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _download(self, url: str) -> bytes:
        """GET ``url`` and return the body, raising :class:`FetchError`."""
        async with self._semaphore:
            try:
                async with httpx.AsyncClient(
                    follow_redirects=True,
                    timeout=self._config.fetch_timeout,
                    headers={"User-Agent": _USER_AGENT},
                ) as client:
                    response = await client.get(url)
            except httpx.TimeoutException as exc:
                raise FetchError(url, "timeout") from exc
            except httpx.InvalidURL as exc:
                raise FetchError(url, "invalid_url") from exc
            except httpx.HTTPError as exc:
                raise FetchError(url, f"http_error: {exc}") from exc

        if response.status_code != 200:
            raise FetchError(url, f"status_{response.status_code}")

        content_type = response.headers.get("content-type", "")
        if content_type and not (
            content_type.startswith("image/") or "octet-stream" in content_type
        ):
            raise FetchError(url, f"invalid_content_type: {content_type}")

        body = response.content
        if not body:
            raise FetchError(url, "empty_body")
        if len(body) > self._config.max_download_bytes:
            raise FetchError(url, f"too_large_{len(body)}")
        return body

    def _fail(self, key: str, reason: str) -> FetchResult:
        try:
            self._blob_store.write_atomic(key, self.placeholder_bytes())
        except BlobStorageError as exc:
            logger.error("Could not write placeholder for %s: %s", key, exc.message)
        return FetchResult(success=False, reason=reason)

"""
Filesystem store for cached image blobs.

Blobs live flat in the cache directory as ``img_cache_<key>.img``. Writes go
to a temporary sibling and are published with ``os.replace`` so readers
never observe a partial file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from uuid import uuid4

from imagecache.exceptions import BlobStorageError

logger = logging.getLogger(__name__)

BLOB_PREFIX = "img_cache_"
BLOB_SUFFIX = ".img"


class BlobStore:
    """Reads, writes and deletes cache blobs under ``cache_dir``.

    Parameters
    ----------
    cache_dir : Path
        Directory holding the blobs.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    def ensure_directory(self) -> None:
        """Create the cache directory if needed."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Deterministic blob path for ``key``."""
        return self.cache_dir / f"{BLOB_PREFIX}{key}{BLOB_SUFFIX}"

    def exists(self, key: str) -> bool:
        """Whether a blob is present for ``key``."""
        return self.path_for(key).is_file()

    def write_atomic(self, key: str, data: bytes) -> Path:
        """Write ``data`` as the blob for ``key``, replacing any previous one.

        Raises
        ------
        BlobStorageError
            If the temporary file cannot be written or published.
        """
        target = self.path_for(key)
        tmp_path = target.with_name(f".{target.name}.tmp.{uuid4().hex}")
        try:
            self.ensure_directory()
            with tmp_path.open("wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        except OSError as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove temp blob %s", tmp_path)
            raise BlobStorageError(str(target), exc) from exc
        return target

    def delete(self, key: str) -> bool:
        """Delete the blob for ``key``; missing files are ignored.

        Returns
        -------
        bool
            ``True`` if a file was removed.
        """
        path = self.path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError:
            logger.warning("Failed to delete cache blob: %s", path, exc_info=True)
            return False

    def delete_all(self) -> int:
        """Delete every blob (and leftover temp file) in the cache directory.

        Returns
        -------
        int
            Number of files removed.
        """
        if not self.cache_dir.is_dir():
            return 0

        removed = 0
        for pattern in (f"{BLOB_PREFIX}*", f".{BLOB_PREFIX}*.tmp.*"):
            for path in self.cache_dir.glob(pattern):
                if not path.is_file():
                    continue
                try:
                    path.unlink()
                    removed += 1
                except OSError:
                    logger.warning("Failed to delete cache blob: %s", path, exc_info=True)
        return removed

    def total_size(self) -> tuple[int, int]:
        """Return ``(file_count, total_bytes)`` for stored blobs."""
        if not self.cache_dir.is_dir():
            return 0, 0
        count = 0
        size = 0
        for path in self.cache_dir.glob(f"{BLOB_PREFIX}*{BLOB_SUFFIX}"):
            if path.is_file():
                count += 1
                size += path.stat().st_size
        return count, size

"""
Tests for custom exceptions module.
"""

from __future__ import annotations

import pytest

from imagecache.exceptions import (
    BlobStorageError,
    ConfigurationError,
    FetchError,
    ImageCacheError,
    ImageProcessingError,
    InvalidProxyRequestError,
)


@pytest.mark.parametrize(
    "exc",
    [
        InvalidProxyRequestError("hash_mismatch"),
        FetchError("http://x/a.png", "timeout"),
        ImageProcessingError(),
        BlobStorageError("/tmp/x"),
        ConfigurationError("bad"),
    ],
)
def test_hierarchy(exc):
    assert isinstance(exc, ImageCacheError)
    assert exc.message


def test_invalid_proxy_request_keeps_reason():
    exc = InvalidProxyRequestError("bad_referrer")
    assert exc.reason == "bad_referrer"
    assert str(exc) == "Invalid proxy request"


def test_fetch_error_message():
    exc = FetchError("http://x/a.png", "status_404")
    assert exc.url == "http://x/a.png"
    assert exc.reason == "status_404"
    assert "status_404" in str(exc)


def test_blob_storage_error_wraps_original():
    original = OSError("disk full")
    exc = BlobStorageError("/cache/imagecache_x.img", original)
    assert exc.original_error is original
    assert "disk full" in str(exc)

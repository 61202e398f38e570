"""
Custom exceptions for the imagecache application.

This module defines domain-specific exceptions for error handling
throughout the application: proxy request validation, remote fetch
failures, image processing and blob storage errors.
"""

from __future__ import annotations


class ImageCacheError(Exception):
    """Base exception for all imagecache errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize ImageCacheError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        """
        self.message = message
        super().__init__(message)


class InvalidProxyRequestError(ImageCacheError):
    """
    Exception raised when a proxy request fails validation.

    The reason is kept for logging only; it is never sent to the client,
    which receives a generic empty rejection.

    Attributes
    ----------
    reason : str
        Machine-readable rejection reason (``"missing_params"``,
        ``"hash_mismatch"``, ``"missing_file"``, ``"bad_referrer"``).

    Examples
    --------
    >>> try:
    ...     proxy.validate(image_url, supplied_hash, referer)
    ... except InvalidProxyRequestError as e:
    ...     logger.debug("Rejected proxy request: %s", e.reason)
    """

    def __init__(self, reason: str, message: str = "Invalid proxy request") -> None:
        """
        Initialize InvalidProxyRequestError.

        Parameters
        ----------
        reason : str
            Machine-readable rejection reason.
        message : str, optional
            Human-readable error message (default: "Invalid proxy request").
        """
        self.reason = reason
        super().__init__(message)


class FetchError(ImageCacheError):
    """
    Exception raised when a remote image cannot be downloaded.

    Covers network errors, timeouts, non-200 responses, non-image bodies
    and oversized downloads. The fetch pipeline converts it into a failed
    ``FetchResult`` so it never reaches the HTTP boundary.

    Attributes
    ----------
    url : str
        The remote URL that was being fetched.
    reason : str
        Short failure reason (e.g. ``"timeout"``, ``"status_404"``).
    """

    def __init__(self, url: str, reason: str) -> None:
        """
        Initialize FetchError.

        Parameters
        ----------
        url : str
            The remote URL that was being fetched.
        reason : str
            Short failure reason.
        """
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class ImageProcessingError(ImageCacheError):
    """Exception raised when downloaded bytes cannot be decoded or resized."""

    def __init__(self, message: str = "Image could not be processed") -> None:
        super().__init__(message)


class BlobStorageError(ImageCacheError):
    """
    Exception raised when a cache blob cannot be written.

    Attributes
    ----------
    path : str
        The blob path involved.
    original_error : Exception | None
        The underlying ``OSError``, if any.
    """

    def __init__(
        self,
        path: str,
        original_error: Exception | None = None,
    ) -> None:
        self.path = path
        self.original_error = original_error
        super().__init__(f"Failed to write cache blob {path}: {original_error}")


class ConfigurationError(ImageCacheError):
    """Exception raised for invalid persisted or environment configuration."""

    pass


__all__ = [
    "ImageCacheError",
    "InvalidProxyRequestError",
    "FetchError",
    "ImageProcessingError",
    "BlobStorageError",
    "ConfigurationError",
]

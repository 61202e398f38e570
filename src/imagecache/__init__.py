"""
imagecache - HTTP image-caching proxy.

Fetches remote images referenced by site content, stores a downscaled local
copy keyed by an HMAC of the source URL, and serves that copy from the site's
own origin so secure pages never embed insecure images.
"""

from __future__ import annotations

__version__ = "0.3.0"
__author__ = "imagecache"
__email__ = "noreply@imagecache.dev"
__license__ = "AGPL-3.0-or-later"

__all__ = ["__version__", "__author__", "__email__", "__license__"]

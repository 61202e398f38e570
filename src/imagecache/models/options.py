"""
Persisted image cache options.

These mirror the administrator-facing settings stored in the ``settings``
table under the ``image_cache_*`` variables.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Persisted configuration keys
SALT_KEY = "imagecache_sauce"
ENABLED_KEY = "image_cache_enabled"
CACHE_ALL_KEY = "image_cache_all"
KEEP_DAYS_KEY = "image_cache_keep_days"
NOLINK_KEY = "image_cache_nolink"


class ImageCacheOptions(BaseModel):
    """Administrator settings for the image cache."""

    model_config = ConfigDict(validate_assignment=True)

    enabled: bool = Field(default=False, description="Rewrite embedded images through the proxy")
    cache_all: bool = Field(
        default=False, description="Cache every remote image, not only insecure ones"
    )
    nolink: bool = Field(
        default=False, description="Suppress the inline 'view original' warning link"
    )
    keep_days: int = Field(
        default=0, ge=0, description="Retention window in days, 0 keeps forever"
    )

    def to_settings(self) -> dict[str, str]:
        """Serialize to persisted ``variable -> value`` pairs."""
        return {
            ENABLED_KEY: "1" if self.enabled else "0",
            CACHE_ALL_KEY: "1" if self.cache_all else "0",
            NOLINK_KEY: "1" if self.nolink else "0",
            KEEP_DAYS_KEY: str(self.keep_days),
        }

    @classmethod
    def from_settings(cls, values: dict[str, str]) -> "ImageCacheOptions":
        """Build options from persisted values, tolerating missing keys."""

        def _flag(key: str) -> bool:
            return values.get(key, "").strip() not in ("", "0", "false", "False")

        raw_days = values.get(KEEP_DAYS_KEY, "").strip()
        try:
            keep_days = max(int(raw_days), 0) if raw_days else 0
        except ValueError:
            keep_days = 0

        return cls(
            enabled=_flag(ENABLED_KEY),
            cache_all=_flag(CACHE_ALL_KEY),
            nolink=_flag(NOLINK_KEY),
            keep_days=keep_days,
        )

"""
Configuration management module for imagecache.

Handles application settings, environment variables, database configuration
and logging setup.
"""

from __future__ import annotations

__all__: list[str] = []

"""
CLI interface module for imagecache.

Provides Typer-based command-line interface for cache maintenance, settings,
scheduled tasks, the database schema and the API server.
"""

from __future__ import annotations

__all__: list[str] = []

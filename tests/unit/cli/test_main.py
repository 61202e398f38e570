"""
Tests for CLI main functionality.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from imagecache import __version__
from imagecache.cli.main import app


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


def test_cli_version(runner):
    """Test version flag."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"imagecache v{__version__}" in result.stdout


def test_cli_help(runner):
    """Test help command."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Caching image proxy" in result.stdout
    for group in ("cache", "tasks", "db", "api"):
        assert group in result.stdout


def test_cli_version_command(runner):
    """Test explicit version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "imagecache" in result.stdout
    assert "Version" in result.stdout


def test_cli_version_shows_configuration(runner):
    """The version panel reports the site and cache directory in use."""
    with patch("imagecache.cli.main.settings") as mock_settings, patch(
        "imagecache.cli.main.configure_logging"
    ):
        mock_settings.is_postgresql = False
        mock_settings.is_sqlite = True
        mock_settings.site_url = "https://forum.test"
        mock_settings.cache_dir = "/var/cache/imagecache"
        result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "https://forum.test" in result.stdout
    assert "/var/cache/imagecache" in result.stdout
    assert "SQLite" in result.stdout


def test_cli_log_level_override(runner):
    """The --log-level option reaches logging configuration."""
    with patch("imagecache.cli.main.configure_logging") as mock_configure:
        result = runner.invoke(app, ["--log-level", "DEBUG", "version"])

    assert result.exit_code == 0
    assert mock_configure.call_args.args[0] == "DEBUG"


def test_cli_invalid_subcommand(runner):
    """Unknown commands fail."""
    result = runner.invoke(app, ["invalid-command"])
    assert result.exit_code != 0

"""
Unit tests for the tasks, db and api CLI commands.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from imagecache.cli.commands.api import api_app
from imagecache.cli.commands.db import db_app
from imagecache.cli.commands.tasks import tasks_app
from imagecache.config.settings import settings
from imagecache.services.scheduled_tasks import TaskRunSummary

runner = CliRunner()


@pytest.fixture
def mock_task_runner():
    """Patch the container's task runner and the database session."""

    async def mock_get_session(*args, **kwargs):
        yield AsyncMock()

    container = MagicMock()
    container.task_runner.run_due = AsyncMock(return_value=TaskRunSummary())
    with patch("imagecache.cli.commands.tasks.container", container), patch(
        "imagecache.cli.commands.tasks.db_manager.get_session",
        side_effect=mock_get_session,
    ):
        yield container.task_runner


class TestTasksRunCommand:
    """Tests for `tasks run`."""

    def test_nothing_due(self, mock_task_runner):
        result = runner.invoke(tasks_app, ["run"])

        assert result.exit_code == 0
        assert "No tasks due" in result.output

    def test_ran(self, mock_task_runner):
        mock_task_runner.run_due.return_value = TaskRunSummary(ran=["remove_old_image_cache"])

        result = runner.invoke(tasks_app, ["run"])

        assert result.exit_code == 0
        assert "remove_old_image_cache" in result.output

    def test_failure_exit_code(self, mock_task_runner):
        mock_task_runner.run_due.return_value = TaskRunSummary(
            failed=["remove_old_image_cache"], skipped=["other"]
        )

        result = runner.invoke(tasks_app, ["run"])

        assert result.exit_code == 1
        assert "other (no handler)" in result.output


class TestDbInitCommand:
    """Tests for `db init`."""

    def test_init_creates_tables(self):
        with patch("imagecache.cli.commands.db.db_manager") as db_manager:
            db_manager.create_tables = AsyncMock()
            db_manager.close = AsyncMock()

            result = runner.invoke(db_app, ["init"])

        assert result.exit_code == 0
        assert "Database tables ready" in result.output
        db_manager.create_tables.assert_awaited_once()
        db_manager.close.assert_awaited_once()


class TestApiStartCommand:
    """Tests for `api start`."""

    def test_defaults(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(api_app, ["start", "--port", "9000"])

        assert result.exit_code == 0
        mock_run.assert_called_once_with(
            "imagecache.api.main:app",
            host="127.0.0.1",
            port=9000,
            log_level=settings.log_level.lower(),
            proxy_headers=True,
            forwarded_allow_ips="127.0.0.1",
            workers=1,
        )

    def test_workers_and_trusted_proxies(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(
                api_app,
                ["start", "--workers", "4", "--forwarded-allow-ips", "10.0.0.1,10.0.0.2"],
            )

        assert result.exit_code == 0
        kwargs = mock_run.call_args.kwargs
        assert kwargs["workers"] == 4
        assert kwargs["forwarded_allow_ips"] == "10.0.0.1,10.0.0.2"

    def test_reload_runs_single_process(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(api_app, ["start", "--reload", "--workers", "4"])

        assert result.exit_code == 0
        kwargs = mock_run.call_args.kwargs
        assert kwargs["reload"] is True
        assert "workers" not in kwargs

    def test_rejects_zero_workers(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(api_app, ["start", "--workers", "0"])

        assert result.exit_code != 0
        mock_run.assert_not_called()

"""Tests for the repo management commands and the top-level app."""

import asyncio
import json

import pytest
from typer.testing import CliRunner

from pr_digest import __version__
from pr_digest.cli.app import app
from pr_digest.db import dispose_engine

runner = CliRunner()


@pytest.fixture
def database(tmp_path, monkeypatch):
    """Point the CLI at a fresh SQLite file."""
    db_path = tmp_path / "digest.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    asyncio.run(dispose_engine())
    yield db_path
    asyncio.run(dispose_engine())


def _list_json() -> list[dict]:
    result = runner.invoke(app, ["repo", "list", "--format", "json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestApp:
    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_init_creates_database(self, database):
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0, result.output
        assert database.exists()


class TestRepoCommands:
    """Add, list, enable, disable and remove tracked repositories."""

    def test_add_and_list(self, database):
        result = runner.invoke(app, ["repo", "add", "prebid/prebid-server", "--since", "2024-01-01"])

        assert result.exit_code == 0, result.output
        assert "Tracking" in result.stdout

        repos = _list_json()
        assert len(repos) == 1
        assert repos[0]["name"] == "prebid/prebid-server"
        assert repos[0]["active"] is True
        assert repos[0]["sync_since"].startswith("2024-01-01T00:00:00")
        assert repos[0]["last_sync_at"] is None

    def test_add_twice(self, database):
        runner.invoke(app, ["repo", "add", "prebid/prebid-server"])

        result = runner.invoke(app, ["repo", "add", "prebid/prebid-server"])

        assert result.exit_code == 0
        assert "Already tracked" in result.stdout
        assert len(_list_json()) == 1

    def test_disable_and_enable(self, database):
        runner.invoke(app, ["repo", "add", "prebid/Prebid.js"])

        assert runner.invoke(app, ["repo", "disable", "prebid/Prebid.js"]).exit_code == 0
        assert _list_json()[0]["active"] is False

        assert runner.invoke(app, ["repo", "enable", "prebid/Prebid.js"]).exit_code == 0
        assert _list_json()[0]["active"] is True

    def test_remove(self, database):
        runner.invoke(app, ["repo", "add", "prebid/Prebid.js"])

        result = runner.invoke(app, ["repo", "remove", "prebid/Prebid.js"])

        assert result.exit_code == 0
        assert _list_json() == []

    def test_remove_untracked_fails(self, database):
        result = runner.invoke(app, ["repo", "remove", "prebid/Prebid.js"])

        assert result.exit_code == 1
        assert "not being tracked" in result.stdout

    def test_invalid_repository(self, database):
        result = runner.invoke(app, ["repo", "add", "prebid"])

        assert result.exit_code == 1
        assert "owner/name" in result.stdout

    def test_invalid_since(self, database):
        result = runner.invoke(app, ["repo", "add", "prebid/Prebid.js", "--since", "last week"])

        assert result.exit_code == 1
        assert "Invalid date format" in result.stdout

    def test_empty_list_text(self, database):
        result = runner.invoke(app, ["repo", "list"])

        assert result.exit_code == 0
        assert "No repositories tracked" in result.stdout

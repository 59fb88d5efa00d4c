"""Tests for CLI commands."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from savrsync.client.cache import Article, LocalArticleCache
from savrsync.client.cli import cli
from savrsync.core.types import ArticleState

BASE = "http://test/alice/savr"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the CLI at a temporary configuration directory."""
    config = tmp_path / ".savrsync"
    with patch("savrsync.client.cli.config.get_config_dir", return_value=config):
        yield config


@pytest.fixture
def configured(config_dir: Path) -> Path:
    """Write an account configuration."""
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.json").write_text(json.dumps({
        "server_url": "http://test/alice",
        "token": "token123",
        "scope": "savr",
    }))
    return config_dir


def seed_cache(config_dir: Path, *articles: Article) -> None:
    """Write articles into the CLI's cache database."""
    cache = LocalArticleCache(config_dir / "articles.db")
    try:
        for article in articles:
            asyncio.run(cache.put(article))
    finally:
        cache.close()


class TestConfigureCommand:
    """Tests for 'savrsync configure'."""

    def test_configure_saves_account(self, runner: CliRunner, config_dir: Path) -> None:
        """Should write the server, token and scope."""
        result = runner.invoke(cli, [
            "configure",
            "--server", "https://storage.example.com/alice/",
            "--token", "secret",
            "--user-address", "alice@example.com",
        ])

        assert result.exit_code == 0
        config = json.loads((config_dir / "config.json").read_text())
        assert config == {
            "server_url": "https://storage.example.com/alice",
            "token": "secret",
            "scope": "savr",
            "user_address": "alice@example.com",
        }
        assert "https://storage.example.com/alice/savr/" in result.output

    def test_configure_rejects_bad_url(self, runner: CliRunner, config_dir: Path) -> None:
        """Should require an http(s) URL."""
        result = runner.invoke(cli, ["configure", "--server", "storage.example.com", "--token", "t"])
        assert result.exit_code == 1
        assert not (config_dir / "config.json").exists()

    def test_configure_warns_on_plain_http(self, runner: CliRunner, config_dir: Path) -> None:
        """Should warn that http:// is unencrypted."""
        result = runner.invoke(cli, ["configure", "--server", "http://localhost:8000/a", "--token", "t"])
        assert result.exit_code == 0
        assert "not encrypted" in result.output

    def test_configure_asks_before_replacing(self, runner: CliRunner, configured: Path) -> None:
        """Switching accounts needs confirmation."""
        result = runner.invoke(
            cli,
            ["configure", "--server", "https://other.example.com/bob", "--token", "t"],
            input="n\n",
        )
        assert result.exit_code == 0
        config = json.loads((configured / "config.json").read_text())
        assert config["server_url"] == "http://test/alice"


class TestStatusAndList:
    """Tests for 'savrsync status' and 'savrsync list'."""

    def test_status_unconfigured(self, runner: CliRunner, config_dir: Path) -> None:
        """Should report a missing account and an empty cache."""
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "not configured" in result.output
        assert "empty" in result.output

    def test_status_counts_states(self, runner: CliRunner, configured: Path) -> None:
        """Should count cached articles per state."""
        seed_cache(
            configured,
            Article(slug="a", state=ArticleState.READING),
            Article(slug="b"),
            Article(slug="c"),
        )
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "3 articles" in result.output
        assert "unread" in result.output
        assert f"{BASE}/" in result.output

    def test_list(self, runner: CliRunner, configured: Path) -> None:
        """Should list cached articles newest first."""
        seed_cache(
            configured,
            Article(slug="older", title="Older", ingest_date="2024-01-01"),
            Article(slug="newer", title="Newer", ingest_date="2025-01-01"),
        )
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert result.output.index("newer") < result.output.index("older")

    def test_list_by_state(self, runner: CliRunner, configured: Path) -> None:
        """Should filter by state."""
        seed_cache(
            configured,
            Article(slug="a", state=ArticleState.ARCHIVED),
            Article(slug="b"),
        )
        result = runner.invoke(cli, ["list", "--state", "archived"])
        assert result.exit_code == 0
        assert "a  [archived]" in result.output
        assert "b  [" not in result.output

    def test_list_without_cache(self, runner: CliRunner, config_dir: Path) -> None:
        """Should suggest syncing first."""
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "savrsync sync" in result.output


class TestSyncCommand:
    """Tests for 'savrsync sync'."""

    def test_sync_requires_account(self, runner: CliRunner, config_dir: Path) -> None:
        """Should fail without a configured account."""
        result = runner.invoke(cli, ["sync", "--once"])
        assert result.exit_code == 1
        assert "configure" in result.output

    def test_sync_once(self, runner: CliRunner, configured: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should fetch every listed article into the cache."""
        httpx_mock.add_response(url=f"{BASE}/saves/", json={"items": {"a/": {"ETag": "1"}}})
        httpx_mock.add_response(
            url=f"{BASE}/saves/a/article.json",
            json={"slug": "a", "title": "A", "ingestDate": "2025-01-01"},
        )

        result = runner.invoke(cli, ["sync", "--once", "--no-notify"])

        assert result.exit_code == 0, result.output
        assert "1 added" in result.output
        cache = LocalArticleCache(configured / "articles.db")
        try:
            assert asyncio.run(cache.count()) == 1
        finally:
            cache.close()


class TestRemoteCommands:
    """Tests for 'savrsync usage', 'delete' and 'wipe-remote'."""

    def test_usage_for_article(self, runner: CliRunner, configured: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should report the size of one article."""
        httpx_mock.add_response(url=f"{BASE}/saves/a/", json={"items": {"article.json": {}}})
        httpx_mock.add_response(url=f"{BASE}/saves/a/article.json", text="x" * 1536)

        result = runner.invoke(cli, ["usage", "a"])

        assert result.exit_code == 0, result.output
        assert "a: 1.5 KB in 1 files" in result.output

    def test_delete(self, runner: CliRunner, configured: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should remove the article's files and cache entry."""
        seed_cache(configured, Article(slug="a"))
        httpx_mock.add_response(url=f"{BASE}/saves/a/", json={"items": {"article.json": {}}})
        httpx_mock.add_response(method="DELETE", url=f"{BASE}/saves/a/article.json")

        result = runner.invoke(cli, ["delete", "a", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Deleted 1 files" in result.output

    def test_delete_declined(self, runner: CliRunner, configured: Path) -> None:
        """Declining the prompt deletes nothing."""
        result = runner.invoke(cli, ["delete", "a"], input="n\n")
        assert result.exit_code == 0
        assert "Deleted" not in result.output

    def test_wipe_remote(self, runner: CliRunner, configured: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should delete every file in the scope."""
        httpx_mock.add_response(url=f"{BASE}/", json={"items": {"settings.json": {}}})
        httpx_mock.add_response(method="DELETE", url=f"{BASE}/settings.json")

        result = runner.invoke(cli, ["wipe-remote", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Deleted 1 files" in result.output


class TestSetStateCommand:
    """Tests for 'savrsync set-state'."""

    def test_archive_cached_article(self, runner: CliRunner, configured: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should write the new state remotely and into the cache."""
        seed_cache(configured, Article(slug="a", title="A"))
        httpx_mock.add_response(method="PUT", url=f"{BASE}/saves/a/article.json")

        result = runner.invoke(cli, ["set-state", "a", "archived"])

        assert result.exit_code == 0, result.output
        assert "a is now archived" in result.output
        body = json.loads(httpx_mock.get_request(method="PUT").content)
        assert body["slug"] == "a"
        assert body["state"] == "archived"

        cache = LocalArticleCache(configured / "articles.db")
        try:
            article = asyncio.run(cache.get("a"))
        finally:
            cache.close()
        assert article is not None
        assert article.state == ArticleState.ARCHIVED

    def test_uncached_article_fetched_first(self, runner: CliRunner, configured: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """An article missing from the cache is read from remote storage."""
        httpx_mock.add_response(
            method="GET",
            url=f"{BASE}/saves/b/article.json",
            json={"slug": "b", "title": "B", "state": "unread", "tags": ["x"]},
        )
        httpx_mock.add_response(method="PUT", url=f"{BASE}/saves/b/article.json")

        result = runner.invoke(cli, ["set-state", "b", "finished"])

        assert result.exit_code == 0, result.output
        body = json.loads(httpx_mock.get_request(method="PUT").content)
        assert body["state"] == "finished"
        assert body["tags"] == ["x"]

    def test_unknown_article(self, runner: CliRunner, configured: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should fail when the article exists nowhere."""
        httpx_mock.add_response(url=f"{BASE}/saves/zzz/article.json", status_code=404)

        result = runner.invoke(cli, ["set-state", "zzz", "archived"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_rejects_internal_states(self, runner: CliRunner, configured: Path) -> None:
        """Only reader-facing states can be set."""
        result = runner.invoke(cli, ["set-state", "a", "ingesting"])
        assert result.exit_code == 2

    def test_requires_account(self, runner: CliRunner, config_dir: Path) -> None:
        """Should fail without a configured account."""
        result = runner.invoke(cli, ["set-state", "a", "archived"])
        assert result.exit_code == 1
        assert "No account configured" in result.output

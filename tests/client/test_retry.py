"""Tests for bounded article fetch retry."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from savrsync.client.api import RemoteFile, RemoteUnavailableError
from savrsync.client.sync.retry import fetch_article
from savrsync.client.sync.types import ArticleFetchError

PATH = "saves/a/article.json"
VALID = '{"slug": "a", "title": "A"}'


class ScriptedRemote:
    """Remote that answers successive get_file calls from a script."""

    def __init__(self, *bodies: str | None) -> None:
        self._bodies = list(bodies)
        self.calls = 0

    async def get_file(self, path: str, allow_network: bool = True) -> RemoteFile | None:
        self.calls += 1
        body = self._bodies.pop(0) if self._bodies else None
        if body is None:
            return None
        return RemoteFile(path=path, data=body, content_type="application/json")


class TestFetchArticle:
    """Tests for fetch_article()."""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self) -> None:
        """A complete body is parsed without retrying."""
        remote = ScriptedRemote(VALID)
        article = await fetch_article(remote, PATH, delay=0)
        assert article.slug == "a"
        assert remote.calls == 1

    @pytest.mark.asyncio
    async def test_retries_missing_then_succeeds(self) -> None:
        """A missing file is retried until it materialises."""
        remote = ScriptedRemote(None, None, VALID)
        article = await fetch_article(remote, PATH, delay=0)
        assert article.title == "A"
        assert remote.calls == 3

    @pytest.mark.asyncio
    async def test_retries_empty_and_partial_bodies(self) -> None:
        """Empty and truncated bodies are retried."""
        remote = ScriptedRemote("", '{"slug": "a", "ti', VALID)
        article = await fetch_article(remote, PATH, delay=0)
        assert article.slug == "a"
        assert remote.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_raises(self) -> None:
        """Five failed attempts raise ArticleFetchError."""
        remote = ScriptedRemote()
        with pytest.raises(ArticleFetchError) as exc_info:
            await fetch_article(remote, PATH, delay=0)

        assert exc_info.value.path == PATH
        assert exc_info.value.attempts == 5
        assert remote.calls == 5

    @pytest.mark.asyncio
    async def test_invalid_article_is_retried(self) -> None:
        """A payload with a bad slug counts as a failed attempt."""
        remote = ScriptedRemote('{"slug": ""}', '{"slug": ""}')
        with pytest.raises(ArticleFetchError, match="parse failure"):
            await fetch_article(remote, PATH, attempts=2, delay=0)

    @pytest.mark.asyncio
    async def test_fixed_delay_between_attempts(self) -> None:
        """Sleeps the fixed delay between attempts, not after the last one."""
        remote = ScriptedRemote()
        with patch("savrsync.client.sync.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            with pytest.raises(ArticleFetchError):
                await fetch_article(remote, PATH)

        assert mock_sleep.await_count == 4
        for call in mock_sleep.await_args_list:
            assert call.args == (0.5,)

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self) -> None:
        """Transport errors are not retried."""
        remote = AsyncMock()
        remote.get_file.side_effect = RemoteUnavailableError("down")
        with pytest.raises(RemoteUnavailableError):
            await fetch_article(remote, PATH, delay=0)
        assert remote.get_file.await_count == 1

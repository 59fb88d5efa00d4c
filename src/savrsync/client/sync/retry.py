"""Bounded retry for article fetches.

A fetch issued right after a change notification can see an empty or
partial body while the remote replica is still materialising the file.
Such fetches are retried a fixed number of times with a fixed delay.

This module provides:
- fetch_article: Fetch and parse one article with bounded retry
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol

from savrsync.client.cache import Article
from savrsync.client.sync.types import ArticleFetchError
from savrsync.core.config import DEFAULT_FETCH_ATTEMPTS, DEFAULT_FETCH_DELAY

if TYPE_CHECKING:
    from savrsync.client.api import RemoteFile

logger = logging.getLogger(__name__)


class FileSource(Protocol):
    """Anything that can fetch a file body by path."""

    async def get_file(self, path: str, allow_network: bool = True) -> RemoteFile | None:
        ...


async def fetch_article(
    remote: FileSource,
    path: str,
    attempts: int = DEFAULT_FETCH_ATTEMPTS,
    delay: float = DEFAULT_FETCH_DELAY,
) -> Article:
    """Fetch and parse an article, retrying incomplete payloads.

    Retries when the file is missing, its body is empty, or it does not
    parse as an article. Transport errors are not retried here.

    Args:
        remote: Storage client to read from.
        path: Article metadata path.
        attempts: Maximum number of attempts.
        delay: Seconds to wait between attempts.

    Returns:
        The parsed article.

    Raises:
        ArticleFetchError: If every attempt failed.
    """
    reason = "no attempts made"

    for attempt in range(1, attempts + 1):
        remote_file = await remote.get_file(path)

        if remote_file is None or not remote_file.data:
            reason = "empty or missing payload"
        else:
            try:
                return Article.from_json(remote_file.data)
            except ValueError as e:
                # json.JSONDecodeError is a ValueError
                reason = f"parse failure: {e}"

        if attempt < attempts:
            logger.debug(
                "Attempt %d/%d for %s failed (%s), retrying in %.1fs",
                attempt, attempts, path, reason, delay,
            )
            await asyncio.sleep(delay)

    raise ArticleFetchError(path, attempts, reason)

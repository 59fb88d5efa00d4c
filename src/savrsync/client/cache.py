"""Local article cache for the sync client.

This module provides:
- Article: One saved article, as stored in ``<root>/<slug>/article.json``
- LocalArticleCache: SQLite-backed keyed article store

Architecture:
    The cache is a read-optimised copy of the remote catalog. It is never
    the source of truth: the reconciliation engine may clear it wholesale
    and rebuild it from remote storage at any time.

    SQLite calls are blocking, so every public method is a coroutine that
    runs the query in the loop's default executor.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from savrsync.core.types import ArticleState

logger = logging.getLogger(__name__)

T = TypeVar("T")

# JSON key -> attribute name for the fields the client understands.
_FIELD_MAP = {
    "slug": "slug",
    "title": "title",
    "url": "url",
    "state": "state",
    "publication": "publication",
    "author": "author",
    "publishedDate": "published_date",
    "ingestDate": "ingest_date",
    "ingestPlatform": "ingest_platform",
    "ingestSource": "ingest_source",
    "mimeType": "mime_type",
    "readTimeMinutes": "read_time_minutes",
    "progress": "progress",
}

# Attributes that accept null; nulls for the others fall back to defaults.
_NULLABLE = frozenset({"url", "publication", "author", "published_date", "read_time_minutes"})


@dataclass
class Article:
    """A saved article.

    Attributes:
        slug: Unique URL-safe identifier, also the remote directory name.
        title: Display title.
        url: Source URL, if the article came from the web.
        state: Lifecycle state.
        publication: Publication name.
        author: Author name.
        published_date: Publication date as found in the source.
        ingest_date: ISO timestamp of when the article was saved.
        ingest_platform: Platform that saved the article.
        ingest_source: Tool that saved the article (bookmarklet, extension, ...).
        mime_type: MIME type of the saved content.
        read_time_minutes: Estimated reading time.
        progress: Reading progress percentage.
        extra: Keys this client does not interpret, kept for round-tripping.
    """

    slug: str
    title: str = ""
    url: str | None = None
    state: ArticleState = ArticleState.UNREAD
    publication: str | None = None
    author: str | None = None
    published_date: str | None = None
    ingest_date: str = ""
    ingest_platform: str = ""
    ingest_source: str = ""
    mime_type: str = "text/html"
    read_time_minutes: int | None = None
    progress: float = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Article:
        """Create from a decoded ``article.json`` payload.

        Raises:
            ValueError: If the slug is missing or malformed, or the state is unknown.
        """
        if not isinstance(data, dict):
            raise ValueError("Article payload must be a JSON object")
        slug = data.get("slug")
        if not isinstance(slug, str) or not slug or "/" in slug:
            raise ValueError(f"Invalid article slug: {slug!r}")

        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in data.items():
            attr = _FIELD_MAP.get(key)
            if attr is None:
                extra[key] = value
            elif value is not None or attr in _NULLABLE:
                kwargs[attr] = value

        kwargs["state"] = ArticleState(kwargs.get("state", ArticleState.UNREAD))
        return cls(extra=extra, **kwargs)

    @classmethod
    def from_json(cls, text: str) -> Article:
        """Parse an ``article.json`` document.

        Raises:
            ValueError: If the text is not valid JSON or not a valid article.
        """
        return cls.from_dict(json.loads(text))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the ``article.json`` shape."""
        data: dict[str, Any] = dict(self.extra)
        for key, attr in _FIELD_MAP.items():
            value = getattr(self, attr)
            data[key] = value.value if isinstance(value, ArticleState) else value
        return data

    def to_json(self) -> str:
        """Serialize to an ``article.json`` document."""
        return json.dumps(self.to_dict())


class CacheError(Exception):
    """A cache read or write failed."""


class LocalArticleCache:
    """SQLite-based keyed article store.

    Articles are stored as JSON documents keyed by slug, with the ingest date
    and state duplicated into indexed columns for listing.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the cache database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access from executor threads
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS articles (
                slug TEXT PRIMARY KEY,
                ingest_date TEXT NOT NULL,
                state TEXT NOT NULL,
                data TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_articles_ingest_date ON articles (ingest_date);
            CREATE INDEX IF NOT EXISTS idx_articles_state ON articles (state);
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    async def _run(self, func: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except sqlite3.Error as e:
            raise CacheError(str(e)) from e

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Article:
        return Article.from_json(row["data"])

    # === Article operations ===

    def _get(self, slug: str) -> Article | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM articles WHERE slug = ?", (slug,)
            ).fetchone()
        if row is None:
            return None
        return self._from_row(row)

    async def get(self, slug: str) -> Article | None:
        """Get an article by slug.

        Returns:
            Article if cached, None otherwise.
        """
        return await self._run(lambda: self._get(slug))

    def _put(self, article: Article) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO articles (slug, ingest_date, state, data)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(slug) DO UPDATE SET
                    ingest_date = excluded.ingest_date,
                    state = excluded.state,
                    data = excluded.data
                """,
                (article.slug, article.ingest_date, article.state.value, article.to_json()),
            )

    async def put(self, article: Article) -> None:
        """Insert or replace an article."""
        await self._run(lambda: self._put(article))

    def _delete(self, slug: str) -> bool:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM articles WHERE slug = ?", (slug,))
        return cursor.rowcount > 0

    async def delete(self, slug: str) -> bool:
        """Delete an article by slug.

        Returns:
            True if a row was removed, False if the slug was not cached.
        """
        return await self._run(lambda: self._delete(slug))

    def _count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM articles").fetchone()
        return int(row[0])

    async def count(self) -> int:
        """Count cached articles."""
        return await self._run(self._count)

    def _to_array(self, state: ArticleState | None = None) -> list[Article]:
        with self._lock:
            if state is None:
                rows = self._conn.execute(
                    "SELECT data FROM articles ORDER BY ingest_date DESC"
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT data FROM articles WHERE state = ? ORDER BY ingest_date DESC",
                    (state.value,),
                ).fetchall()
        return [self._from_row(row) for row in rows]

    async def to_array(self) -> list[Article]:
        """List all cached articles, newest first."""
        return await self._run(self._to_array)

    async def list_by_state(self, state: ArticleState) -> list[Article]:
        """List cached articles in one lifecycle state, newest first."""
        return await self._run(lambda: self._to_array(state))

    def _clear(self) -> int:
        with self._lock:
            cursor = self._conn.execute("DELETE FROM articles")
        return cursor.rowcount

    async def clear(self) -> int:
        """Remove every cached article.

        Returns:
            Number of articles removed.
        """
        removed = await self._run(self._clear)
        logger.debug("Cleared %d cached articles", removed)
        return removed

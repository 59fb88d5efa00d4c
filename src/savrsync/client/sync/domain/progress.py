"""Progress denominator rules."""

from __future__ import annotations


def is_initial_sync(article_count: int) -> bool:
    """A sync is initial when the cache holds nothing yet."""
    return article_count == 0


def calculate_progress_total(is_initial: bool, listing_count: int, db_count: int) -> int:
    """Pick the progress total for a connection.

    An initial sync counts the remote listing so progress advances as
    articles arrive. Later syncs count the cache, which ignores remote
    directories that never resolve to an article.
    """
    return listing_count if is_initial else db_count

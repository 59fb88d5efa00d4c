"""Set differences between the remote listing and the local cache.

Remote storage is authoritative for existence: anything listed remotely
must be cached, anything cached must be listed remotely.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING

from savrsync.client.sync.domain.paths import article_path
from savrsync.core.config import DEFAULT_CATALOG_ROOT

if TYPE_CHECKING:
    from savrsync.client.cache import Article


def missing_locally(
    remote_slugs: Iterable[str],
    local_articles: Iterable[Article],
    processed: Collection[str],
    root: str = DEFAULT_CATALOG_ROOT,
) -> list[str]:
    """Find remote articles to fetch.

    Args:
        remote_slugs: Slugs from the remote listing
        local_articles: Articles currently cached
        processed: Article paths already handled on this connection
        root: Catalog root used to build canonical paths

    Returns:
        Slugs listed remotely, not cached, and not yet processed.
    """
    local = {article.slug for article in local_articles}
    return [
        slug for slug in dict.fromkeys(remote_slugs)
        if slug not in local and article_path(slug, root) not in processed
    ]


def missing_remotely(
    local_articles: Iterable[Article],
    remote_slugs: Iterable[str],
) -> list[str]:
    """Find cached articles whose remote directory is gone.

    Returns:
        Slugs cached locally but absent from the remote listing.
    """
    remote = set(remote_slugs)
    return [article.slug for article in local_articles if article.slug not in remote]

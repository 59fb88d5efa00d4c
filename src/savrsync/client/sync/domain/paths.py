"""Canonical article paths.

Every article lives at ``<catalog-root>/<slug>/article.json``; the existence
of the ``<slug>/`` directory is what "the article exists remotely" means.
"""

from __future__ import annotations

from savrsync.core.config import DEFAULT_CATALOG_ROOT

ARTICLE_FILENAME = "article.json"


def article_dir(slug: str, root: str = DEFAULT_CATALOG_ROOT) -> str:
    """Get the directory path of an article, with a trailing slash."""
    return f"{root}/{slug}/"


def article_path(slug: str, root: str = DEFAULT_CATALOG_ROOT) -> str:
    """Get the metadata path of an article."""
    return f"{root}/{slug}/{ARTICLE_FILENAME}"


def slug_from_path(path: str, root: str = DEFAULT_CATALOG_ROOT) -> str | None:
    """Extract the slug from an article metadata path.

    Args:
        path: Path like "saves/article-slug/article.json"
        root: Catalog root

    Returns:
        The slug, or None if the path is not an article metadata path.
    """
    prefix = f"{root}/"
    suffix = f"/{ARTICLE_FILENAME}"
    if not path.startswith(prefix) or not path.endswith(suffix):
        return None
    slug = path[len(prefix):-len(suffix)]
    if not slug or "/" in slug:
        return None
    return slug


def is_article_path(path: str, root: str = DEFAULT_CATALOG_ROOT) -> bool:
    """Check whether a path is an article metadata path."""
    return slug_from_path(path, root) is not None


def listing_slugs(listing: dict[str, bool]) -> list[str]:
    """Get article slugs from a catalog-root listing.

    Only directory entries count; their trailing slash is removed.
    """
    return [name.rstrip("/") for name in listing if name.endswith("/") and name != "/"]

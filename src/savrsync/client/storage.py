"""Storage utilities over the remote article tree.

This module provides:
- recursive_list / glob: Walk the remote tree and match paths
- save_article / save_resource: Write into the canonical article layout
- update_article_metadata: Write an edited article remotely and into the cache
- calculate_storage_usage / calculate_article_storage_size: Usage reports
- delete_article_storage / delete_all_remote_storage: Bulk deletes
- format_bytes: Human-readable sizes

Failures on individual files are collected and logged; a bulk operation
keeps going and reports what it could not do.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from savrsync.client.api import APIError
from savrsync.client.cache import CacheError
from savrsync.client.sync.domain import article_dir, article_path
from savrsync.core.config import DEFAULT_CATALOG_ROOT

if TYPE_CHECKING:
    from savrsync.client.api import RemoteStorageClient
    from savrsync.client.cache import Article, LocalArticleCache

logger = logging.getLogger(__name__)


@dataclass
class StorageUsage:
    """Size of a set of remote files."""

    size: int = 0
    files: list[tuple[str, int]] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        """Get the number of files measured."""
        return len(self.files)


@dataclass
class DeletionResult:
    """Result of a bulk delete."""

    deleted_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if every delete succeeded."""
        return not self.errors


async def recursive_list(client: RemoteStorageClient, path: str = "") -> list[str]:
    """List every file below a folder.

    Args:
        client: Storage client.
        path: Folder path ("" for the scope root, otherwise ending with "/").

    Returns:
        File paths relative to the scope.
    """
    files: list[str] = []
    listing = await client.get_listing(path)
    for name, is_folder in listing.items():
        if is_folder:
            files.extend(await recursive_list(client, path + name))
        else:
            files.append(path + name)
    return files


async def glob(client: RemoteStorageClient, pattern: str, base_path: str = "") -> list[str]:
    """List files matching a shell-style pattern.

    ``*`` does not cross folder boundaries, so ``saves/*/article.json``
    matches only article metadata files.
    """
    depth = pattern.count("/")
    return [
        path for path in await recursive_list(client, base_path)
        if path.count("/") == depth and fnmatch.fnmatchcase(path, pattern)
    ]


async def save_article(
    client: RemoteStorageClient,
    article: Article,
    root: str = DEFAULT_CATALOG_ROOT,
) -> str:
    """Write an article's metadata to its canonical path.

    Returns:
        The path written.
    """
    path = article_path(article.slug, root)
    await client.store_file("application/json", path, article.to_json())
    logger.info("Saved article %s", article.slug)
    return path


async def update_article_metadata(
    client: RemoteStorageClient,
    cache: LocalArticleCache,
    article: Article,
    root: str = DEFAULT_CATALOG_ROOT,
) -> str:
    """Store an edited article remotely, then upsert it into the cache.

    Used for lifecycle changes (archive, mark read, ...). The cache is only
    written once remote storage accepted the new metadata.

    Returns:
        The path written.

    Raises:
        APIError: If remote storage rejected the write.
    """
    path = await save_article(client, article, root)
    await cache.put(article)
    logger.info("Updated article %s (%s)", article.slug, article.state.value)
    return path


async def save_resource(
    client: RemoteStorageClient,
    slug: str,
    local_path: str,
    content: str | bytes,
    mime_type: str,
    root: str = DEFAULT_CATALOG_ROOT,
) -> str:
    """Write a resource (image, stylesheet, ...) next to an article.

    Returns:
        The resource path relative to the article directory.
    """
    full_path = f"{article_dir(slug, root)}resources/{local_path}"
    await client.store_file(mime_type, full_path, content)
    logger.debug("Saved resource %s", full_path)
    return local_path


async def _measure(client: RemoteStorageClient, paths: list[str]) -> StorageUsage:
    usage = StorageUsage()
    for path in paths:
        try:
            remote_file = await client.get_file(path)
        except APIError as e:
            logger.warning("Failed to get file size for %s: %s", path, e)
            continue
        if remote_file is not None and remote_file.size:
            size = remote_file.size
            usage.files.append((path, size))
            usage.size += size
    return usage


async def calculate_storage_usage(client: RemoteStorageClient) -> StorageUsage:
    """Measure every file in the scope."""
    return await _measure(client, await recursive_list(client, ""))


async def calculate_article_storage_size(
    client: RemoteStorageClient,
    slug: str,
    root: str = DEFAULT_CATALOG_ROOT,
) -> StorageUsage:
    """Measure every file of one article."""
    return await _measure(client, await recursive_list(client, article_dir(slug, root)))


async def _remove_all(client: RemoteStorageClient, paths: list[str], result: DeletionResult) -> None:
    for path in paths:
        try:
            await client.remove(path)
        except APIError as e:
            result.errors.append(f"Failed to delete {path}: {e}")
            logger.warning("Failed to delete file %s: %s", path, e)
            continue
        result.deleted_files.append(path)
        logger.debug("Deleted file %s", path)


async def delete_article_storage(
    client: RemoteStorageClient,
    cache: LocalArticleCache,
    slug: str,
    root: str = DEFAULT_CATALOG_ROOT,
) -> DeletionResult:
    """Delete an article from the cache and every one of its remote files."""
    result = DeletionResult()

    try:
        await cache.delete(slug)
    except CacheError as e:
        result.errors.append(f"Failed to delete from cache: {e}")
        logger.error("Failed to delete article %s from cache: %s", slug, e)

    try:
        files = await recursive_list(client, article_dir(slug, root))
    except APIError as e:
        result.errors.append(f"Failed to access remote storage: {e}")
        logger.warning("Failed to list files of %s: %s", slug, e)
        return result

    await _remove_all(client, files, result)
    logger.info("Deleted article %s (%d files)", slug, len(result.deleted_files))
    return result


async def delete_all_remote_storage(client: RemoteStorageClient) -> DeletionResult:
    """Delete every file in the scope."""
    result = DeletionResult()
    try:
        files = await recursive_list(client, "")
    except APIError as e:
        result.errors.append(f"Failed to access remote storage: {e}")
        logger.warning("Failed to list remote storage: %s", e)
        return result

    await _remove_all(client, files, result)
    logger.info("Deleted %d remote files", len(result.deleted_files))
    return result


def format_bytes(size: int) -> str:
    """Format a byte count, e.g. ``1536 -> "1.5 KB"``."""
    if size <= 0:
        return "0 B"
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{round(value, 1):g} {unit}"
        value /= 1024
    return f"{round(value, 1):g} GB"

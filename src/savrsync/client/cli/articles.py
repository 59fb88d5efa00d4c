"""Local article commands for the savrsync CLI.

Commands:
- status: Show the configured account and cache contents
- list: List cached articles
- delete: Delete an article locally and from remote storage
- set-state: Change an article's lifecycle state
"""

from __future__ import annotations

import asyncio
import dataclasses
import sys

import click

from savrsync.client.cli.config import get_cache_path, get_remote_config
from savrsync.core.types import ArticleState

STATE_CHOICES = [state.value for state in ArticleState]

# States a reader can move an article into
SETTABLE_STATES = [
    ArticleState.UNREAD.value,
    ArticleState.READING.value,
    ArticleState.FINISHED.value,
    ArticleState.ARCHIVED.value,
]


@click.command()
def status() -> None:
    """Show the configured account and cached articles."""
    from savrsync.client.cache import LocalArticleCache

    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Account: not configured")
    else:
        click.echo(f"Account: {remote_config.user_address or remote_config.server_url}")
        click.echo(f"Storage: {remote_config.storage_url}")

    cache_path = get_cache_path()
    if not cache_path.exists():
        click.echo("Cache:   empty")
        return

    cache = LocalArticleCache(cache_path)
    try:
        articles = asyncio.run(cache.to_array())
    finally:
        cache.close()

    click.echo(f"Cache:   {len(articles)} articles")
    counts: dict[str, int] = {}
    for article in articles:
        counts[article.state.value] = counts.get(article.state.value, 0) + 1
    for state_name in STATE_CHOICES:
        if counts.get(state_name):
            click.echo(f"  {state_name:<10} {counts[state_name]}")


@click.command(name="list")
@click.option(
    "--state",
    type=click.Choice(STATE_CHOICES),
    default=None,
    help="Only list articles in this state.",
)
def list_articles(state: str | None) -> None:
    """List cached articles, newest first."""
    from savrsync.client.cache import LocalArticleCache

    cache_path = get_cache_path()
    if not cache_path.exists():
        click.echo("No articles cached. Run 'savrsync sync' first.")
        return

    cache = LocalArticleCache(cache_path)
    try:
        if state:
            articles = asyncio.run(cache.list_by_state(ArticleState(state)))
        else:
            articles = asyncio.run(cache.to_array())
    finally:
        cache.close()

    if not articles:
        click.echo("No articles.")
        return
    for article in articles:
        click.echo(f"{article.slug}  [{article.state.value}]  {article.title}")


@click.command()
@click.argument("slug")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def delete(slug: str, yes: bool) -> None:
    """Delete an article from the cache and from remote storage."""
    from savrsync.client.api import RemoteStorageClient
    from savrsync.client.cache import LocalArticleCache
    from savrsync.client.storage import delete_article_storage

    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Error: No account configured. Run 'savrsync configure' first.", err=True)
        sys.exit(1)

    if not yes and not click.confirm(f"Delete '{slug}' and all of its files?"):
        sys.exit(0)

    get_cache_path().parent.mkdir(parents=True, exist_ok=True)
    cache = LocalArticleCache(get_cache_path())

    async def _delete():  # type: ignore[no-untyped-def]
        async with RemoteStorageClient(remote_config) as client:
            return await delete_article_storage(client, cache, slug)

    try:
        result = asyncio.run(_delete())
    finally:
        cache.close()

    click.echo(f"Deleted {len(result.deleted_files)} files")
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)
    if not result.success:
        sys.exit(1)


@click.command(name="set-state")
@click.argument("slug")
@click.argument("state", type=click.Choice(SETTABLE_STATES))
def set_state(slug: str, state: str) -> None:
    """Change an article's state (e.g. archive it) everywhere."""
    from savrsync.client.api import APIError, RemoteStorageClient
    from savrsync.client.cache import Article, LocalArticleCache
    from savrsync.client.storage import update_article_metadata
    from savrsync.client.sync.domain import article_path

    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Error: No account configured. Run 'savrsync configure' first.", err=True)
        sys.exit(1)

    get_cache_path().parent.mkdir(parents=True, exist_ok=True)
    cache = LocalArticleCache(get_cache_path())

    async def _update():  # type: ignore[no-untyped-def]
        async with RemoteStorageClient(remote_config) as client:
            article = await cache.get(slug)
            if article is None:
                remote_file = await client.get_file(article_path(slug))
                if remote_file is None:
                    return None
                article = Article.from_json(remote_file.data)
            article = dataclasses.replace(article, state=ArticleState(state))
            await update_article_metadata(client, cache, article)
            return article

    try:
        article = asyncio.run(_update())
    except (APIError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        cache.close()

    if article is None:
        click.echo(f"Error: Article '{slug}' not found", err=True)
        sys.exit(1)
    click.echo(f"{slug} is now {state}")

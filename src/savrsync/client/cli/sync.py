"""Sync command for the savrsync CLI.

Commands:
- sync: Keep the local article cache in step with remote storage
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

import click

from savrsync.client.cli.config import get_cache_path, get_remote_config

if TYPE_CHECKING:
    from savrsync.client.sync import OrchestratorStats, SyncProgress
    from savrsync.core.config import RemoteConfig, SyncSettings


def _echo_progress(progress: SyncProgress) -> None:
    if progress.is_syncing:
        click.echo(
            f"  Syncing ({progress.phase.value}): "
            f"{progress.processed_articles}/{progress.total_articles} "
            f"({progress.percent:.0f}%)"
        )
    else:
        click.echo(f"  Idle: {progress.processed_articles} articles")


async def _run_sync(
    remote_config: RemoteConfig,
    settings: SyncSettings,
    once: bool,
    notify: bool,
) -> OrchestratorStats:
    """Run the orchestrator until the stream stops, or for one pass."""
    from savrsync.client.api import RemoteStorageClient
    from savrsync.client.cache import LocalArticleCache
    from savrsync.client.notifications import send_notification
    from savrsync.client.sync import (
        ReconciliationOrchestrator,
        RemoteEvent,
        RemoteEventStream,
    )

    cache = LocalArticleCache(get_cache_path())
    try:
        async with RemoteStorageClient(remote_config) as client:
            orchestrator = ReconciliationOrchestrator(client, cache, settings)
            orchestrator.progress.subscribe(_echo_progress)
            if notify:
                orchestrator.notifications.subscribe(send_notification)
            else:
                orchestrator.notifications.subscribe(
                    lambda n: click.echo(f"{n.title}: {n.message}")
                )

            if once:
                await orchestrator.dispatch(RemoteEvent.connected(remote_config.user_address))
                await orchestrator.resync()
                return orchestrator.stats

            stream = RemoteEventStream(
                remote_config,
                orchestrator.dispatch,
                reconnect_delay=settings.reconnect_delay,
            )
            try:
                await stream.run()
            finally:
                await stream.stop()
            return orchestrator.stats
    finally:
        cache.close()


@click.command()
@click.option("--once", is_flag=True, help="Run a single full sync pass and exit.")
@click.option("--no-notify", is_flag=True, help="Print notifications instead of showing them.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def sync(once: bool, no_notify: bool, verbose: bool) -> None:
    """Synchronize the local article cache with remote storage.

    Listens for remote changes until interrupted. Use --once to fetch
    every article a single time and exit.
    """
    from savrsync.core.config import SyncSettings

    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Error: No account configured. Run 'savrsync configure' first.", err=True)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    get_cache_path().parent.mkdir(parents=True, exist_ok=True)
    click.echo(f"Syncing with {remote_config.storage_url}")

    try:
        stats = asyncio.run(_run_sync(remote_config, SyncSettings(), once, not no_notify))
    except KeyboardInterrupt:
        click.echo("\nStopped.")
        return

    click.echo(
        f"Done: {stats.articles_added} added, {stats.articles_updated} updated, "
        f"{stats.articles_deleted} deleted, {stats.fetch_failures} failed"
    )
    if stats.fetch_failures or stats.errors:
        sys.exit(1)

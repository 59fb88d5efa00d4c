"""Remote storage commands for the savrsync CLI.

Commands:
- usage: Show how much remote storage articles use
- wipe-remote: Delete every file in the scope
"""

from __future__ import annotations

import asyncio
import sys

import click

from savrsync.client.cli.config import get_remote_config


@click.command()
@click.argument("slug", required=False)
def usage(slug: str | None) -> None:
    """Show remote storage usage, for the scope or for one article."""
    from savrsync.client.api import APIError, RemoteStorageClient
    from savrsync.client.storage import (
        calculate_article_storage_size,
        calculate_storage_usage,
        format_bytes,
    )

    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Error: No account configured. Run 'savrsync configure' first.", err=True)
        sys.exit(1)

    async def _measure():  # type: ignore[no-untyped-def]
        async with RemoteStorageClient(remote_config) as client:
            if slug:
                return await calculate_article_storage_size(client, slug)
            return await calculate_storage_usage(client)

    try:
        result = asyncio.run(_measure())
    except APIError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    label = slug or remote_config.storage_url
    click.echo(f"{label}: {format_bytes(result.size)} in {result.file_count} files")


@click.command(name="wipe-remote")
@click.confirmation_option(prompt="Delete every file in remote storage? This cannot be undone.")
def wipe_remote() -> None:
    """Delete every file in the scope on remote storage."""
    from savrsync.client.api import RemoteStorageClient
    from savrsync.client.storage import delete_all_remote_storage

    remote_config = get_remote_config()
    if remote_config is None:
        click.echo("Error: No account configured. Run 'savrsync configure' first.", err=True)
        sys.exit(1)

    async def _wipe():  # type: ignore[no-untyped-def]
        async with RemoteStorageClient(remote_config) as client:
            return await delete_all_remote_storage(client)

    result = asyncio.run(_wipe())
    click.echo(f"Deleted {len(result.deleted_files)} files")
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)
    if not result.success:
        sys.exit(1)

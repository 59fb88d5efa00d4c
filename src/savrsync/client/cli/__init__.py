"""Command-line interface for savrsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Store the remote storage account to sync with
- sync: Keep the local article cache in step with remote storage
- status: Show the configured account and cache contents
- list: List cached articles
- usage: Show remote storage usage
- delete: Delete an article locally and remotely
- set-state: Change an article's lifecycle state
- wipe-remote: Delete every file in remote storage
"""

from __future__ import annotations

import click

from savrsync.client.cli.articles import delete, list_articles, set_state, status
from savrsync.client.cli.config import (
    get_cache_path,
    get_config_dir,
    get_config_file,
    get_remote_config,
    load_config,
    save_config,
)
from savrsync.client.cli.configure import configure
from savrsync.client.cli.storage import usage, wipe_remote
from savrsync.client.cli.sync import sync


@click.group()
@click.version_option(package_name="savrsync")
def cli() -> None:
    """savrsync - Keep a local article cache in step with remote storage."""


# Account commands
cli.add_command(configure)
cli.add_command(status)

# Sync commands
cli.add_command(sync)

# Article commands
cli.add_command(list_articles)
cli.add_command(delete)
cli.add_command(set_state)

# Storage commands
cli.add_command(usage)
cli.add_command(wipe_remote)

__all__ = [
    "cli",
    "get_cache_path",
    "get_config_dir",
    "get_config_file",
    "get_remote_config",
    "load_config",
    "save_config",
]

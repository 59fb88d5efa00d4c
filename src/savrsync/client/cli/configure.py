"""Account configuration command for the savrsync CLI.

Commands:
- configure: Store the remote storage account to sync with
"""

from __future__ import annotations

import sys

import click

from savrsync.client.cli.config import load_config, save_config
from savrsync.core.config import DEFAULT_SCOPE, RemoteConfig


@click.command()
@click.option(
    "--server",
    required=True,
    help="Storage root of the account (e.g., https://storage.example.com/storage/alice).",
)
@click.option(
    "--token",
    required=True,
    help="Bearer token granted for the scope.",
)
@click.option(
    "--scope",
    default=DEFAULT_SCOPE,
    show_default=True,
    help="Scope folder the articles live in.",
)
@click.option(
    "--user-address",
    default=None,
    help="Account address (e.g., alice@example.com).",
)
def configure(server: str, token: str, scope: str, user_address: str | None) -> None:
    """Configure the remote storage account to sync with."""
    if not server.startswith(("http://", "https://")):
        click.echo("Error: Server URL must start with http:// or https://", err=True)
        sys.exit(1)

    config = load_config()
    if config.get("server_url") and config["server_url"] != server.rstrip("/"):
        click.echo("Warning: This replaces the configured account.", err=True)
        if not click.confirm("Continue?"):
            sys.exit(0)

    remote = RemoteConfig(server_url=server, token=token, scope=scope, user_address=user_address)
    config.update({
        "server_url": remote.server_url,
        "token": remote.token,
        "scope": remote.scope,
    })
    if user_address:
        config["user_address"] = user_address
    else:
        config.pop("user_address", None)
    save_config(config)

    click.echo(f"Configured {remote.storage_url}")
    if not remote.is_secure:
        click.echo("Warning: Connection is not encrypted (http://).", err=True)

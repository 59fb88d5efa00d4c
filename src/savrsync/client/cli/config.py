"""Configuration utilities for the savrsync CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

from savrsync.core.config import DEFAULT_SCOPE, RemoteConfig


def get_config_dir() -> Path:
    """Get the configuration directory for savrsync.

    Returns:
        Path to ~/.savrsync or equivalent.
    """
    return Path.home() / ".savrsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_cache_path() -> Path:
    """Get the path to the article cache database."""
    return get_config_dir() / "articles.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_remote_config() -> RemoteConfig | None:
    """Build the remote configuration from the config file.

    Returns:
        RemoteConfig if a server and token are configured, None otherwise.
    """
    config = load_config()
    if not config.get("server_url") or not config.get("token"):
        return None
    return RemoteConfig(
        server_url=config["server_url"],
        token=config["token"],
        scope=config.get("scope") or DEFAULT_SCOPE,
        user_address=config.get("user_address") or None,
    )

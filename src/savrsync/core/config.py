"""Shared configuration classes for savrsync.

This module defines configuration classes used by the HTTP client, the
event stream and the reconciliation engine.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CATALOG_ROOT = "saves"
DEFAULT_SCOPE = "savr"

# Article fetch retry bounds
DEFAULT_FETCH_ATTEMPTS = 5
DEFAULT_FETCH_DELAY = 0.5  # seconds


@dataclass
class RemoteConfig:
    """Configuration for connecting to a remote storage account.

    Attributes:
        server_url: Storage root of the account (e.g., "https://storage.example.com/storage/alice").
        token: Bearer token granted for the scope.
        scope: Top-level folder the application owns.
        user_address: Account address reported on connect (e.g., "alice@example.com").
        timeout: Request/connection timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    token: str
    scope: str = DEFAULT_SCOPE
    user_address: str | None = None
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL and scope."""
        self.server_url = self.server_url.rstrip("/")
        self.scope = self.scope.strip("/")

    @property
    def storage_url(self) -> str:
        """Base URL of the application's scope, with a trailing slash."""
        return f"{self.server_url}/{self.scope}/"

    @property
    def ws_url(self) -> str:
        """Get the WebSocket URL of the change-event stream.

        Returns:
            WebSocket URL for the scope's event feed.
        """
        url = self.server_url
        if url.startswith("https://"):
            url = "wss://" + url[8:]
        elif url.startswith("http://"):
            url = "ws://" + url[7:]
        return f"{url}/{self.scope}/events"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS/WSS."""
        return self.server_url.startswith("https://")


@dataclass
class SyncSettings:
    """Tuning knobs for the reconciliation engine.

    Attributes:
        catalog_root: Folder (inside the scope) holding one directory per article.
        fetch_attempts: Attempts per article fetch before giving up.
        fetch_delay: Fixed delay between fetch attempts in seconds.
        reconnect_delay: Delay between event stream reconnection attempts.
    """

    catalog_root: str = DEFAULT_CATALOG_ROOT
    fetch_attempts: int = DEFAULT_FETCH_ATTEMPTS
    fetch_delay: float = DEFAULT_FETCH_DELAY
    reconnect_delay: float = 5.0

    def __post_init__(self) -> None:
        """Normalize the catalog root and validate retry bounds."""
        self.catalog_root = self.catalog_root.strip("/")
        if self.fetch_attempts < 1:
            raise ValueError("fetch_attempts must be at least 1")
        if self.fetch_delay < 0:
            raise ValueError("fetch_delay must not be negative")

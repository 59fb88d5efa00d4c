"""Listener channels for sync progress and user notifications.

This module provides:
- ProgressEmitter: Broadcasts SyncProgress snapshots
- NotificationEmitter: Broadcasts one-shot user notifications

Listeners are plain callables. ``subscribe`` returns a function that
removes the listener again. A listener that raises is logged and skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from savrsync.client.notifications import Notification
from savrsync.client.sync.types import SyncProgress

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _Channel(Generic[T]):
    """Ordered set of listeners for one payload type."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Callable[[T], None]] = []

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def broadcast(self, payload: T) -> None:
        # Copy so listeners may unsubscribe while being called
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception:
                logger.exception("%s listener failed", self._name)

    def __len__(self) -> int:
        return len(self._listeners)


class ProgressEmitter:
    """Single-writer, multi-reader channel for sync progress."""

    def __init__(self) -> None:
        self._channel: _Channel[SyncProgress] = _Channel("Progress")
        self._current = SyncProgress()

    @property
    def current(self) -> SyncProgress:
        """Get the last published progress."""
        return self._current

    @property
    def listener_count(self) -> int:
        """Get the number of subscribed listeners."""
        return len(self._channel)

    def subscribe(self, listener: Callable[[SyncProgress], None]) -> Callable[[], None]:
        """Register a progress listener.

        Returns:
            Function that unsubscribes the listener.
        """
        return self._channel.subscribe(listener)

    def publish(self, progress: SyncProgress) -> None:
        """Record and broadcast a progress snapshot."""
        self._current = progress
        logger.debug(
            "Progress: syncing=%s %d/%d (%s)",
            progress.is_syncing,
            progress.processed_articles,
            progress.total_articles,
            progress.phase.value,
        )
        self._channel.broadcast(progress)


class NotificationEmitter:
    """Channel for user-facing notifications."""

    def __init__(self) -> None:
        self._channel: _Channel[Notification] = _Channel("Notification")

    @property
    def listener_count(self) -> int:
        """Get the number of subscribed listeners."""
        return len(self._channel)

    def subscribe(self, listener: Callable[[Notification], None]) -> Callable[[], None]:
        """Register a notification listener.

        Returns:
            Function that unsubscribes the listener.
        """
        return self._channel.subscribe(listener)

    def notify(self, notification: Notification) -> None:
        """Broadcast a notification."""
        logger.info("Notification: %s", notification.message)
        self._channel.broadcast(notification)

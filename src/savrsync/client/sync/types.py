"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, ArticleFetchError: Exception classes
- ChangeEvent: One before/after value pair for a remote path
- SyncAction: Outcome of classifying a change event
- SyncProgress: Progress snapshot broadcast to listeners
- RemoteEventType, RemoteEvent: Lifecycle and change events from remote storage
- OrchestratorState: States of the reconciliation engine
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from typing import Any

from savrsync.core.types import SyncPhase


class SyncError(Exception):
    """Base exception for sync errors."""


class ArticleFetchError(SyncError):
    """An article could not be fetched after all retry attempts.

    Attributes:
        path: Article path that failed
        attempts: Number of attempts made
    """

    def __init__(self, path: str, attempts: int, reason: str) -> None:
        self.path = path
        self.attempts = attempts
        super().__init__(f"Failed to fetch {path} after {attempts} attempts: {reason}")


@dataclass(frozen=True)
class ChangeEvent:
    """A change notification for one remote path.

    Either value may be None: ``old_value`` only means the path was deleted,
    ``new_value`` only means it was created here or was unknown to the
    remote replica, both mean it was updated.

    Attributes:
        path: Path relative to the scope
        old_value: Previous value, if any
        new_value: Current value, if any
        origin: Where the change came from (remote, local, window, ...)
    """

    path: str
    old_value: Any = None
    new_value: Any = None
    origin: str = "remote"


class SyncAction(Enum):
    """What to do with a change event."""

    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"
    SKIP = "skip"


@dataclass(frozen=True)
class SyncProgress:
    """Progress information for a sync pass.

    Attributes:
        is_syncing: Whether a sync pass is running
        total_articles: Latched denominator for this connection
        processed_articles: Live number of cached articles (capped at the total)
        phase: Initial sync, ongoing sync, or idle
    """

    is_syncing: bool = False
    total_articles: int = 0
    processed_articles: int = 0
    phase: SyncPhase = SyncPhase.IDLE

    @property
    def percent(self) -> float:
        """Get progress percentage."""
        if self.total_articles == 0:
            return 100.0
        return (self.processed_articles / self.total_articles) * 100

    def to_dict(self) -> dict[str, bool | int | str]:
        """Convert to the listener payload shape."""
        return {
            "isSyncing": self.is_syncing,
            "totalArticles": self.total_articles,
            "processedArticles": self.processed_articles,
            "phase": self.phase.value,
        }


# Type alias for progress callback
ProgressListener = Callable[[SyncProgress], None]


class RemoteEventType(Enum):
    """Events emitted by remote storage.

    Values are the wire names used by the event stream.
    """

    READY = "ready"
    CONNECTED = "connected"
    NOT_CONNECTED = "not-connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    NETWORK_OFFLINE = "network-offline"
    NETWORK_ONLINE = "network-online"
    SYNC_CYCLE_DONE = "sync-cycle-done"
    SYNC_CYCLE_PROGRESS = "sync-cycle-progress"
    CHANGE = "change"


@dataclass(frozen=True)
class RemoteEvent:
    """A lifecycle or change event from remote storage.

    Attributes:
        event_type: Kind of event
        change: Change payload for CHANGE events
        user_address: Account address for CONNECTED events
        error: Error description for ERROR events
        details: Any other fields sent with the event
    """

    event_type: RemoteEventType
    change: ChangeEvent | None = None
    user_address: str | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def connected(cls, user_address: str | None = None) -> RemoteEvent:
        """Create a CONNECTED event."""
        return cls(RemoteEventType.CONNECTED, user_address=user_address)

    @classmethod
    def changed(cls, change: ChangeEvent) -> RemoteEvent:
        """Create a CHANGE event."""
        return cls(RemoteEventType.CHANGE, change=change)

    def __repr__(self) -> str:
        """Human-readable representation."""
        if self.change is not None:
            return f"RemoteEvent({self.event_type.name}, path={self.change.path!r})"
        return f"RemoteEvent({self.event_type.name})"


# Type alias for event handlers fed by the event stream
RemoteEventHandler = Callable[[RemoteEvent], Any]


class OrchestratorState(IntEnum):
    """State of the reconciliation orchestrator."""

    DISCONNECTED = auto()
    CONNECTING = auto()
    SYNCING = auto()
    IDLE = auto()

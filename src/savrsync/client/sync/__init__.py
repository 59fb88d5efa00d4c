"""Reconciliation engine for the article cache.

Architecture:
    RemoteEventStream → ReconciliationOrchestrator → LocalArticleCache
                                 │
                                 ├─ domain (classifier, differ, paths)
                                 ├─ retry (fetch_article)
                                 └─ emitters (progress, notifications)

Components:
- **RemoteEventStream**: Receives lifecycle and change events over WebSocket
- **ReconciliationOrchestrator**: State machine applying events and catchup passes
- **ConnectionContext**: Per-connection dedupe set and latches
- **ProgressEmitter / NotificationEmitter**: Listener channels
- **fetch_article**: Bounded retry for freshly changed articles
"""

from savrsync.client.sync.context import ConnectionContext
from savrsync.client.sync.emitters import NotificationEmitter, ProgressEmitter
from savrsync.client.sync.orchestrator import (
    VALID_TRANSITIONS,
    InvalidTransitionError,
    OrchestratorStats,
    ReconciliationOrchestrator,
)
from savrsync.client.sync.remote_listener import RemoteEventStream, parse_message
from savrsync.client.sync.retry import (
    DEFAULT_FETCH_ATTEMPTS,
    DEFAULT_FETCH_DELAY,
    fetch_article,
)
from savrsync.client.sync.types import (
    ArticleFetchError,
    ChangeEvent,
    OrchestratorState,
    ProgressListener,
    RemoteEvent,
    RemoteEventHandler,
    RemoteEventType,
    SyncAction,
    SyncError,
    SyncProgress,
)

__all__ = [
    # Retry
    "DEFAULT_FETCH_ATTEMPTS",
    "DEFAULT_FETCH_DELAY",
    "fetch_article",
    # Types
    "ArticleFetchError",
    "ChangeEvent",
    "OrchestratorState",
    "ProgressListener",
    "RemoteEvent",
    "RemoteEventHandler",
    "RemoteEventType",
    "SyncAction",
    "SyncError",
    "SyncProgress",
    # Orchestrator
    "ConnectionContext",
    "InvalidTransitionError",
    "OrchestratorStats",
    "ReconciliationOrchestrator",
    "VALID_TRANSITIONS",
    # Emitters
    "NotificationEmitter",
    "ProgressEmitter",
    # Event stream
    "RemoteEventStream",
    "parse_message",
]

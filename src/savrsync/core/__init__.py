"""Core module - Shared configuration and enums."""

from savrsync.core.config import (
    DEFAULT_CATALOG_ROOT,
    DEFAULT_SCOPE,
    RemoteConfig,
    SyncSettings,
)
from savrsync.core.types import ArticleState, SyncPhase

__all__ = [
    # Config
    "DEFAULT_CATALOG_ROOT",
    "DEFAULT_SCOPE",
    "RemoteConfig",
    "SyncSettings",
    # Types
    "ArticleState",
    "SyncPhase",
]

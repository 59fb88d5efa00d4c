"""Shared types for savrsync.

This module defines enums used across the cache, the sync engine and the CLI.
"""

from __future__ import annotations

from enum import Enum


class ArticleState(str, Enum):
    """Lifecycle state of an article.

    Stored as its string value in ``article.json`` and in the local cache.
    """

    UNREAD = "unread"
    READING = "reading"
    FINISHED = "finished"
    ARCHIVED = "archived"
    DELETED = "deleted"
    INGESTING = "ingesting"


class SyncPhase(str, Enum):
    """Phase reported alongside sync progress."""

    INITIAL = "initial"
    ONGOING = "ongoing"
    IDLE = "idle"

"""Domain modules for sync business rules.

This package centralizes the pure logic of the reconciliation engine:
- paths: canonical article paths
- classifier: change event -> add/update/delete/skip
- differ: remote listing vs. local cache set differences
- progress: progress denominator rules

Architecture:
    domain/ contains pure functions without I/O or shared state.
    The orchestrator owns all state and side effects.
"""

from savrsync.client.sync.domain.classifier import classify
from savrsync.client.sync.domain.differ import missing_locally, missing_remotely
from savrsync.client.sync.domain.paths import (
    ARTICLE_FILENAME,
    article_dir,
    article_path,
    is_article_path,
    listing_slugs,
    slug_from_path,
)
from savrsync.client.sync.domain.progress import calculate_progress_total, is_initial_sync

__all__ = [
    # classifier
    "classify",
    # differ
    "missing_locally",
    "missing_remotely",
    # paths
    "ARTICLE_FILENAME",
    "article_dir",
    "article_path",
    "is_article_path",
    "listing_slugs",
    "slug_from_path",
    # progress
    "calculate_progress_total",
    "is_initial_sync",
]

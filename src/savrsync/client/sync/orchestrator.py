"""Reconciliation orchestrator keeping the article cache in step with remote storage.

This module provides:
- ReconciliationOrchestrator: State machine driven by remote storage events
- OrchestratorStats: Counters for diagnostics

The orchestrator is the "brain" of the sync client:
1. Receives every lifecycle and change event through ``dispatch``
2. Applies incremental changes using the change classifier
3. Runs catchup passes (listing diff) when a sync cycle completes
4. Resets the cache on connect and, for deliberate disconnects, on disconnect
5. Publishes progress and user notifications

State machine:
    DISCONNECTED -> CONNECTING -> SYNCING <-> IDLE
    (any connected state) -> CONNECTING on reconnect
    (any state) -> DISCONNECTED

    | Event            | Action                                           |
    |------------------|--------------------------------------------------|
    | CONNECTED        | Reset cache, new context, -> SYNCING             |
    | CHANGE           | Classify, fetch/upsert or delete, -> SYNCING     |
    | SYNC_CYCLE_DONE  | Catchup pass, re-latch total, -> IDLE            |
    | DISCONNECTED     | Clear cache if deliberate, new context           |
    | ERROR            | Log, -> IDLE if syncing                          |
    | NETWORK_OFFLINE  | Set offline flag                                 |
    | NETWORK_ONLINE   | Clear offline flag                               |

A change arriving while IDLE moves the machine back to SYNCING, and only
SYNC_CYCLE_DONE (or ERROR) returns it to IDLE. The event stream must
therefore follow every batch of changes with a SYNC_CYCLE_DONE; until it
does, progress reports syncing and a disconnect keeps the cache.

All handlers run on one event loop and may interleave wherever they
await. ``preparing_reset`` on the current context drops change events
while the cache is being cleared.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from savrsync.client.api import APIError
from savrsync.client.cache import CacheError
from savrsync.client.notifications import removed_local_articles, replacing_local_articles
from savrsync.client.sync.context import ConnectionContext
from savrsync.client.sync.domain import (
    article_path,
    calculate_progress_total,
    classify,
    is_initial_sync,
    listing_slugs,
    missing_locally,
    missing_remotely,
    slug_from_path,
)
from savrsync.client.sync.emitters import NotificationEmitter, ProgressEmitter
from savrsync.client.sync.retry import fetch_article
from savrsync.client.sync.types import (
    ArticleFetchError,
    OrchestratorState,
    RemoteEvent,
    RemoteEventType,
    SyncAction,
    SyncProgress,
)
from savrsync.core.config import SyncSettings
from savrsync.core.types import SyncPhase

if TYPE_CHECKING:
    from savrsync.client.api import RemoteFile
    from savrsync.client.cache import Article

logger = logging.getLogger(__name__)


class RemoteStore(Protocol):
    """Remote storage operations the orchestrator relies on."""

    async def get_listing(self, prefix: str = "") -> dict[str, bool]:
        ...

    async def get_file(self, path: str, allow_network: bool = True) -> RemoteFile | None:
        ...


class ArticleStore(Protocol):
    """Local cache operations the orchestrator relies on."""

    async def get(self, slug: str) -> Article | None:
        ...

    async def put(self, article: Article) -> None:
        ...

    async def delete(self, slug: str) -> bool:
        ...

    async def count(self) -> int:
        ...

    async def to_array(self) -> list[Article]:
        ...

    async def clear(self) -> int:
        ...


class InvalidTransitionError(Exception):
    """Raised when attempting invalid state transition."""


# Valid state transitions
VALID_TRANSITIONS: dict[OrchestratorState, set[OrchestratorState]] = {
    OrchestratorState.DISCONNECTED: {OrchestratorState.CONNECTING},
    OrchestratorState.CONNECTING: {
        OrchestratorState.CONNECTING,
        OrchestratorState.SYNCING,
        OrchestratorState.DISCONNECTED,
    },
    OrchestratorState.SYNCING: {
        OrchestratorState.IDLE,
        OrchestratorState.CONNECTING,
        OrchestratorState.DISCONNECTED,
    },
    OrchestratorState.IDLE: {
        OrchestratorState.SYNCING,
        OrchestratorState.CONNECTING,
        OrchestratorState.DISCONNECTED,
    },
}


@dataclass
class OrchestratorStats:
    """Statistics for the orchestrator."""

    events_processed: int = 0
    events_dropped: int = 0
    articles_added: int = 0
    articles_updated: int = 0
    articles_deleted: int = 0
    fetch_failures: int = 0
    catchups_completed: int = 0
    errors: int = 0


class ReconciliationOrchestrator:
    """Keeps a local article cache consistent with remote storage.

    Usage:
        orchestrator = ReconciliationOrchestrator(remote, cache)
        orchestrator.progress.subscribe(print)
        orchestrator.notifications.subscribe(send_notification)

        stream = RemoteEventStream(config, orchestrator.dispatch)
        await stream.run()
    """

    def __init__(
        self,
        remote: RemoteStore,
        cache: ArticleStore,
        settings: SyncSettings | None = None,
        progress: ProgressEmitter | None = None,
        notifications: NotificationEmitter | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            remote: Remote storage client
            cache: Local article cache
            settings: Catalog root and retry settings
            progress: Progress channel (created if omitted)
            notifications: Notification channel (created if omitted)
        """
        self._remote = remote
        self._cache = cache
        self._settings = settings or SyncSettings()
        self._progress = progress or ProgressEmitter()
        self._notifications = notifications or NotificationEmitter()

        self._state = OrchestratorState.DISCONNECTED
        self._context = ConnectionContext()
        self._offline = False
        self._stats = OrchestratorStats()

        self._handlers: dict[RemoteEventType, Callable[[RemoteEvent], Awaitable[None]]] = {
            RemoteEventType.READY: self._on_lifecycle,
            RemoteEventType.NOT_CONNECTED: self._on_lifecycle,
            RemoteEventType.SYNC_CYCLE_PROGRESS: self._on_lifecycle,
            RemoteEventType.CONNECTED: self._on_connected,
            RemoteEventType.CHANGE: self._on_change,
            RemoteEventType.SYNC_CYCLE_DONE: self._on_sync_cycle_done,
            RemoteEventType.DISCONNECTED: self._on_disconnected,
            RemoteEventType.ERROR: self._on_error,
            RemoteEventType.NETWORK_OFFLINE: self._on_network_offline,
            RemoteEventType.NETWORK_ONLINE: self._on_network_online,
        }

    @property
    def state(self) -> OrchestratorState:
        """Get current orchestrator state."""
        return self._state

    @property
    def context(self) -> ConnectionContext:
        """Get the current connection context."""
        return self._context

    @property
    def offline(self) -> bool:
        """Check if the network is reported offline."""
        return self._offline

    @property
    def stats(self) -> OrchestratorStats:
        """Get orchestrator statistics."""
        return self._stats

    @property
    def progress(self) -> ProgressEmitter:
        """Get the progress channel."""
        return self._progress

    @property
    def notifications(self) -> NotificationEmitter:
        """Get the notification channel."""
        return self._notifications

    @property
    def is_syncing(self) -> bool:
        """Check if a sync pass is running."""
        return self._state in (OrchestratorState.CONNECTING, OrchestratorState.SYNCING)

    # === Dispatch ===

    async def dispatch(self, event: RemoteEvent) -> None:
        """Handle one remote storage event.

        Never raises: failures are logged and counted, the next catchup
        pass corrects whatever was left inconsistent.
        """
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.warning("No handler for %s", event.event_type.name)
            return

        self._stats.events_processed += 1
        try:
            await handler(event)
        except InvalidTransitionError as e:
            logger.warning("Ignoring %r: %s", event, e)
            self._stats.errors += 1
        except Exception:
            logger.exception("Error handling %r", event)
            self._stats.errors += 1

    async def resync(self) -> None:
        """Run a user-requested catchup pass."""
        if self._state == OrchestratorState.DISCONNECTED:
            logger.warning("Cannot resync while disconnected")
            return
        logger.info("Manual resync requested")
        await self._catchup()

    # === State machine ===

    def _transition(self, new_state: OrchestratorState) -> None:
        """Transition to a new state with validation."""
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise InvalidTransitionError(
                f"Cannot transition from {self._state.name} to {new_state.name}"
            )
        if new_state != self._state:
            logger.debug("State %s -> %s", self._state.name, new_state.name)
        self._state = new_state

    def _is_current(self, ctx: ConnectionContext) -> bool:
        return ctx is self._context and not ctx.preparing_reset

    def _phase(self, ctx: ConnectionContext) -> SyncPhase:
        if not self.is_syncing:
            return SyncPhase.IDLE
        return SyncPhase.INITIAL if ctx.is_initial else SyncPhase.ONGOING

    async def _publish_progress(self, ctx: ConnectionContext) -> None:
        """Publish progress computed from the live cache count."""
        count = await self._cache.count()
        if ctx is not self._context:
            return
        total = ctx.latched_total if ctx.latched_total is not None else count
        self._progress.publish(SyncProgress(
            is_syncing=self.is_syncing,
            total_articles=total,
            processed_articles=min(count, total),
            phase=self._phase(ctx),
        ))

    # === Handlers ===

    async def _on_lifecycle(self, event: RemoteEvent) -> None:
        logger.info("Remote storage %s", event.event_type.value)

    async def _on_connected(self, event: RemoteEvent) -> None:
        """Start a connection from an empty cache."""
        # The flag must be up before the first await so that change events
        # scheduled behind this one are dropped.
        ctx = self._context.successor(user_address=event.user_address, preparing_reset=True)
        self._context = ctx
        self._transition(OrchestratorState.CONNECTING)
        logger.info("Connected to %s", event.user_address or "remote storage")

        try:
            count = await self._cache.count()
            if count > 0:
                logger.info("Replacing %d local articles", count)
                self._notifications.notify(replacing_local_articles(count))
                await self._clear_cache()
            ctx.is_initial = is_initial_sync(await self._cache.count())
        except CacheError:
            logger.exception("Failed to reset the local cache")
        finally:
            ctx.preparing_reset = False

        if ctx is not self._context:
            return
        self._transition(OrchestratorState.SYNCING)
        await self._publish_progress(ctx)

    async def _on_change(self, event: RemoteEvent) -> None:
        """Apply one change event incrementally."""
        change = event.change
        ctx = self._context
        if change is None:
            return

        if self._state == OrchestratorState.DISCONNECTED or ctx.preparing_reset:
            logger.debug("Dropping change for %s (state %s)", change.path, self._state.name)
            self._stats.events_dropped += 1
            return

        root = self._settings.catalog_root
        slug = slug_from_path(change.path, root)
        if slug is None:
            return

        if self._state == OrchestratorState.IDLE:
            self._transition(OrchestratorState.SYNCING)

        await self._latch_total(ctx)
        if not self._is_current(ctx):
            return

        path = article_path(slug, root)
        existing = await self._cache.get(slug)
        if not self._is_current(ctx):
            return
        action = classify(change, existing, ctx.was_processed(path))
        logger.debug("Change %s -> %s", change.path, action.value)

        if action == SyncAction.SKIP:
            return
        if action == SyncAction.DELETE:
            await self._delete_article(ctx, slug)
        else:
            await self._fetch_and_store(ctx, slug, action)

        await self._publish_progress(ctx)

    async def _on_sync_cycle_done(self, event: RemoteEvent) -> None:
        await self._catchup()

    async def _on_disconnected(self, event: RemoteEvent) -> None:
        """Tear down the connection, clearing the cache only when deliberate."""
        ctx = self._context
        syncing = self.is_syncing
        accidental = syncing or not ctx.sync_completed or self._offline

        # Drop processed paths and latches before anything can interleave
        self._context = ctx.successor()
        if self._state != OrchestratorState.DISCONNECTED:
            self._transition(OrchestratorState.DISCONNECTED)

        if accidental:
            logger.info(
                "Disconnected (syncing=%s, synced=%s, offline=%s), keeping local articles",
                syncing, ctx.sync_completed, self._offline,
            )
        else:
            count = await self._cache.count()
            if count > 0:
                await self._clear_cache()
                logger.info("Disconnected, removed %d local articles", count)
                self._notifications.notify(removed_local_articles(count))

        self._progress.publish(SyncProgress())

    async def _on_error(self, event: RemoteEvent) -> None:
        logger.error("Remote storage error: %s", event.error or "unknown error")
        if self._state == OrchestratorState.SYNCING:
            self._transition(OrchestratorState.IDLE)
            await self._publish_progress(self._context)

    async def _on_network_offline(self, event: RemoteEvent) -> None:
        logger.info("Network offline")
        self._offline = True

    async def _on_network_online(self, event: RemoteEvent) -> None:
        logger.info("Network back online")
        self._offline = False

    # === Operations ===

    async def _latch_total(self, ctx: ConnectionContext) -> None:
        """Fix the progress denominator on the first qualifying event."""
        if ctx.is_latched:
            return

        listing_count = 0
        if ctx.is_initial:
            try:
                listing = await self._remote.get_listing(f"{self._settings.catalog_root}/")
            except APIError as e:
                logger.warning("Could not list remote articles for progress: %s", e)
                return
            listing_count = len(listing_slugs(listing))
        db_count = await self._cache.count()

        if not ctx.is_latched:
            ctx.latched_total = calculate_progress_total(ctx.is_initial, listing_count, db_count)
            logger.debug("Latched progress total %d", ctx.latched_total)

    async def _fetch_and_store(
        self,
        ctx: ConnectionContext,
        slug: str,
        action: SyncAction = SyncAction.ADD,
    ) -> bool:
        """Fetch an article and upsert it, unless the result went stale.

        Returns:
            True if the article was stored.
        """
        path = article_path(slug, self._settings.catalog_root)
        mark = ctx.deletion_mark(path)
        ctx.in_flight.add(path)
        try:
            article = await fetch_article(
                self._remote,
                path,
                attempts=self._settings.fetch_attempts,
                delay=self._settings.fetch_delay,
            )
        except (ArticleFetchError, APIError) as e:
            logger.error("Skipping %s: %s", path, e)
            self._stats.fetch_failures += 1
            return False
        finally:
            ctx.in_flight.discard(path)

        if not self._is_current(ctx) or ctx.deletion_mark(path) != mark:
            logger.info("Discarding stale fetch of %s", path)
            return False
        if article.slug != slug:
            logger.error("Skipping %s: payload is for slug %r", path, article.slug)
            self._stats.fetch_failures += 1
            return False

        await self._cache.put(article)
        ctx.mark_processed(path)
        if action == SyncAction.UPDATE:
            self._stats.articles_updated += 1
        else:
            self._stats.articles_added += 1
        return True

    async def _delete_article(self, ctx: ConnectionContext, slug: str) -> None:
        path = article_path(slug, self._settings.catalog_root)
        ctx.forget(path)
        try:
            removed = await self._cache.delete(slug)
        except CacheError as e:
            logger.error("Failed to delete %s from the cache: %s", slug, e)
            return
        if removed:
            self._stats.articles_deleted += 1
            logger.info("Deleted article %s", slug)

    async def _clear_cache(self) -> None:
        """Clear the cache, falling back to one delete per article."""
        try:
            await self._cache.clear()
            return
        except CacheError as e:
            logger.error("Failed to clear the cache, deleting one by one: %s", e)

        for article in await self._cache.to_array():
            try:
                await self._cache.delete(article.slug)
            except CacheError as e:
                logger.error("Failed to delete %s from the cache: %s", article.slug, e)

    async def _catchup(self) -> None:
        """Reconcile the cache against a fresh remote listing."""
        ctx = self._context
        if self._state == OrchestratorState.DISCONNECTED or ctx.preparing_reset:
            logger.debug("Skipping catchup (state %s)", self._state.name)
            return
        if ctx.catchup_running:
            logger.debug("Catchup already running")
            return

        ctx.catchup_running = True
        try:
            if self._state == OrchestratorState.IDLE:
                self._transition(OrchestratorState.SYNCING)
            await self._run_catchup(ctx)
        except (APIError, CacheError) as e:
            logger.error("Catchup failed: %s", e)
        finally:
            ctx.catchup_running = False
            if ctx is self._context and self._state == OrchestratorState.SYNCING:
                self._transition(OrchestratorState.IDLE)

        if ctx is self._context:
            await self._publish_progress(ctx)

    async def _run_catchup(self, ctx: ConnectionContext) -> None:
        root = self._settings.catalog_root
        listing = await self._remote.get_listing(f"{root}/")
        remote_slugs = listing_slugs(listing)
        local = await self._cache.to_array()
        if not self._is_current(ctx):
            return

        remote_paths = {article_path(slug, root) for slug in remote_slugs}
        # Fetches still running for paths the listing no longer has are stale
        for path in list(ctx.in_flight):
            if path not in remote_paths:
                ctx.forget(path)

        to_fetch = missing_locally(remote_slugs, local, ctx.processed | ctx.in_flight, root)
        to_delete = missing_remotely(local, remote_slugs)
        logger.info(
            "Catchup: %d remote, %d local, %d to fetch, %d to delete",
            len(remote_slugs), len(local), len(to_fetch), len(to_delete),
        )

        if not ctx.is_latched:
            ctx.latched_total = calculate_progress_total(
                ctx.is_initial, len(remote_slugs), len(local)
            )

        for slug in to_fetch:
            if not self._is_current(ctx):
                return
            if await self._fetch_and_store(ctx, slug):
                await self._publish_progress(ctx)

        for slug in to_delete:
            if not self._is_current(ctx):
                return
            await self._delete_article(ctx, slug)

        if not self._is_current(ctx):
            return

        # The cache is ground truth now; dangling remote entries drop out
        ctx.latched_total = await self._cache.count()
        ctx.sync_completed = True
        ctx.is_initial = False
        self._stats.catchups_completed += 1
        logger.info("Catchup complete, %d articles cached", ctx.latched_total)

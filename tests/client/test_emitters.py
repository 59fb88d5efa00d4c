"""Tests for progress and notification channels."""

from __future__ import annotations

from savrsync.client.notifications import Notification, NotificationType, replacing_local_articles
from savrsync.client.sync.emitters import NotificationEmitter, ProgressEmitter
from savrsync.client.sync.types import SyncProgress
from savrsync.core.types import SyncPhase


class TestProgressEmitter:
    """Tests for ProgressEmitter."""

    def test_initial_progress_is_idle(self) -> None:
        """Before anything is published the progress is idle and empty."""
        emitter = ProgressEmitter()
        assert emitter.current == SyncProgress()
        assert emitter.current.phase == SyncPhase.IDLE

    def test_publish_reaches_listeners(self) -> None:
        """Every listener receives the snapshot."""
        emitter = ProgressEmitter()
        first: list[SyncProgress] = []
        second: list[SyncProgress] = []
        emitter.subscribe(first.append)
        emitter.subscribe(second.append)

        progress = SyncProgress(is_syncing=True, total_articles=10, processed_articles=4)
        emitter.publish(progress)

        assert first == [progress]
        assert second == [progress]
        assert emitter.current == progress

    def test_unsubscribe(self) -> None:
        """An unsubscribed listener receives nothing more."""
        emitter = ProgressEmitter()
        received: list[SyncProgress] = []
        unsubscribe = emitter.subscribe(received.append)
        assert emitter.listener_count == 1

        unsubscribe()
        unsubscribe()
        emitter.publish(SyncProgress())

        assert received == []
        assert emitter.listener_count == 0

    def test_failing_listener_does_not_block_others(self) -> None:
        """A listener that raises is skipped."""
        emitter = ProgressEmitter()
        received: list[SyncProgress] = []

        def broken(progress: SyncProgress) -> None:
            raise RuntimeError("listener bug")

        emitter.subscribe(broken)
        emitter.subscribe(received.append)
        emitter.publish(SyncProgress(total_articles=1))

        assert len(received) == 1

    def test_listener_may_unsubscribe_itself(self) -> None:
        """Unsubscribing during a broadcast is safe."""
        emitter = ProgressEmitter()
        calls: list[int] = []
        unsubscribe = None

        def once(progress: SyncProgress) -> None:
            calls.append(progress.total_articles)
            assert unsubscribe is not None
            unsubscribe()

        unsubscribe = emitter.subscribe(once)
        emitter.publish(SyncProgress(total_articles=1))
        emitter.publish(SyncProgress(total_articles=2))

        assert calls == [1]


class TestSyncProgress:
    """Tests for SyncProgress."""

    def test_percent(self) -> None:
        """Should compute the processed percentage."""
        assert SyncProgress(total_articles=10, processed_articles=4).percent == 40.0

    def test_percent_empty(self) -> None:
        """Nothing to sync counts as complete."""
        assert SyncProgress().percent == 100.0

    def test_to_dict(self) -> None:
        """Should use the listener payload keys."""
        progress = SyncProgress(
            is_syncing=True, total_articles=10, processed_articles=4, phase=SyncPhase.INITIAL
        )
        assert progress.to_dict() == {
            "isSyncing": True,
            "totalArticles": 10,
            "processedArticles": 4,
            "phase": "initial",
        }


class TestNotificationEmitter:
    """Tests for NotificationEmitter."""

    def test_notify(self) -> None:
        """Listeners receive the notification."""
        emitter = NotificationEmitter()
        received: list[Notification] = []
        emitter.subscribe(received.append)

        emitter.notify(replacing_local_articles(3))

        assert len(received) == 1
        assert received[0].message == "Replacing 3 local articles with your remote storage..."
        assert received[0].type == NotificationType.INFO

    def test_unsubscribe(self) -> None:
        """An unsubscribed listener is not called."""
        emitter = NotificationEmitter()
        received: list[Notification] = []
        emitter.subscribe(received.append)()
        emitter.notify(Notification(title="t", message="m"))
        assert received == []

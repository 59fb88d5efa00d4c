"""Per-connection reconciliation state.

A fresh ConnectionContext is created on every connect and every
disconnect, so nothing in it ever outlives a connection. Handlers that
suspend keep a reference to the context they started with and check it
is still current before writing anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ConnectionContext:
    """State owned by the orchestrator for one connection.

    Attributes:
        generation: Increases with every new context
        user_address: Account address reported on connect
        is_initial: Whether the cache was empty when this connection's sync began
        preparing_reset: Set while the cache is being cleared on connect
        sync_completed: Whether a catchup pass has finished on this connection
        latched_total: Progress denominator, fixed once computed
        catchup_running: Whether a catchup pass is in progress
        processed: Article paths added or updated on this connection
        in_flight: Article paths with a fetch in progress
        deletions: Per-path deletion counter, used to discard stale fetches
    """

    generation: int = 0
    user_address: str | None = None
    is_initial: bool = True
    preparing_reset: bool = False
    sync_completed: bool = False
    latched_total: int | None = None
    catchup_running: bool = False
    processed: set[str] = field(default_factory=set)
    in_flight: set[str] = field(default_factory=set)
    deletions: dict[str, int] = field(default_factory=dict)

    def successor(self, **kwargs: object) -> ConnectionContext:
        """Create the next, empty context."""
        return ConnectionContext(generation=self.generation + 1, **kwargs)  # type: ignore[arg-type]

    @property
    def is_latched(self) -> bool:
        """Check if the progress total has been latched."""
        return self.latched_total is not None

    def was_processed(self, path: str) -> bool:
        """Check if a path was already added or updated on this connection."""
        return path in self.processed

    def mark_processed(self, path: str) -> None:
        """Record that a path was added or updated."""
        self.processed.add(path)

    def forget(self, path: str) -> None:
        """Record that a path was deleted.

        Any fetch for the path that started before this call is stale.
        """
        self.processed.discard(path)
        self.deletions[path] = self.deletions.get(path, 0) + 1

    def deletion_mark(self, path: str) -> int:
        """Get the current deletion counter of a path."""
        return self.deletions.get(path, 0)

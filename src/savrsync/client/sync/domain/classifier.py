"""Change classification.

Change events carry only a before/after value pair, which does not tell an
addition from an update when the process was not running at the time of
the change. The local cache fills that gap.

| old   | new   | local    | processed | Action |
|-------|-------|----------|-----------|--------|
| set   | unset | *        | *         | DELETE |
| set   | set   | *        | *         | UPDATE |
| unset | set   | found    | *         | UPDATE |
| unset | set   | missing  | yes       | SKIP   |
| unset | set   | missing  | no        | ADD    |
| unset | unset | *        | *         | SKIP   |

Updates are never deduplicated, additions are.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from savrsync.client.sync.types import ChangeEvent, SyncAction

if TYPE_CHECKING:
    from savrsync.client.cache import Article


def classify(
    event: ChangeEvent,
    existing_local: Article | None,
    already_processed: bool,
) -> SyncAction:
    """Decide what to do with a change event.

    Args:
        event: The change event
        existing_local: The cached article for the event's slug, if any
        already_processed: Whether the path was handled on this connection

    Returns:
        The action to take
    """
    if event.old_value is not None and event.new_value is None:
        return SyncAction.DELETE

    if event.new_value is not None:
        # Known to the remote replica, or known to us from an earlier run
        is_update = event.old_value is not None or existing_local is not None

        if not is_update and already_processed:
            return SyncAction.SKIP
        if not is_update and existing_local is not None:
            return SyncAction.SKIP

        return SyncAction.UPDATE if is_update else SyncAction.ADD

    return SyncAction.SKIP

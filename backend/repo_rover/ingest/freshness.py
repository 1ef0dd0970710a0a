"""Skip re-scans of repositories ingested recently."""

from __future__ import annotations

from typing import Callable

from repo_rover.db.conversations import ConversationLog
from repo_rover.utils.time import HOUR_MS, now_ms


class FreshnessGate:
    """Elapsed-time check on the (owner, repository) ingestion record.

    Only time is compared: a repository that changed upstream inside the
    window keeps serving the vectors of the earlier scan. Records that were
    created by chat alone (never ingested) do not count as fresh.
    """

    def __init__(
        self,
        conversations: ConversationLog,
        window_ms: int = 24 * HOUR_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.conversations = conversations
        self.window_ms = window_ms
        self.clock = clock

    def should_skip(self, owner_id: str, repository_key: str) -> bool:
        record = self.conversations.get_ingestion(owner_id, repository_key)
        if record is None or record.indexed_at is None:
            return False
        return self.clock() - record.last_accessed < self.window_ms


__all__ = ["FreshnessGate"]

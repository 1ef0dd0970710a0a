"""Conversation log keyed by (owner, repository)."""

from __future__ import annotations

from typing import Callable

from repo_rover.db.sqlite import SQLiteDatabase
from repo_rover.models.entities import IngestionRecord, Message, Role
from repo_rover.utils.time import now_ms


class ConversationLog:
    """Persist ingestion records and their ordered messages.

    Timestamps are epoch milliseconds. ``clock`` is injectable so callers can
    control time in tests.
    """

    def __init__(self, db: SQLiteDatabase, clock: Callable[[], int] = now_ms) -> None:
        self.db = db
        self.clock = clock

    def get_ingestion(self, owner_id: str, repository_key: str) -> IngestionRecord | None:
        row = self.db.execute(
            "SELECT owner_id, repository_key, last_accessed, indexed_at FROM ingestions "
            "WHERE owner_id = ? AND repository_key = ?",
            [owner_id, repository_key],
        ).fetchone()
        if row is None:
            return None
        return IngestionRecord(
            owner_id=row["owner_id"],
            repository_key=row["repository_key"],
            last_accessed=row["last_accessed"],
            indexed_at=row["indexed_at"],
        )

    def record_ingestion(self, owner_id: str, repository_key: str) -> None:
        """Mark a completed ingestion, refreshing ``last_accessed``."""
        now = self.clock()
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO ingestions (owner_id, repository_key, last_accessed, indexed_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (owner_id, repository_key)
                DO UPDATE SET last_accessed = excluded.last_accessed, indexed_at = excluded.indexed_at
                """,
                [owner_id, repository_key, now, now],
            )

    def touch(self, owner_id: str, repository_key: str) -> None:
        with self.db.transaction() as conn:
            self._ensure(conn, owner_id, repository_key)
            conn.execute(
                "UPDATE ingestions SET last_accessed = ? WHERE owner_id = ? AND repository_key = ?",
                [self.clock(), owner_id, repository_key],
            )

    def append_message(self, owner_id: str, repository_key: str, role: Role, text: str) -> Message:
        if role not in ("user", "bot"):
            raise ValueError(f"Unknown message role: {role}")
        timestamp = self.clock()
        with self.db.transaction() as conn:
            self._ensure(conn, owner_id, repository_key)
            conn.execute(
                "INSERT INTO messages (owner_id, repository_key, role, text, created_at) VALUES (?, ?, ?, ?, ?)",
                [owner_id, repository_key, role, text, timestamp],
            )
        return Message(role=role, text=text, timestamp=timestamp)

    def history(self, owner_id: str, repository_key: str) -> list[Message]:
        rows = self.db.query(
            "SELECT role, text, created_at FROM messages WHERE owner_id = ? AND repository_key = ? ORDER BY id ASC",
            [owner_id, repository_key],
        )
        return [Message(role=row["role"], text=row["text"], timestamp=row["created_at"]) for row in rows]

    def list_repositories(self, owner_id: str) -> list[IngestionRecord]:
        rows = self.db.query(
            "SELECT owner_id, repository_key, last_accessed, indexed_at FROM ingestions "
            "WHERE owner_id = ? ORDER BY last_accessed DESC, repository_key ASC",
            [owner_id],
        )
        return [
            IngestionRecord(
                owner_id=row["owner_id"],
                repository_key=row["repository_key"],
                last_accessed=row["last_accessed"],
                indexed_at=row["indexed_at"],
            )
            for row in rows
        ]

    def _ensure(self, conn, owner_id: str, repository_key: str) -> None:
        conn.execute(
            "INSERT OR IGNORE INTO ingestions (owner_id, repository_key, last_accessed) VALUES (?, ?, ?)",
            [owner_id, repository_key, self.clock()],
        )


__all__ = ["ConversationLog"]

"""Transcript log abstractions and SQLite implementation."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Sequence

from callorder.core.db import sqlite_connection

from .models import MessageTurn


class TranscriptStore(ABC):
    """Abstract interface for reading and writing conversation transcripts."""

    @abstractmethod
    def append_turn(self, turn: MessageTurn) -> None:
        """Persist a single conversational turn."""

    @abstractmethod
    def fetch_recent_turns(self, conversation_id: str, limit: int = 10) -> Sequence[MessageTurn]:
        """Return the most recent turns for a conversation, oldest first."""

    @abstractmethod
    def reset(self, conversation_id: str) -> None:
        """Clear stored turns for a conversation."""

    @abstractmethod
    def iter_conversations(self) -> Iterable[str]:
        """Iterate over conversation identifiers that have turns."""


class SQLiteTranscriptStore(TranscriptStore):
    """SQLite-backed transcript log, sharing the order database."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        with sqlite_connection(self.db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id TEXT NOT NULL,
                    role TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    metadata TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_messages_conversation
                    ON messages (conversation_id, id);
                """
            )

    def append_turn(self, turn: MessageTurn) -> None:
        with sqlite_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO messages (conversation_id, role, content, created_at, metadata)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    turn.conversation_id,
                    turn.role,
                    turn.content,
                    turn.created_at.isoformat(),
                    _json_dumps(turn.metadata),
                ),
            )

    def fetch_recent_turns(self, conversation_id: str, limit: int = 10) -> Sequence[MessageTurn]:
        # Insertion id, not timestamp: turns logged within the same tick keep their order.
        with sqlite_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT conversation_id, role, content, created_at, metadata
                FROM messages
                WHERE conversation_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (conversation_id, limit),
            ).fetchall()

        turns = [
            MessageTurn(
                conversation_id=row["conversation_id"],
                role=row["role"],
                content=row["content"],
                created_at=datetime.fromisoformat(row["created_at"]),
                metadata=json.loads(row["metadata"] or "{}"),
            )
            for row in rows
        ]
        turns.reverse()
        return turns

    def reset(self, conversation_id: str) -> None:
        with sqlite_connection(self.db_path) as conn:
            conn.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))

    def iter_conversations(self) -> Iterable[str]:
        with sqlite_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT DISTINCT conversation_id FROM messages ORDER BY conversation_id"
            )
            return [row["conversation_id"] for row in rows]


def _json_dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), default=str)

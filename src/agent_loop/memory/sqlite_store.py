"""SQLite persistence for mirrored conversation messages."""

from __future__ import annotations

import json
import re
import sqlite3
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

SCHEMA = """
CREATE TABLE IF NOT EXISTS memory_messages (
    memory_id     TEXT PRIMARY KEY,
    user_id       TEXT NOT NULL,
    role          TEXT NOT NULL,
    text          TEXT NOT NULL,
    metadata_json TEXT,
    created_at    TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_memory_messages_user_id
    ON memory_messages (user_id, created_at);
CREATE VIRTUAL TABLE IF NOT EXISTS memory_messages_fts
    USING fts5(memory_id UNINDEXED, content);
"""

SEARCH_SQL = """
SELECT m.*, bm25(memory_messages_fts) AS rank
FROM memory_messages m
JOIN memory_messages_fts ON memory_messages_fts.memory_id = m.memory_id
WHERE m.user_id = ? AND memory_messages_fts MATCH ?
ORDER BY rank
LIMIT ?
"""


@dataclass
class MemoryRow:
    memory_id: str
    user_id: str
    role: str
    text: str
    metadata: dict[str, Any] | None
    created_at: str

    @classmethod
    def from_sql(cls, row: sqlite3.Row) -> MemoryRow:
        raw = row["metadata_json"]
        return cls(
            memory_id=row["memory_id"],
            user_id=row["user_id"],
            role=row["role"],
            text=row["text"],
            metadata=json.loads(raw) if raw is not None else None,
            created_at=row["created_at"],
        )


def _match_expression(query: str) -> str | None:
    """FTS5 MATCH string that ORs the quoted words of `query`."""
    terms = re.findall(r"\w+", query or "")
    return " OR ".join(f'"{t}"' for t in terms) or None


class SQLiteMessageStore:
    """
    User-scoped message rows with an FTS5 index over their text.

    One connection shared across worker threads, serialized by a lock.
    """

    def __init__(self, db_path: Path) -> None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.executescript(SCHEMA)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteMessageStore is closed")
        return self._conn

    def insert_message(
        self,
        user_id: str,
        role: str,
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryRow:
        if not user_id:
            raise ValueError("user_id is required")
        row = MemoryRow(
            memory_id=str(uuid.uuid4()),
            user_id=user_id,
            role=role,
            text=text,
            metadata=metadata,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        metadata_json = json.dumps(metadata, default=str) if metadata is not None else None
        with self._lock:
            conn = self._connection()
            with conn:
                conn.execute(
                    "INSERT INTO memory_messages VALUES (?, ?, ?, ?, ?, ?)",
                    (row.memory_id, row.user_id, row.role, row.text, metadata_json, row.created_at),
                )
                if text:
                    conn.execute(
                        "INSERT INTO memory_messages_fts(memory_id, content) VALUES (?, ?)",
                        (row.memory_id, text),
                    )
        return row

    def search_text(self, user_id: str, query: str, limit: int = 10) -> list[tuple[MemoryRow, float]]:
        """Keyword recall for one user; (row, score) pairs, best first."""
        match = _match_expression(query)
        if match is None:
            return []
        with self._lock:
            try:
                rows = self._connection().execute(SEARCH_SQL, (user_id, match, limit)).fetchall()
            except sqlite3.OperationalError:
                return []
        # bm25() is lower-is-better and usually negative.
        return [(MemoryRow.from_sql(r), -float(r["rank"])) for r in rows]

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


__all__ = ["MemoryRow", "SQLiteMessageStore"]

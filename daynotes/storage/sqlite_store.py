from __future__ import annotations

import sqlite3
import threading
from contextlib import closing
from pathlib import Path
from typing import Sequence

from daynotes.core.days import parse_day_id
from daynotes.core.models import NoteRecord, utc_timestamp
from daynotes.logging_setup import get_logger
from daynotes.storage.base import NoteStore

log = get_logger("storage")

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS notes (
        id TEXT PRIMARY KEY,
        body TEXT NOT NULL DEFAULT '',
        note_type TEXT NOT NULL DEFAULT 'day',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_notes_type ON notes(note_type)",
    "CREATE INDEX IF NOT EXISTS idx_notes_updated ON notes(updated_at)",
)

# An identical rewrite leaves the row (and its updated_at) alone.
_UPSERT = """
    INSERT INTO notes (id, body, note_type, created_at, updated_at)
    VALUES (?, ?, 'day', ?, ?)
    ON CONFLICT(id) DO UPDATE SET
        body = excluded.body,
        updated_at = excluded.updated_at
    WHERE notes.body != excluded.body
"""

_SELECT_ONE = "SELECT id, body, updated_at FROM notes WHERE id = ? AND note_type = 'day'"


class SqliteNoteStore(NoteStore):
    """Day notes in one SQLite file; a fresh connection per call."""

    def __init__(self, db_path: Path, *, timeout_s: float = 5.0):
        self.db_path = Path(db_path)
        self.timeout_s = float(timeout_s)
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.timeout_s)
        with self._schema_lock:
            if not self._schema_ready:
                for i, stmt in enumerate(_SCHEMA):
                    try:
                        conn.execute(stmt)
                    except sqlite3.Error:
                        conn.close()
                        log.exception("Schema statement #%d failed: %s", i + 1, self.db_path)
                        raise
                conn.commit()
                self._schema_ready = True
                log.info("Database initialized: %s", self.db_path)
        return conn

    @staticmethod
    def _row_to_record(row) -> NoteRecord:
        return NoteRecord(day=row[0], content=row[1], updated_at=row[2])

    def load_notes_for_days(self, days: Sequence[str]) -> list[NoteRecord]:
        days = list(dict.fromkeys(days))
        if not days:
            return []
        placeholders = ",".join("?" for _ in days)
        query = (
            f"SELECT id, body, updated_at FROM notes "
            f"WHERE id IN ({placeholders}) AND note_type = 'day' "
            f"ORDER BY id DESC"
        )
        with closing(self._connect()) as conn:
            rows = conn.execute(query, days).fetchall()
        return [self._row_to_record(r) for r in rows]

    def save_note(self, day: str, content: str) -> NoteRecord:
        parse_day_id(day)
        now = utc_timestamp()
        with closing(self._connect()) as conn:
            with conn:
                conn.execute(_UPSERT, (day, content, now, now))
                row = conn.execute(_SELECT_ONE, (day,)).fetchone()
        return self._row_to_record(row)

    def load_note(self, day: str) -> NoteRecord | None:
        with closing(self._connect()) as conn:
            row = conn.execute(_SELECT_ONE, (day,)).fetchone()
        return self._row_to_record(row) if row else None

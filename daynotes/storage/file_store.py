from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from daynotes.core.days import parse_day_id
from daynotes.core.models import NoteRecord, utc_timestamp
from daynotes.storage.base import NoteStore
from daynotes.storage.filesystem import atomic_write_text


class FileNoteStore(NoteStore):
    """
    One `<day>.md` file per note in notes_dir.
    updated_at comes from the file mtime.
    """

    def __init__(self, notes_dir: Path):
        self.notes_dir = Path(notes_dir)

    def ensure(self) -> None:
        self.notes_dir.mkdir(parents=True, exist_ok=True)

    def note_path(self, day: str) -> Path:
        # validates the id, so it can never escape notes_dir
        parse_day_id(day)
        return self.notes_dir / f"{day}.md"

    def _read(self, path: Path) -> NoteRecord:
        content = path.read_text(encoding="utf-8")
        mtime = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
        return NoteRecord(day=path.stem, content=content, updated_at=utc_timestamp(mtime))

    def load_notes_for_days(self, days: Sequence[str]) -> list[NoteRecord]:
        out: list[NoteRecord] = []
        for day in sorted(set(days), reverse=True):
            path = self.note_path(day)
            if path.exists():
                out.append(self._read(path))
        return out

    def save_note(self, day: str, content: str) -> NoteRecord:
        path = self.note_path(day)
        if path.exists() and path.read_text(encoding="utf-8") == content:
            return self._read(path)
        atomic_write_text(path, content, encoding="utf-8")
        return self._read(path)

    def load_note(self, day: str) -> NoteRecord | None:
        path = self.note_path(day)
        return self._read(path) if path.exists() else None

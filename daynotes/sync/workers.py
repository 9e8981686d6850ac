from __future__ import annotations

from PySide6.QtCore import QObject, QRunnable, Signal

from daynotes.storage.base import NoteStore


class _StoreSignals(QObject):
    finished = Signal(int, object)
    failed = Signal(int, str)


class _LoadNotesWorker(QRunnable):
    """Bulk read of the visible window."""

    def __init__(self, *, req_id: int, store: NoteStore, days: list[str]):
        super().__init__()
        self.req_id = req_id
        self.store = store
        self.days = list(days)
        self.signals = _StoreSignals()

    def run(self):
        try:
            records = self.store.load_notes_for_days(self.days)
            self.signals.finished.emit(self.req_id, list(records))
        except Exception as e:
            self.signals.failed.emit(self.req_id, f"{type(e).__name__}: {e}")


class _LoadNoteWorker(QRunnable):
    def __init__(self, *, req_id: int, store: NoteStore, day: str):
        super().__init__()
        self.req_id = req_id
        self.store = store
        self.day = day
        self.signals = _StoreSignals()

    def run(self):
        try:
            record = self.store.load_note(self.day)
            self.signals.finished.emit(self.req_id, record)
        except Exception as e:
            self.signals.failed.emit(self.req_id, f"{type(e).__name__}: {e}")


class _SaveNoteWorker(QRunnable):
    """Single upsert of (day, content)."""

    def __init__(self, *, req_id: int, store: NoteStore, day: str, content: str):
        super().__init__()
        self.req_id = req_id
        self.store = store
        self.day = day
        self.content = content
        self.signals = _StoreSignals()

    def run(self):
        try:
            record = self.store.save_note(self.day, self.content)
            self.signals.finished.emit(self.req_id, record)
        except Exception as e:
            self.signals.failed.emit(self.req_id, f"{type(e).__name__}: {e}")

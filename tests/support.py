import threading
import time

from PySide6.QtCore import QCoreApplication, QEventLoop

from daynotes.core.models import NoteRecord, utc_timestamp
from daynotes.storage.base import NoteStore


def process_events(ms: int) -> None:
    deadline = time.monotonic() + ms / 1000.0
    while time.monotonic() < deadline:
        QCoreApplication.processEvents(QEventLoop.AllEvents, 10)
        time.sleep(0.002)


def wait_until(predicate, timeout_ms: int = 3000) -> bool:
    deadline = time.monotonic() + timeout_ms / 1000.0
    while time.monotonic() < deadline:
        QCoreApplication.processEvents(QEventLoop.AllEvents, 10)
        if predicate():
            return True
        time.sleep(0.002)
    return predicate()


class MemoryStore(NoteStore):
    """
    Thread-safe in-memory store with switches for failures and gates that
    hold a call until the test releases it.
    """

    def __init__(self, notes=None):
        self._lock = threading.Lock()
        self.notes = {
            day: NoteRecord(day=day, content=content, updated_at=utc_timestamp())
            for day, content in (notes or {}).items()
        }
        self.save_calls = []
        self.load_calls = []
        self.fail_saves = False
        self.fail_loads = False
        self.save_gate = None
        self.load_gate = None

    def load_notes_for_days(self, days):
        with self._lock:
            self.load_calls.append(list(days))
            # read before the gate: the result reflects the store at call time
            result = [self.notes[d] for d in days if d in self.notes]
        if self.load_gate is not None:
            self.load_gate.wait(5)
        if self.fail_loads:
            raise OSError("disk unavailable")
        return result

    def save_note(self, day, content):
        with self._lock:
            self.save_calls.append((day, content))
        if self.save_gate is not None:
            self.save_gate.wait(5)
        if self.fail_saves:
            raise OSError("disk full")
        record = NoteRecord(day=day, content=content, updated_at=utc_timestamp())
        with self._lock:
            self.notes[day] = record
        return record

    def load_note(self, day):
        with self._lock:
            self.load_calls.append([day])
            result = self.notes.get(day)
        if self.load_gate is not None:
            self.load_gate.wait(5)
        if self.fail_loads:
            raise OSError("disk unavailable")
        return result

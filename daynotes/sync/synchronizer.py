from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Optional, Sequence

from PySide6.QtCore import QObject, QThreadPool, QTimer, Signal, Slot

from daynotes.core.errors import HydrationError, SaveTimeoutError, WriteError
from daynotes.logging_setup import get_logger
from daynotes.storage.base import NoteStore
from daynotes.storage.filesystem import write_recovery_copy
from daynotes.sync.cache import NoteCache
from daynotes.sync.workers import _LoadNoteWorker, _LoadNotesWorker, _SaveNoteWorker


@dataclass
class _PendingWrite:
    req_id: int
    day: str
    content: str
    worker: Optional[_SaveNoteWorker] = None
    watchdog: Optional[QTimer] = None
    timed_out: bool = False


@dataclass
class _PendingHydration:
    req_id: int
    days: tuple[str, ...]
    since_epoch: int
    worker: Optional[_LoadNotesWorker] = None
    watchdog: Optional[QTimer] = None
    timed_out: bool = False


@dataclass
class _PendingDayLoad:
    req_id: int
    day: str
    since_epoch: int
    worker: Optional[_LoadNoteWorker] = None
    watchdog: Optional[QTimer] = None
    timed_out: bool = False


class Synchronizer(QObject):
    """
    Runs storage calls on a thread pool and reconciles results into the cache:
      - hydrate(days): one bulk read per window, superseded results dropped
      - load_day(day): single read for a day no bulk read has covered
      - flush(day, content): upsert; same-day writes run strictly in issue
        order, different days in parallel
      - every call has a watchdog started when the call is issued, so a
        write waiting behind a hung one still times out

    Results arrive as queued signals, so cache updates and the signals below
    are always emitted on the thread that owns this object.
    """

    saved = Signal(int, object)  # req_id, NoteRecord
    save_failed = Signal(int, object)  # req_id, WriteError
    hydrated = Signal(object)  # list[str] of hydrated day ids
    hydration_failed = Signal(object)  # HydrationError
    day_loaded = Signal(str)  # day id, now known to the cache
    day_load_failed = Signal(str, object)  # day id, HydrationError

    def __init__(
        self,
        *,
        store: NoteStore,
        cache: NoteCache,
        pool: Optional[QThreadPool] = None,
        timeout_ms: int = 10_000,
        recovery_dir: Optional[Path] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._log = get_logger("sync")
        self._store = store
        self._cache = cache
        self._pool = pool or QThreadPool.globalInstance()
        self._timeout_ms = int(timeout_ms)
        self._recovery_dir = Path(recovery_dir) if recovery_dir is not None else None

        self._seq = 0
        # every issued, unresolved write (running or queued)
        self._writes: dict[int, _PendingWrite] = {}
        self._queued: dict[str, deque[_PendingWrite]] = {}
        self._busy_days: set[str] = set()

        self._hydration_seq = 0
        self._hydration: Optional[_PendingHydration] = None

        self._load_seq = 0
        self._day_loads: dict[str, _PendingDayLoad] = {}

    # ───────────────────────── public API ─────────────────────────

    @property
    def cache(self) -> NoteCache:
        return self._cache

    @property
    def pool(self) -> QThreadPool:
        return self._pool

    def has_pending_writes(self) -> bool:
        return bool(self._writes)

    def pending_for(self, day: str) -> tuple[int, str] | None:
        """Newest issued-but-unresolved (req_id, content) for `day`."""
        mine = [p for p in self._writes.values() if p.day == day]
        if not mine:
            return None
        newest = max(mine, key=lambda p: p.req_id)
        return newest.req_id, newest.content

    def is_loading(self, day: str) -> bool:
        return day in self._day_loads

    def flush(self, day: str, content: str) -> int:
        """Issue a write of (day, content). Returns its request id."""
        self._seq += 1
        pending = _PendingWrite(req_id=self._seq, day=day, content=content)
        pending.watchdog = self._make_watchdog(partial(self._on_write_timeout, pending.req_id))
        self._writes[pending.req_id] = pending

        if day in self._busy_days:
            self._queued.setdefault(day, deque()).append(pending)
            self._log.debug("Write queued behind in-flight write: day=%s req=%s", day, pending.req_id)
        else:
            self._start_write(pending)
        pending.watchdog.start()
        return pending.req_id

    def hydrate(self, days: Sequence[str], *, force: bool = False) -> int | None:
        """
        Bulk-load `days` into the cache if the window changed (or force).
        Returns the request id, or None when the cache already covers the window.
        """
        days = tuple(days)
        current = self._hydration
        if not force:
            if current is not None and not current.timed_out and frozenset(current.days) == frozenset(days):
                return current.req_id
            if current is None and self._cache.is_hydrated_for(days):
                return None

        if current is not None and current.watchdog is not None:
            current.watchdog.stop()
            current.watchdog.deleteLater()

        self._hydration_seq += 1
        pending = _PendingHydration(
            req_id=self._hydration_seq,
            days=days,
            since_epoch=self._cache.write_epoch,
        )
        worker = _LoadNotesWorker(req_id=pending.req_id, store=self._store, days=list(days))
        worker.setAutoDelete(False)
        worker.signals.finished.connect(self._on_load_finished)
        worker.signals.failed.connect(self._on_load_failed)
        pending.worker = worker
        pending.watchdog = self._make_watchdog(partial(self._on_load_timeout, pending.req_id))
        self._hydration = pending

        self._log.info("Hydrating %d day(s): req=%s", len(days), pending.req_id)
        self._pool.start(worker)
        pending.watchdog.start()
        return pending.req_id

    def load_day(self, day: str) -> int:
        """
        Read one day's note into the cache. Answers with `day_loaded` or
        `day_load_failed`; a read already running for the day is reused.
        """
        current = self._day_loads.get(day)
        if current is not None and not current.timed_out:
            return current.req_id
        if current is not None and current.watchdog is not None:
            current.watchdog.stop()
            current.watchdog.deleteLater()

        self._load_seq += 1
        pending = _PendingDayLoad(req_id=self._load_seq, day=day, since_epoch=self._cache.write_epoch)
        worker = _LoadNoteWorker(req_id=pending.req_id, store=self._store, day=day)
        worker.setAutoDelete(False)
        worker.signals.finished.connect(self._on_day_load_finished)
        worker.signals.failed.connect(self._on_day_load_failed)
        pending.worker = worker
        pending.watchdog = self._make_watchdog(partial(self._on_day_load_timeout, pending.req_id, day))
        self._day_loads[day] = pending

        self._log.debug("Loading single day: day=%s req=%s", day, pending.req_id)
        self._pool.start(worker)
        pending.watchdog.start()
        return pending.req_id

    # ───────────────────────── writes ─────────────────────────

    def _make_watchdog(self, on_timeout) -> QTimer:
        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(self._timeout_ms)
        timer.timeout.connect(on_timeout)
        return timer

    def _start_write(self, pending: _PendingWrite) -> None:
        worker = _SaveNoteWorker(
            req_id=pending.req_id,
            store=self._store,
            day=pending.day,
            content=pending.content,
        )
        worker.setAutoDelete(False)
        worker.signals.finished.connect(self._on_write_finished)
        worker.signals.failed.connect(self._on_write_failed)
        pending.worker = worker

        self._busy_days.add(pending.day)
        self._log.debug("Write started: day=%s req=%s len=%d", pending.day, pending.req_id, len(pending.content))
        self._pool.start(worker)

    def _release_day(self, day: str) -> None:
        self._busy_days.discard(day)
        queue = self._queued.get(day)
        if queue:
            self._start_write(queue.popleft())
        if not queue:
            self._queued.pop(day, None)

    def _finish(self, req_id: int) -> _PendingWrite | None:
        pending = self._writes.pop(req_id, None)
        if pending is not None and pending.watchdog is not None:
            pending.watchdog.stop()
            pending.watchdog.deleteLater()
        return pending

    def _save_recovery_copy(self, pending: _PendingWrite) -> None:
        if self._recovery_dir is None:
            return
        try:
            path = write_recovery_copy(self._recovery_dir, pending.day, pending.content)
            self._log.critical("Recovery copy written: %s", path)
        except Exception:
            self._log.exception("Failed to write recovery copy: day=%s", pending.day)

    @Slot(int, object)
    def _on_write_finished(self, req_id: int, record) -> None:
        pending = self._finish(req_id)
        if pending is None:
            return
        applied = self._cache.apply_write(record, req_id)
        if pending.timed_out:
            self._log.warning("Write completed after timeout: day=%s req=%s", pending.day, req_id)
        self._log.info("Note saved: day=%s req=%s applied=%s", record.day, req_id, applied)
        self._release_day(pending.day)
        self.saved.emit(req_id, record)

    @Slot(int, str)
    def _on_write_failed(self, req_id: int, message: str) -> None:
        pending = self._finish(req_id)
        if pending is None:
            return
        self._log.error("Save failed: day=%s req=%s: %s", pending.day, req_id, message)
        self._release_day(pending.day)
        if pending.timed_out:
            # already reported (and recovery copy written) by the watchdog
            return
        self._save_recovery_copy(pending)
        self.save_failed.emit(req_id, WriteError(message, day=pending.day, content=pending.content))

    def _on_write_timeout(self, req_id: int) -> None:
        pending = self._writes.get(req_id)
        if pending is None or pending.timed_out:
            return
        pending.timed_out = True
        started = pending.worker is not None
        message = f"save timed out after {self._timeout_ms} ms"
        if not started:
            message += " (waiting behind an unfinished save)"
        self._log.warning("Save timed out: day=%s req=%s started=%s", pending.day, req_id, started)
        self._save_recovery_copy(pending)
        self.save_failed.emit(req_id, SaveTimeoutError(message, day=pending.day, content=pending.content))

    # ───────────────────────── hydration ─────────────────────────

    def _current_hydration(self, req_id: int) -> _PendingHydration | None:
        current = self._hydration
        if current is None or current.req_id != req_id:
            self._log.debug("Dropping stale hydration result: req=%s", req_id)
            return None
        self._hydration = None
        if current.watchdog is not None:
            current.watchdog.stop()
            current.watchdog.deleteLater()
        return current

    @Slot(int, object)
    def _on_load_finished(self, req_id: int, records) -> None:
        current = self._current_hydration(req_id)
        if current is None:
            return
        self._cache.replace_window(current.days, records, since_epoch=current.since_epoch)
        self._log.info("Hydrated: req=%s notes=%d", req_id, len(records))
        self.hydrated.emit(list(current.days))

    @Slot(int, str)
    def _on_load_failed(self, req_id: int, message: str) -> None:
        current = self._current_hydration(req_id)
        if current is None:
            return
        self._log.error("Hydration failed: req=%s: %s", req_id, message)
        if not current.timed_out:
            self.hydration_failed.emit(HydrationError(message))

    def _on_load_timeout(self, req_id: int) -> None:
        current = self._hydration
        if current is None or current.req_id != req_id or current.timed_out:
            return
        current.timed_out = True
        self._log.warning("Hydration timed out: req=%s", req_id)
        self.hydration_failed.emit(HydrationError(f"load timed out after {self._timeout_ms} ms"))

    # ───────────────────────── single-day reads ─────────────────────────

    def _current_day_load(self, req_id: int) -> _PendingDayLoad | None:
        for day, pending in self._day_loads.items():
            if pending.req_id == req_id:
                del self._day_loads[day]
                if pending.watchdog is not None:
                    pending.watchdog.stop()
                    pending.watchdog.deleteLater()
                return pending
        self._log.debug("Dropping stale day load result: req=%s", req_id)
        return None

    @Slot(int, object)
    def _on_day_load_finished(self, req_id: int, record) -> None:
        pending = self._current_day_load(req_id)
        if pending is None:
            return
        self._cache.apply_load(pending.day, record, since_epoch=pending.since_epoch)
        self.day_loaded.emit(pending.day)

    @Slot(int, str)
    def _on_day_load_failed(self, req_id: int, message: str) -> None:
        pending = self._current_day_load(req_id)
        if pending is None:
            return
        self._log.error("Loading day failed: day=%s req=%s: %s", pending.day, req_id, message)
        if not pending.timed_out:
            self.day_load_failed.emit(pending.day, HydrationError(message))

    def _on_day_load_timeout(self, req_id: int, day: str) -> None:
        pending = self._day_loads.get(day)
        if pending is None or pending.req_id != req_id or pending.timed_out:
            return
        pending.timed_out = True
        self._log.warning("Loading day timed out: day=%s req=%s", day, req_id)
        self.day_load_failed.emit(day, HydrationError(f"load timed out after {self._timeout_ms} ms"))

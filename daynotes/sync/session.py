from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot

from daynotes.core.days import day_window
from daynotes.core.errors import HydrationError, WriteError
from daynotes.core.models import (
    DayEntry,
    EditSession,
    HydrationState,
    NoteRecord,
    SaveStatus,
    SessionSnapshot,
)
from daynotes.logging_setup import get_logger
from daynotes.settings import DEFAULT_DEBOUNCE_MS, DEFAULT_WINDOW_DAYS
from daynotes.sync.debounce import Debouncer
from daynotes.sync.synchronizer import Synchronizer


class EditorController(QObject):
    """
    Owns the single active edit session and drives it through
    IDLE -> DIRTY -> SAVING -> SAVED | FAILED.

    The view calls select_day()/update_content() and renders whatever
    `changed` emits. A write result only touches the session if it answers
    the session's newest request; "clean" is decided by comparing the written
    content with the live content, never by completion order.

    A session for a day whose stored note is not known yet starts with
    `loaded=False` and refuses edits until the note has been read.
    """

    changed = Signal(object)  # SessionSnapshot
    window_changed = Signal(object)  # list[DayEntry]
    hydration_changed = Signal(object)  # HydrationState

    def __init__(
        self,
        *,
        synchronizer: Synchronizer,
        window_days: int = DEFAULT_WINDOW_DAYS,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        today: Optional[Callable[[], date]] = None,
        parent: Optional[QObject] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(parent)
        self._log = logger or get_logger("session")
        self._sync = synchronizer
        self._cache = synchronizer.cache
        self._window_days = int(window_days)
        self._today = today or date.today

        self._session: EditSession | None = None
        self._window: list[DayEntry] = []
        self._hydration_state = HydrationState.PENDING
        self._hydration_error: str | None = None

        self._debounce = Debouncer(self._on_debounce_fired, interval_ms=debounce_ms, parent=self)

        synchronizer.saved.connect(self._on_saved)
        synchronizer.save_failed.connect(self._on_save_failed)
        synchronizer.hydrated.connect(self._on_hydrated)
        synchronizer.hydration_failed.connect(self._on_hydration_failed)
        synchronizer.day_loaded.connect(self._on_day_loaded)
        synchronizer.day_load_failed.connect(self._on_day_load_failed)

    # ───────────────────────── state ─────────────────────────

    @property
    def session(self) -> EditSession | None:
        return self._session

    @property
    def window(self) -> list[DayEntry]:
        return list(self._window)

    @property
    def hydration_state(self) -> HydrationState:
        return self._hydration_state

    @property
    def hydration_error(self) -> str | None:
        return self._hydration_error

    @property
    def debouncer(self) -> Debouncer:
        return self._debounce

    def snapshot(self) -> SessionSnapshot | None:
        return self._session.snapshot() if self._session is not None else None

    def _emit(self) -> None:
        if self._session is not None:
            self.changed.emit(self._session.snapshot())

    def _set_hydration_state(self, state: HydrationState, error: str | None = None) -> None:
        self._hydration_error = error
        if state != self._hydration_state:
            self._hydration_state = state
            self.hydration_changed.emit(state)

    # ───────────────────────── window ─────────────────────────

    def refresh_window(self) -> list[DayEntry]:
        """Recompute the trailing window; hydrate the cache if its days changed."""
        entries = day_window(self._window_days, today=self._today())
        ids = [e.id for e in entries]
        if ids != [e.id for e in self._window]:
            self._window = entries
            self.window_changed.emit(list(entries))

        if self._sync.hydrate(ids) is not None:
            self._set_hydration_state(HydrationState.PENDING)
        return list(entries)

    def retry_hydration(self) -> None:
        if self._window:
            self._sync.hydrate([e.id for e in self._window], force=True)
            self._set_hydration_state(HydrationState.PENDING)

    @Slot(object)
    def _on_hydrated(self, days) -> None:
        self._set_hydration_state(HydrationState.READY)
        s = self._session
        if s is not None and s.day in days:
            self._finish_loading(s)

    @Slot(object)
    def _on_hydration_failed(self, err: HydrationError) -> None:
        self._log.warning("Notes for the window could not be loaded: %s", err)
        self._set_hydration_state(HydrationState.FAILED, str(err))

    @Slot(str)
    def _on_day_loaded(self, day: str) -> None:
        s = self._session
        if s is not None and s.day == day:
            self._finish_loading(s)

    @Slot(str, object)
    def _on_day_load_failed(self, day: str, err: HydrationError) -> None:
        s = self._session
        if s is None or s.day != day or s.loaded:
            return
        self._log.warning("Note could not be loaded: day=%s: %s", day, err)
        s.error = str(err)
        self._emit()

    def _finish_loading(self, s: EditSession) -> None:
        """Show the stored note in a session opened before it was known."""
        if s.loaded or not self._cache.is_known(s.day):
            return
        stored = self._cache.content_for(s.day)
        s.content = stored
        s.baseline = stored
        s.loaded = True
        s.error = None
        self._log.debug("Note loaded: day=%s len=%d", s.day, len(stored))
        self._emit()

    # ───────────────────────── editing ─────────────────────────

    def select_day(self, day: str) -> SessionSnapshot:
        """
        Replace the session with a fresh one for `day`.
        Unsaved edits of the outgoing day are written first (never cancelled).
        """
        current = self._session
        if current is not None and current.day == day:
            return current.snapshot()

        self._flush_outgoing()

        baseline = self._cache.content_for(day)
        session = EditSession(day=day, content=baseline, baseline=baseline)

        # a write for this day is still on its way: show what is being written
        pending = self._sync.pending_for(day)
        if pending is not None:
            session.last_req_id, session.content = pending
            session.status = SaveStatus.SAVING
        elif not self._cache.is_known(day):
            # editing an empty placeholder could overwrite a stored note
            session.loaded = False

        self._session = session
        self._log.debug("Day selected: %s status=%s loaded=%s", day, session.status.value, session.loaded)
        if not session.loaded:
            self._sync.load_day(day)
        self._emit()
        return session.snapshot()

    def update_content(self, text: str) -> None:
        s = self._session
        if s is None:
            self._log.warning("Edit ignored: no day selected")
            return
        if not s.loaded:
            self._log.warning("Edit ignored: note for %s not loaded yet", s.day)
            return
        if text == s.content:
            return

        s.content = text
        in_flight = self._sync.pending_for(s.day) is not None
        if s.has_unsaved_changes or in_flight:
            s.status = SaveStatus.DIRTY
            s.error = None
            self._debounce.schedule()
        else:
            s.status = SaveStatus.IDLE
            s.error = None
            self._debounce.cancel()
        self._emit()

    def flush_now(self) -> bool:
        """Write pending edits immediately (manual save, shutdown)."""
        if self._debounce.flush():
            return True
        s = self._session
        if s is not None and s.status == SaveStatus.FAILED:
            return self.retry()
        return False

    def retry(self) -> bool:
        """Re-issue a failed save, or the read of a note that is not loaded."""
        s = self._session
        if s is not None and not s.loaded:
            self._log.info("Retrying load: day=%s", s.day)
            s.error = None
            self._sync.load_day(s.day)
            self._emit()
            return True
        if s is None or s.status != SaveStatus.FAILED:
            return False
        self._log.info("Retrying save: day=%s", s.day)
        self._issue_write(s)
        return True

    def _flush_outgoing(self) -> None:
        self._debounce.cancel()
        s = self._session
        if s is None:
            return
        if s.status in (SaveStatus.DIRTY, SaveStatus.FAILED):
            self._log.info("Flushing %s before switching day", s.day)
            self._issue_write(s)

    def _needs_write(self, s: EditSession) -> bool:
        # an empty note that was never stored stays unstored
        if s.content:
            return True
        return s.day in self._cache or self._sync.pending_for(s.day) is not None

    def _issue_write(self, s: EditSession) -> None:
        if not s.loaded:
            return
        if not self._needs_write(s):
            s.baseline = s.content
            s.status = SaveStatus.IDLE
            s.error = None
            self._emit()
            return
        s.last_req_id = self._sync.flush(s.day, s.content)
        s.status = SaveStatus.SAVING
        s.error = None
        self._emit()

    def _on_debounce_fired(self) -> None:
        s = self._session
        if s is None or s.status != SaveStatus.DIRTY:
            return
        self._issue_write(s)

    # ───────────────────────── write results ─────────────────────────

    def _answers_session(self, req_id: int, day: str) -> bool:
        s = self._session
        return s is not None and s.day == day and s.last_req_id == req_id

    @Slot(int, object)
    def _on_saved(self, req_id: int, record: NoteRecord) -> None:
        if not self._answers_session(req_id, record.day):
            self._log.debug("Save result not applied to session: day=%s req=%s", record.day, req_id)
            return
        s = self._session
        s.baseline = record.content
        s.error = None
        if s.content == record.content:
            s.status = SaveStatus.SAVED
            self._debounce.cancel()
        else:
            # typed while the write was in flight
            s.status = SaveStatus.DIRTY
            if not self._debounce.is_pending:
                self._debounce.schedule()
            self._log.info("Autosave superseded by newer edits: day=%s req=%s", s.day, req_id)
        self._emit()

    @Slot(int, object)
    def _on_save_failed(self, req_id: int, err: WriteError) -> None:
        if not self._answers_session(req_id, err.day):
            self._log.warning("Save failed for a replaced session: day=%s req=%s", err.day, req_id)
            return
        s = self._session
        s.error = str(err)
        if s.status == SaveStatus.SAVING:
            s.status = SaveStatus.FAILED
        # DIRTY: newer edits are already scheduled and will retry
        self._emit()

from __future__ import annotations

import time

from PySide6.QtCore import QCoreApplication, QEventLoop, QSettings, Qt, QTimer, Slot
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPlainTextEdit,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from daynotes.core.models import HydrationState, SaveStatus, SessionSnapshot
from daynotes.core.stats import count_chars, count_words
from daynotes.logging_setup import SessionAdapter
from daynotes.settings import APP_NAME, SettingsKeys, get_str
from daynotes.sync.session import EditorController
from daynotes.sync.synchronizer import Synchronizer
from daynotes.ui.qt_utils import blocked_signals, safe_set_setting

_STATUS_TEXT = {
    SaveStatus.IDLE: "",
    SaveStatus.DIRTY: "Unsaved changes",
    SaveStatus.SAVING: "Saving…",
    SaveStatus.SAVED: "Saved",
    SaveStatus.FAILED: "Not saved",
}

# re-evaluate the day window once a minute so it moves past midnight
WINDOW_REFRESH_MS = 60_000


class DayNotesWindow(QMainWindow):
    def __init__(
        self,
        *,
        controller: EditorController,
        synchronizer: Synchronizer,
        settings: QSettings,
        log: SessionAdapter,
        shutdown_timeout_ms: int = 10_000,
    ):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self._ctrl = controller
        self._sync = synchronizer
        self._settings = settings
        self._log = log
        self._shutdown_timeout_ms = int(shutdown_timeout_ms)
        self._keys = SettingsKeys()

        # UI
        self.days_list = QListWidget()
        self.days_list.setFixedWidth(140)

        self.editor = QPlainTextEdit()
        self.editor.setPlaceholderText("Start writing your note…")

        self.empty_label = QLabel("No note selected\n\nSelect a day from the sidebar to start writing")
        self.empty_label.setAlignment(Qt.AlignCenter)

        self.stack = QStackedWidget()
        self.stack.addWidget(self.empty_label)
        self.stack.addWidget(self.editor)

        self.load_label = QLabel()
        self.status_label = QLabel()
        self.chars_label = QLabel()
        self.words_label = QLabel()

        footer = QHBoxLayout()
        footer.addWidget(self.load_label)
        footer.addStretch(1)
        footer.addWidget(self.status_label)
        footer.addWidget(self.chars_label)
        footer.addWidget(self.words_label)

        right = QWidget()
        right_layout = QVBoxLayout(right)
        right_layout.addWidget(self.stack)
        right_layout.addLayout(footer)

        root = QWidget()
        root_layout = QHBoxLayout(root)
        root_layout.setContentsMargins(0, 0, 0, 0)
        root_layout.addWidget(self.days_list)
        root_layout.addWidget(right, 1)
        self.setCentralWidget(root)

        self._build_menu()

        # Signals
        self.days_list.currentItemChanged.connect(self._on_day_item_changed)
        self.editor.textChanged.connect(self._on_text_changed)
        self._ctrl.changed.connect(self._on_session_changed)
        self._ctrl.window_changed.connect(self._on_window_changed)
        self._ctrl.hydration_changed.connect(self._on_hydration_changed)
        self._sync.saved.connect(self._on_note_saved)

        self._window_timer = QTimer(self)
        self._window_timer.setInterval(WINDOW_REFRESH_MS)
        self._window_timer.timeout.connect(self._ctrl.refresh_window)
        self._window_timer.start()

        geo = self._settings.value(self._keys.UI_GEOMETRY)
        if geo:
            self.restoreGeometry(geo)
        else:
            self.resize(900, 620)

        self._ctrl.refresh_window()
        self._restore_last_day()

    def _build_menu(self) -> None:
        m_file = self.menuBar().addMenu("File")

        act_save = QAction("Save now", self)
        act_save.setShortcut(QKeySequence.Save)
        act_save.triggered.connect(self._ctrl.flush_now)
        m_file.addAction(act_save)

        act_retry = QAction("Retry", self)
        act_retry.setToolTip("Retry a failed save, or reading a note that could not be loaded")
        act_retry.triggered.connect(self._ctrl.retry)
        m_file.addAction(act_retry)

        act_reload = QAction("Reload notes", self)
        act_reload.triggered.connect(self._ctrl.retry_hydration)
        m_file.addAction(act_reload)

        m_file.addSeparator()
        act_quit = QAction("Quit", self)
        act_quit.setShortcut(QKeySequence.Quit)
        act_quit.triggered.connect(self.close)
        m_file.addAction(act_quit)

    def _restore_last_day(self) -> None:
        last = get_str(self._settings, self._keys.LAST_DAY, "")
        ids = [e.id for e in self._ctrl.window]
        if last in ids:
            self.days_list.setCurrentRow(ids.index(last))

    # ───────────────────────── rendering ─────────────────────────

    def _item_text(self, day_of_month: int, label: str, has_note: bool) -> str:
        marker = " •" if has_note else ""
        return f"{day_of_month:>2}   {label}{marker}"

    def _render_days(self) -> None:
        cache = self._sync.cache
        current = self._ctrl.session.day if self._ctrl.session else None
        with blocked_signals(self.days_list):
            self.days_list.clear()
            for entry in self._ctrl.window:
                has_note = bool(cache.content_for(entry.id))
                item = QListWidgetItem(self._item_text(entry.day_of_month, entry.label, has_note))
                item.setData(Qt.UserRole, entry.id)
                item.setToolTip(entry.id)
                self.days_list.addItem(item)
                if entry.id == current:
                    self.days_list.setCurrentItem(item)

    def _render_footer(self, snap: SessionSnapshot | None) -> None:
        if snap is None:
            self.status_label.setText("")
            self.chars_label.setText("")
            self.words_label.setText("")
            return
        if not snap.loaded:
            text = "Could not load note (File → Retry)" if snap.error else "Loading note…"
        else:
            text = _STATUS_TEXT[snap.status]
            if snap.status == SaveStatus.FAILED and snap.error:
                text = f"{text}: {snap.error}"
        self.status_label.setText(text)
        self.chars_label.setText(f"{count_chars(snap.content)} characters")
        self.words_label.setText(f"{count_words(snap.content)} words")

    @Slot(object)
    def _on_window_changed(self, _entries) -> None:
        self._render_days()

    @Slot(object)
    def _on_hydration_changed(self, state: HydrationState) -> None:
        if state == HydrationState.FAILED:
            self.load_label.setText("Could not load notes (File → Reload notes)")
            self.load_label.setToolTip(self._ctrl.hydration_error or "")
        elif state == HydrationState.PENDING:
            self.load_label.setText("Loading…")
        else:
            self.load_label.setText("")
        self._render_days()

    @Slot(object)
    def _on_session_changed(self, snap: SessionSnapshot) -> None:
        if self.stack.currentWidget() is not self.editor:
            self.stack.setCurrentWidget(self.editor)
        if self.editor.toPlainText() != snap.content:
            with blocked_signals(self.editor):
                self.editor.setPlainText(snap.content)
        self.editor.setReadOnly(not snap.loaded)
        self._render_footer(snap)

    @Slot(int, object)
    def _on_note_saved(self, _req_id: int, _record) -> None:
        self._render_days()

    # ───────────────────────── input ─────────────────────────

    def _on_day_item_changed(self, current: QListWidgetItem | None, _previous) -> None:
        if current is None:
            return
        day = current.data(Qt.UserRole)
        self._ctrl.select_day(day)
        self.editor.setFocus()

    def _on_text_changed(self) -> None:
        self._ctrl.update_content(self.editor.toPlainText())

    # ───────────────────────── shutdown ─────────────────────────

    def _wait_for_writes(self) -> bool:
        deadline = time.monotonic() + self._shutdown_timeout_ms / 1000.0
        while self._sync.has_pending_writes() and time.monotonic() < deadline:
            QCoreApplication.processEvents(QEventLoop.AllEvents, 50)
            time.sleep(0.01)
        return not self._sync.has_pending_writes()

    def closeEvent(self, event):  # type: ignore[override]
        """
        Flush the pending autosave and wait for in-flight writes,
        so closing right after typing does not lose the last edits.
        """
        try:
            self._window_timer.stop()
            self._ctrl.flush_now()
            if not self._wait_for_writes():
                self._log.error("Closing with unfinished writes (timeout %d ms)", self._shutdown_timeout_ms)
            snap = self._ctrl.snapshot()
            if snap is not None and snap.status == SaveStatus.FAILED:
                self._log.error("Closing with an unsaved note: day=%s", snap.day)
            safe_set_setting(self._settings, self._keys.UI_GEOMETRY, self.saveGeometry())
            if snap is not None:
                safe_set_setting(self._settings, self._keys.LAST_DAY, snap.day)
        except Exception:
            self._log.exception("Failed to flush notes on close")
        super().closeEvent(event)

"""App entrypoint: a week of day notes, autosaved as you type."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QApplication

from daynotes.logging_setup import SESSION_ID, install_global_exception_hooks, setup_logging
from daynotes.settings import APP_NAME, STORAGE_BACKENDS, load_config
from daynotes.storage import open_store
from daynotes.sync.cache import NoteCache
from daynotes.sync.session import EditorController
from daynotes.sync.synchronizer import Synchronizer
from daynotes.ui.main_window import DayNotesWindow


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog=APP_NAME, description="Per-day journal")
    p.add_argument("--store", dest="storage_backend", choices=STORAGE_BACKENDS, default=None,
                   help="storage backend (default: sqlite)")
    p.add_argument("--path", dest="storage_path", type=Path, default=None,
                   help="SQLite file or notes directory")
    p.add_argument("--days", dest="window_days", type=int, default=None,
                   help="number of days shown (default: 7)")
    p.add_argument("--debounce-ms", dest="debounce_ms", type=int, default=None,
                   help="autosave delay after the last keystroke (default: 1000)")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="also print debug messages to the console")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    log = setup_logging(console_level=logging.DEBUG if args.verbose else logging.INFO)
    install_global_exception_hooks(log)

    app = QApplication([])
    settings = QSettings(APP_NAME, APP_NAME)
    config = load_config(settings, vars(args))
    log.info(
        "Starting: store=%s path=%s days=%d debounce_ms=%d",
        config.storage_backend, config.storage_path, config.window_days, config.debounce_ms,
    )

    store = open_store(
        config.storage_backend,
        config.storage_path,
        timeout_s=config.storage_timeout_ms / 1000.0,
    )
    sync = Synchronizer(
        store=store,
        cache=NoteCache(),
        timeout_ms=config.storage_timeout_ms,
        recovery_dir=config.recovery_dir,
    )
    controller = EditorController(
        synchronizer=sync,
        window_days=config.window_days,
        debounce_ms=config.debounce_ms,
    )
    win = DayNotesWindow(
        controller=controller,
        synchronizer=sync,
        settings=settings,
        log=log,
        shutdown_timeout_ms=config.storage_timeout_ms,
    )
    win.show()
    log.info("Application started, SID=%s", SESSION_ID)
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())

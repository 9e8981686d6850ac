from __future__ import annotations

from contextlib import contextmanager

from PySide6.QtCore import QSettings


@contextmanager
def blocked_signals(obj):
    """Temporarily silence a Qt object's signals (e.g. setPlainText without textChanged)."""
    if obj is None:
        yield
        return
    try:
        obj.blockSignals(True)
        yield
    finally:
        try:
            obj.blockSignals(False)
        except RuntimeError:
            # the C++ object may already be gone
            pass


def safe_set_setting(settings: QSettings, key: str, value) -> None:
    """Best-effort QSettings write; never takes the UI down."""
    try:
        settings.setValue(key, value)
    except Exception:
        pass

import logging
from logging.handlers import RotatingFileHandler

import pytest
from PySide6.QtCore import QtMsgType

from daynotes.logging_setup import (
    SESSION_ID,
    EnsureSessionFilter,
    SessionAdapter,
    get_logger,
    qt_message_level,
    setup_logging,
)


@pytest.fixture
def app_logger():
    logger = logging.getLogger("daynotes")
    saved = list(logger.handlers)
    for h in saved:
        logger.removeHandler(h)
    yield logger
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    for h in saved:
        logger.addHandler(h)


def test_filter_fills_missing_session():
    record = logging.LogRecord("daynotes.sync", logging.INFO, __file__, 1, "msg", None, None)
    assert EnsureSessionFilter().filter(record)
    assert record.session == SESSION_ID


def test_filter_keeps_explicit_session():
    record = logging.LogRecord("daynotes.sync", logging.INFO, __file__, 1, "msg", None, None)
    record.session = "abc"
    EnsureSessionFilter().filter(record)
    assert record.session == "abc"


def test_adapter_injects_session():
    adapter = SessionAdapter(logging.getLogger("daynotes.test"), {})
    _msg, kwargs = adapter.process("hello", {})
    assert kwargs["extra"]["session"] == SESSION_ID
    assert len(SESSION_ID) == 8


def test_area_loggers_are_children_of_app_logger():
    assert get_logger("sync").name == "daynotes.sync"
    assert get_logger("sync").parent is logging.getLogger("daynotes")


def test_qt_message_levels():
    assert qt_message_level(QtMsgType.QtDebugMsg) == logging.DEBUG
    assert qt_message_level(QtMsgType.QtInfoMsg) == logging.INFO
    assert qt_message_level(QtMsgType.QtWarningMsg) == logging.WARNING
    assert qt_message_level(QtMsgType.QtCriticalMsg) == logging.ERROR
    assert qt_message_level(QtMsgType.QtFatalMsg) == logging.CRITICAL


def test_setup_writes_child_records_to_file(app_logger, tmp_path):
    log_path = tmp_path / "logs" / "daynotes.log"
    setup_logging(log_path=log_path, console_level=logging.WARNING)

    get_logger("storage").debug("opened %s", "notes.sqlite")
    for h in app_logger.handlers:
        h.flush()

    text = log_path.read_text(encoding="utf-8")
    assert "daynotes.storage | opened notes.sqlite" in text
    assert f"sid={SESSION_ID}" in text


def test_setup_again_only_changes_console_level(app_logger, tmp_path):
    setup_logging(log_path=tmp_path / "a.log", console_level=logging.INFO)
    setup_logging(log_path=tmp_path / "b.log", console_level=logging.DEBUG)

    assert len(app_logger.handlers) == 2
    file_handler = next(h for h in app_logger.handlers if isinstance(h, RotatingFileHandler))
    console = next(h for h in app_logger.handlers if not isinstance(h, RotatingFileHandler))
    assert file_handler.baseFilename.endswith("a.log")
    assert console.level == logging.DEBUG
    assert not (tmp_path / "b.log").exists()

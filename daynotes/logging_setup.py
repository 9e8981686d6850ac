from __future__ import annotations

import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from daynotes.settings import APP_NAME, LOG_PATH

SESSION_ID = uuid.uuid4().hex[:8]

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s | sid=%(session)s"
LOG_MAX_BYTES = 2 * 1024 * 1024
LOG_BACKUPS = 5

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def get_logger(area: str) -> logging.Logger:
    """Child of the app logger, e.g. get_logger("sync") -> `daynotes.sync`."""
    return logging.getLogger(f"{APP_NAME}.{area}")


class EnsureSessionFilter(logging.Filter):
    """Stamp records from child loggers with the session id."""
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session"):
            record.session = SESSION_ID
        return True


class SessionAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        extra.setdefault("session", SESSION_ID)
        return msg, kwargs


def setup_logging(
    *,
    log_path: Path | None = None,
    console_level: int = logging.INFO,
) -> SessionAdapter:
    """
    Attach a rotating file (everything) and a console handler (console_level
    and up) to the `daynotes` logger. Calling it again only adjusts the
    console level.
    """
    logger = logging.getLogger(APP_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if logger.handlers:
        for h in logger.handlers:
            if not isinstance(h, RotatingFileHandler):
                h.setLevel(console_level)
        return SessionAdapter(logger, {})

    log_path = Path(log_path) if log_path is not None else LOG_PATH
    log_path.parent.mkdir(parents=True, exist_ok=True)

    fmt = logging.Formatter(LOG_FORMAT)
    session_filter = EnsureSessionFilter()

    fh = RotatingFileHandler(log_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    fh.setLevel(logging.DEBUG)

    ch = logging.StreamHandler(sys.stdout or sys.stderr)
    ch.setLevel(console_level)

    for h in (fh, ch):
        h.setFormatter(fmt)
        h.addFilter(session_filter)
        logger.addHandler(h)

    logger.info("Logging initialized: file=%s console=%s", log_path, logging.getLevelName(console_level))
    return SessionAdapter(logger, {})


def qt_message_level(mode) -> int:
    return _QT_LEVELS.get(mode, logging.WARNING)


def install_global_exception_hooks(log: logging.LoggerAdapter) -> None:
    """Route uncaught Python exceptions and Qt messages into the log."""

    def _excepthook(exc_type, exc, tb):
        log.critical("Uncaught exception", exc_info=(exc_type, exc, tb))
        sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _excepthook

    qt_log = get_logger("qt")

    def _qt_message_handler(mode, context, message):
        where = getattr(context, "file", None) or "unknown"
        line = getattr(context, "line", 0)
        if line:
            where = f"{where}:{line}"
        qt_log.log(qt_message_level(mode), "%s | where=%s", message, where)

    qInstallMessageHandler(_qt_message_handler)
    log.debug("Qt message handler installed")

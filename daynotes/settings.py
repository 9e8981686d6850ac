from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from PySide6.QtCore import QSettings

APP_NAME = "daynotes"
APP_DIR = Path.home() / f".{APP_NAME}"
LOG_DIR = APP_DIR / "logs"
LOG_PATH = LOG_DIR / f"{APP_NAME}.log"

DEFAULT_WINDOW_DAYS = 7
DEFAULT_DEBOUNCE_MS = 1000
DEFAULT_STORAGE_TIMEOUT_MS = 10_000
STORAGE_BACKENDS = ("sqlite", "files")


@dataclass(frozen=True)
class SettingsKeys:
    UI_GEOMETRY: str = "ui/geometry"
    LAST_DAY: str = "nav/last_day"
    WINDOW_DAYS: str = "notes/window_days"
    DEBOUNCE_MS: str = "notes/debounce_ms"
    STORAGE_BACKEND: str = "storage/backend"
    STORAGE_PATH: str = "storage/path"
    STORAGE_TIMEOUT_MS: str = "storage/timeout_ms"


@dataclass(frozen=True)
class JournalConfig:
    window_days: int = DEFAULT_WINDOW_DAYS
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    storage_backend: str = "sqlite"
    storage_path: Path = field(default_factory=lambda: APP_DIR / f"{APP_NAME}.sqlite")
    storage_timeout_ms: int = DEFAULT_STORAGE_TIMEOUT_MS
    recovery_dir: Path = field(default_factory=lambda: APP_DIR / "recovery")


def get_str(settings: QSettings, key: str, default: str) -> str:
    try:
        val = settings.value(key, default)
        return str(val) if val is not None else default
    except Exception:
        return default


def get_int(settings: QSettings, key: str, default: int) -> int:
    try:
        return int(settings.value(key, default))
    except Exception:
        return default


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def normalize_backend(name: str) -> str:
    name = (name or "").strip().lower()
    return name if name in STORAGE_BACKENDS else "sqlite"


def default_storage_path(backend: str) -> Path:
    if backend == "files":
        return APP_DIR / "notes"
    return APP_DIR / f"{APP_NAME}.sqlite"


def load_config(settings: QSettings, overrides: dict | None = None) -> JournalConfig:
    """
    Build the effective config: QSettings values, then non-None overrides
    (command line) on top. Out-of-range numbers are clamped.
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    keys = SettingsKeys()

    backend = normalize_backend(
        overrides.get("storage_backend") or get_str(settings, keys.STORAGE_BACKEND, "sqlite")
    )

    raw_path = overrides.get("storage_path") or get_str(settings, keys.STORAGE_PATH, "")
    storage_path = Path(raw_path).expanduser() if raw_path else default_storage_path(backend)

    window_days = overrides.get("window_days", get_int(settings, keys.WINDOW_DAYS, DEFAULT_WINDOW_DAYS))
    debounce_ms = overrides.get("debounce_ms", get_int(settings, keys.DEBOUNCE_MS, DEFAULT_DEBOUNCE_MS))
    timeout_ms = overrides.get(
        "storage_timeout_ms",
        get_int(settings, keys.STORAGE_TIMEOUT_MS, DEFAULT_STORAGE_TIMEOUT_MS),
    )

    return JournalConfig(
        # the cache is never evicted, keep the window small
        window_days=_clamp(int(window_days), 1, 31),
        debounce_ms=_clamp(int(debounce_ms), 0, 60_000),
        storage_backend=backend,
        storage_path=storage_path,
        storage_timeout_ms=_clamp(int(timeout_ms), 100, 120_000),
    )

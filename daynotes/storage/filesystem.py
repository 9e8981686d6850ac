# daynotes/storage/filesystem.py

from __future__ import annotations

import os
import uuid
from datetime import datetime
from pathlib import Path

# ───────────────────────── public API ─────────────────────────

def atomic_write_text(
    path: Path,
    text: str,
    *,
    encoding: str = "utf-8",
) -> None:
    """
    Atomic-ish file write:
    - write to temp file in same directory
    - fsync
    - replace()

    Prevents partial writes on crash/power loss.
    """
    path = Path(path)
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)

    tmp_path = parent / f".{path.name}.tmp-{uuid.uuid4().hex}"

    try:
        with open(tmp_path, "w", encoding=encoding, newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    finally:
        try:
            if tmp_path.exists():
                tmp_path.unlink()
        except OSError:
            pass


def write_recovery_copy(recovery_dir: Path, day: str, text: str) -> Path:
    """
    Best-effort emergency save when a normal save fails.

    Writes a timestamped copy into recovery_dir:
      <day>.recovery.<YYYYmmdd-HHMMSS-ffffff>.md
    """
    ts = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    recovery_path = Path(recovery_dir) / f"{day}.recovery.{ts}.md"
    atomic_write_text(recovery_path, text, encoding="utf-8")
    return recovery_path

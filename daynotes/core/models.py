from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class SaveStatus(str, Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"


class HydrationState(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class DayEntry:
    id: str
    label: str
    day_of_month: int


@dataclass(frozen=True)
class NoteRecord:
    day: str
    content: str
    updated_at: str


def utc_timestamp(when: datetime | None = None) -> str:
    """ISO-8601 UTC with milliseconds, e.g. 2026-10-19T08:15:02.123Z."""
    when = when or datetime.now(timezone.utc)
    return when.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{when.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class SessionSnapshot:
    day: str
    content: str
    baseline: str
    status: SaveStatus
    error: str | None = None
    loaded: bool = True


@dataclass
class EditSession:
    """
    Editor state for the one selected day.

    `baseline` is the content as of the last successful save (or initial load),
    `content` is the live text. A new session is created on every day switch.
    """
    day: str
    content: str = ""
    baseline: str = ""
    status: SaveStatus = SaveStatus.IDLE
    token: str = field(default_factory=lambda: uuid.uuid4().hex)
    # request id of the newest write issued on behalf of this session
    last_req_id: int | None = None
    error: str | None = None
    # False until the stored note for `day` is known; edits are refused meanwhile
    loaded: bool = True

    @property
    def has_unsaved_changes(self) -> bool:
        return self.content != self.baseline

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            day=self.day,
            content=self.content,
            baseline=self.baseline,
            status=self.status,
            error=self.error,
            loaded=self.loaded,
        )

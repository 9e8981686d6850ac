from __future__ import annotations

import re
from datetime import date, timedelta

from .models import DayEntry

DAY_ID_FORMAT = "%Y-%m-%d"
_DAY_ID_RE = re.compile(r"\A\d{4}-\d{2}-\d{2}\Z")


def day_id(d: date) -> str:
    return d.strftime(DAY_ID_FORMAT)


def parse_day_id(value: str) -> date:
    """
    Parse a canonical day identifier (YYYY-MM-DD).
    Raises ValueError for anything else, including non-padded forms.
    """
    if not isinstance(value, str) or not _DAY_ID_RE.match(value):
        raise ValueError(f"not a day identifier: {value!r}")
    return date(int(value[0:4]), int(value[5:7]), int(value[8:10]))


def day_label(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}"


def day_window(days: int = 7, *, today: date | None = None) -> list[DayEntry]:
    """
    Trailing window of `days` calendar days ending at today, most recent first.
    Re-evaluated on every call so the window moves across midnight.
    """
    if days < 1:
        raise ValueError("days must be >= 1")
    today = today or date.today()
    out: list[DayEntry] = []
    for i in range(days):
        d = today - timedelta(days=i)
        out.append(DayEntry(id=day_id(d), label=day_label(d), day_of_month=d.day))
    return out

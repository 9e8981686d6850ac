from __future__ import annotations

from typing import Iterable, Sequence

from daynotes.core.models import NoteRecord
from daynotes.logging_setup import get_logger

log = get_logger("cache")


class NoteCache:
    """
    Last known persisted note per day.

    Filled by window hydration (replace, not merge), single-day reads and
    successful writes. A day is "known" once any of those has covered it.
    Two counters guard against stale data:
      - per day, the request id of the write that produced the entry, so an
        older write resolving late never overwrites a newer one;
      - a global write epoch, so a bulk read that started before a write
        resolved does not roll that write back.
    Entries are never evicted; the window is small.
    """

    def __init__(self) -> None:
        self._records: dict[str, NoteRecord] = {}
        self._applied_seq: dict[str, int] = {}
        self._written_epoch: dict[str, int] = {}
        self._epoch = 0
        self._window: frozenset[str] = frozenset()
        # days whose stored state has been read or written at least once
        self._known: set[str] = set()

    def __contains__(self, day: str) -> bool:
        return day in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, day: str) -> NoteRecord | None:
        return self._records.get(day)

    def content_for(self, day: str) -> str:
        rec = self._records.get(day)
        return rec.content if rec is not None else ""

    def snapshot(self) -> dict[str, NoteRecord]:
        return dict(self._records)

    @property
    def window(self) -> frozenset[str]:
        return self._window

    @property
    def write_epoch(self) -> int:
        return self._epoch

    def is_hydrated_for(self, days: Iterable[str]) -> bool:
        return frozenset(days) == self._window

    def is_known(self, day: str) -> bool:
        return day in self._known

    def replace_window(
        self,
        days: Sequence[str],
        records: Iterable[NoteRecord],
        *,
        since_epoch: int = 0,
    ) -> None:
        """
        Replace the entries for `days` with `records`.

        Days written after `since_epoch` (the epoch when the bulk read was
        issued) keep their entry.
        """
        window = frozenset(days)
        fresh: dict[str, NoteRecord] = {}
        for rec in records:
            if rec.day not in window:
                log.warning("Hydration returned a day outside the window: %s", rec.day)
                continue
            fresh[rec.day] = rec

        for day in window:
            if self._written_epoch.get(day, 0) > since_epoch:
                continue
            if day in fresh:
                self._records[day] = fresh[day]
            else:
                self._records.pop(day, None)

        self._window = window
        self._known.update(window)
        log.debug("Cache hydrated: window=%d notes=%d", len(window), len(fresh))

    def apply_write(self, record: NoteRecord, seq: int) -> bool:
        """Record a successful write. Returns False if a newer write already landed."""
        if seq < self._applied_seq.get(record.day, 0):
            log.debug("Ignoring older write for %s (seq=%s)", record.day, seq)
            return False
        self._epoch += 1
        self._records[record.day] = record
        self._applied_seq[record.day] = seq
        self._written_epoch[record.day] = self._epoch
        self._known.add(record.day)
        return True

    def apply_load(self, day: str, record: NoteRecord | None, *, since_epoch: int = 0) -> None:
        """Single-day read result; a write that resolved after the read was issued wins."""
        self._known.add(day)
        if self._written_epoch.get(day, 0) > since_epoch:
            return
        if record is not None:
            self._records[day] = record
        else:
            self._records.pop(day, None)

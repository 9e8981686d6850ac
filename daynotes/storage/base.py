from __future__ import annotations

from typing import Sequence

from daynotes.core.models import NoteRecord


class NoteStore:
    """
    Durable key-value store of day notes, keyed by day identifier.

    Implementations are called from worker threads, one call at a time per
    worker; they must not share a connection/handle across calls.
    """

    def load_notes_for_days(self, days: Sequence[str]) -> list[NoteRecord]:
        """Stored notes for `days`; days without a note are omitted. All or nothing."""
        raise NotImplementedError

    def save_note(self, day: str, content: str) -> NoteRecord:
        """Upsert; `updated_at` is the time of the durable write."""
        raise NotImplementedError

    def load_note(self, day: str) -> NoteRecord | None:
        """Stored note for one day, or None."""
        raise NotImplementedError

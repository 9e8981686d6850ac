from __future__ import annotations


class NoteStoreError(Exception):
    """Base class for failures reported by the storage layer."""


class HydrationError(NoteStoreError):
    """Bulk read for the visible window failed; the cache keeps its previous state."""


class WriteError(NoteStoreError):
    """Saving a note failed; the editor keeps the unsaved content."""

    def __init__(self, message: str, *, day: str, content: str):
        super().__init__(message)
        self.day = day
        self.content = content


class SaveTimeoutError(WriteError):
    """The storage call did not answer within the configured timeout."""

from pathlib import Path

from .base import NoteStore
from .file_store import FileNoteStore
from .filesystem import atomic_write_text, write_recovery_copy
from .sqlite_store import SqliteNoteStore


def open_store(backend: str, path: Path, *, timeout_s: float = 5.0) -> NoteStore:
    if backend == "files":
        store = FileNoteStore(path)
        store.ensure()
        return store
    return SqliteNoteStore(path, timeout_s=timeout_s)


__all__ = ['NoteStore',
           'FileNoteStore',
           'SqliteNoteStore',
           'atomic_write_text',
           'write_recovery_copy',
           'open_store',
           ]

from .days import day_id, day_window, parse_day_id
from .errors import HydrationError, NoteStoreError, SaveTimeoutError, WriteError
from .models import DayEntry, EditSession, HydrationState, NoteRecord, SaveStatus, SessionSnapshot
from .stats import count_chars, count_words

__all__ = ['day_id',
           'day_window',
           'parse_day_id',
           'HydrationError',
           'NoteStoreError',
           'SaveTimeoutError',
           'WriteError',
           'DayEntry',
           'EditSession',
           'HydrationState',
           'NoteRecord',
           'SaveStatus',
           'SessionSnapshot',
           'count_chars',
           'count_words',
           ]

from .cache import NoteCache
from .debounce import Debouncer
from .session import EditorController
from .synchronizer import Synchronizer

__all__ = ['NoteCache',
           'Debouncer',
           'EditorController',
           'Synchronizer',
           ]

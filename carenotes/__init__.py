from .app import create_app
from .db import Database
from .errors import CareNotesError, NotFoundError, StorageError, ValidationError
from .hierarchy import HierarchyStore
from .notes import NoteStore
from .tree import build_tree

__all__ = [
    "create_app",
    "Database",
    "HierarchyStore",
    "NoteStore",
    "build_tree",
    "CareNotesError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]

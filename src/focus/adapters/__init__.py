"""Adapters - I/O implementations of ports."""

from .sqlite_store import SQLiteTaskStore
from .file_export import FileExporter
from .undo_file import UndoFile

__all__ = [
    "SQLiteTaskStore",
    "FileExporter",
    "UndoFile",
]

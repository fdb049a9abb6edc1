"""Ports - interfaces/protocols for external dependencies."""

from .task_store import TaskStore
from .exporter import Exporter
from .undo_history import UndoHistory

__all__ = [
    "TaskStore",
    "Exporter",
    "UndoHistory",
]

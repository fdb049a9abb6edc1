"""Undo history persistence interface."""

from typing import Protocol

from focus.core.session import UndoStack


class UndoHistory(Protocol):
    """Keeps the undo stack between command invocations."""

    def load(self) -> UndoStack:
        """Saved stack, or an empty one if nothing usable is saved."""
        ...

    def save(self, stack: UndoStack) -> None:
        ...

"""Caller-owned session state: selection, batch selection, edit buffer and undo history."""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from .perspectives import Perspective
from .tasks import Project, Task


@dataclass
class EditBuffer:
    task_id: int
    title: str
    notes: str = ""


@dataclass
class ViewState:
    """
    What the user is looking at and has selected.

    Passed explicitly into queries and rendering instead of living in
    module-level globals, so several views can coexist.
    """

    perspective: Perspective = field(default_factory=Perspective.inbox)
    selected_index: int = 0
    batch_selection: set[int] = field(default_factory=set)
    edit_buffer: EditBuffer | None = None

    def switch_perspective(self, perspective: Perspective) -> None:
        self.perspective = perspective
        self.selected_index = 0
        self.batch_selection.clear()
        self.edit_buffer = None

    def clamp(self, visible: list[Task]) -> None:
        """Keep the selection inside the visible list after a refresh."""
        if not visible:
            self.selected_index = 0
        else:
            self.selected_index = max(0, min(self.selected_index, len(visible) - 1))

    def select_next(self, visible: list[Task]) -> None:
        self.selected_index += 1
        self.clamp(visible)

    def select_previous(self, visible: list[Task]) -> None:
        self.selected_index -= 1
        self.clamp(visible)

    def selected_task(self, visible: list[Task]) -> Task | None:
        if not visible or not 0 <= self.selected_index < len(visible):
            return None
        return visible[self.selected_index]

    def toggle_batch(self, task_id: int) -> None:
        if task_id in self.batch_selection:
            self.batch_selection.discard(task_id)
        else:
            self.batch_selection.add(task_id)

    def clear_batch(self) -> None:
        self.batch_selection.clear()

    def batch_tasks(self, visible: list[Task]) -> list[Task]:
        """Selected tasks in display order; ids no longer visible are skipped."""
        return [t for t in visible if t.id in self.batch_selection]

    def begin_edit(self, task: Task) -> EditBuffer:
        self.edit_buffer = EditBuffer(task_id=task.id, title=task.title, notes=task.notes)
        return self.edit_buffer

    def cancel_edit(self) -> None:
        self.edit_buffer = None


# ============== Undo ==============

MAX_UNDO_HISTORY = 50


class UndoKind(Enum):
    """Undoable changes; the value names the action for messages."""

    TASK_CREATE = "add task"
    TASK_DELETE = "delete task"
    TASK_COMPLETE = "complete task"
    TASK_FLAG = "flag task"
    TASK_EDIT = "edit task"
    PROJECT_CREATE = "add project"
    PROJECT_DELETE = "delete project"


@dataclass(frozen=True)
class UndoEntry:
    """
    One recorded change with what is needed to reverse it.

    task and project hold the state from before the change. related_ids
    depends on the kind: successors created by TASK_COMPLETE, tasks that
    waited on a TASK_DELETE, or the members of a PROJECT_DELETE.
    """

    kind: UndoKind
    affected_id: int
    task: Task | None = None
    project: Project | None = None
    related_ids: tuple[int, ...] = ()

    def describe(self) -> str:
        return f"{self.kind.value} {self.affected_id}"


@dataclass
class UndoStack:
    """Most recent change last. Only the newest MAX_UNDO_HISTORY are kept."""

    entries: deque[UndoEntry] = field(default_factory=lambda: deque(maxlen=MAX_UNDO_HISTORY))

    def record(self, entry: UndoEntry) -> None:
        self.entries.append(entry)

    def pop(self) -> UndoEntry | None:
        return self.entries.pop() if self.entries else None

    @property
    def can_undo(self) -> bool:
        return bool(self.entries)

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)

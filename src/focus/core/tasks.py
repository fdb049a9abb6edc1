"""Pure task domain model - no I/O dependencies."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

from focus.errors import ValidationError


class TaskStatus(IntEnum):
    """Task lifecycle state. ACTIVE is reserved and unused by filtering."""

    INBOX = 0
    ACTIVE = 1
    DONE = 2


class ProjectType(IntEnum):
    """Sequential projects expose one task at a time, parallel ones all."""

    SEQUENTIAL = 0
    PARALLEL = 1


class Recurrence(IntEnum):
    NONE = 0
    DAILY = 1
    WEEKLY = 2
    MONTHLY = 3
    YEARLY = 4


@dataclass(frozen=True)
class Task:
    """A task as loaded from the store."""

    id: int
    title: str
    created_at: datetime
    status: TaskStatus = TaskStatus.INBOX
    notes: str = ""
    project_id: int | None = None
    flagged: bool = False
    modified_at: datetime | None = None
    defer_at: datetime | None = None
    due_at: datetime | None = None
    order_index: int = 0
    recurrence: Recurrence = Recurrence.NONE
    recurrence_interval: int = 1
    context_ids: frozenset[int] = field(default_factory=frozenset)
    dependency_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != Recurrence.NONE

    @property
    def is_unfiled(self) -> bool:
        return self.project_id is None


@dataclass(frozen=True)
class Project:
    id: int
    title: str
    created_at: datetime
    type: ProjectType = ProjectType.SEQUENTIAL

    @property
    def is_sequential(self) -> bool:
        return self.type == ProjectType.SEQUENTIAL


@dataclass(frozen=True)
class Context:
    """A tag like @home or @errands. No ordering semantics."""

    id: int
    name: str
    created_at: datetime
    color: str = "#808080"


@dataclass
class TaskDraft:
    """Fields for a task that has not been inserted yet."""

    title: str
    notes: str = ""
    status: TaskStatus = TaskStatus.INBOX
    project_id: int | None = None
    flagged: bool = False
    created_at: datetime | None = None
    defer_at: datetime | None = None
    due_at: datetime | None = None
    recurrence: Recurrence = Recurrence.NONE
    recurrence_interval: int = 1
    context_ids: set[int] = field(default_factory=set)


class StatusName(str, Enum):
    """Display names used by exports and the CLI."""

    INBOX = "Inbox"
    ACTIVE = "Active"
    DONE = "Done"

    @classmethod
    def for_status(cls, status: TaskStatus) -> "StatusName":
        return cls[status.name]


def validate_title(title: str) -> str:
    """Return the stripped title, or raise if it is empty."""
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Task title cannot be empty")
    return cleaned


def validate_recurrence_interval(interval: int) -> int:
    if interval < 1:
        raise ValidationError(f"Recurrence interval must be positive, got {interval}")
    return interval


def validate_dependency(task_id: int, depends_on_id: int) -> None:
    """Reject a task depending on itself."""
    if task_id == depends_on_id:
        raise ValidationError(f"Task {task_id} cannot depend on itself")


def creates_cycle(tasks: list[Task], task_id: int, depends_on_id: int) -> bool:
    """
    Would adding task_id -> depends_on_id close a cycle?

    True if task_id is already reachable from depends_on_id along
    existing dependency edges.
    """
    edges = {t.id: t.dependency_ids for t in tasks}
    stack = [depends_on_id]
    seen: set[int] = set()
    while stack:
        current = stack.pop()
        if current == task_id:
            return True
        if current in seen:
            continue
        seen.add(current)
        stack.extend(edges.get(current, ()))
    return False

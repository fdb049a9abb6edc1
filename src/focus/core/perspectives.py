"""Perspective filter - which tasks a view shows, and in what order."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable

from .availability import is_deferred, project_type_for, sequential_visible_task
from .tasks import Project, ProjectType, Task


class PerspectiveKind(Enum):
    TODAY = "today"
    ANYTIME = "anytime"
    FLAGGED = "flagged"
    INBOX = "inbox"
    COMPLETED = "completed"
    PROJECT = "project"
    CONTEXT = "context"


TARGETED_KINDS = {PerspectiveKind.PROJECT, PerspectiveKind.CONTEXT}


@dataclass(frozen=True)
class Perspective:
    """A view selector. PROJECT and CONTEXT carry the id they filter on."""

    kind: PerspectiveKind
    target_id: int | None = None

    def __post_init__(self):
        if not isinstance(self.kind, PerspectiveKind):
            raise ValueError(f"Unknown perspective: {self.kind!r}")
        if self.kind in TARGETED_KINDS and self.target_id is None:
            raise ValueError(f"{self.kind.value} perspective requires an id")
        if self.kind not in TARGETED_KINDS and self.target_id is not None:
            raise ValueError(f"{self.kind.value} perspective does not take an id")

    @classmethod
    def today(cls) -> "Perspective":
        return cls(PerspectiveKind.TODAY)

    @classmethod
    def anytime(cls) -> "Perspective":
        return cls(PerspectiveKind.ANYTIME)

    @classmethod
    def flagged(cls) -> "Perspective":
        return cls(PerspectiveKind.FLAGGED)

    @classmethod
    def inbox(cls) -> "Perspective":
        return cls(PerspectiveKind.INBOX)

    @classmethod
    def completed(cls) -> "Perspective":
        return cls(PerspectiveKind.COMPLETED)

    @classmethod
    def project(cls, project_id: int) -> "Perspective":
        return cls(PerspectiveKind.PROJECT, project_id)

    @classmethod
    def context(cls, context_id: int) -> "Perspective":
        return cls(PerspectiveKind.CONTEXT, context_id)

    @classmethod
    def parse(cls, text: str) -> "Perspective":
        """
        Parse a selector like "today", "project:3" or "context:7".

        Raises ValueError for anything else.
        """
        name, _, target = text.strip().lower().partition(":")
        try:
            kind = PerspectiveKind(name)
        except ValueError:
            raise ValueError(f"Unknown perspective: {text!r}") from None

        if not target:
            return cls(kind)
        try:
            target_id = int(target)
        except ValueError:
            raise ValueError(f"Invalid perspective id in {text!r}") from None
        return cls(kind, target_id)

    def __str__(self) -> str:
        if self.target_id is None:
            return self.kind.value
        return f"{self.kind.value}:{self.target_id}"


def is_due_today_or_overdue(task: Task, now: datetime) -> bool:
    """Compare calendar days, not instants: due earlier today still counts as today."""
    if task.due_at is None:
        return False
    return task.due_at.date() <= now.date()


def passes_prefilter(task: Task, now: datetime) -> bool:
    """Shared rule for every perspective except COMPLETED."""
    return not task.is_done and not is_deferred(task, now)


def compute_perspective(
    tasks: Iterable[Task],
    projects: Iterable[Project],
    perspective: Perspective,
    now: datetime,
) -> list[Task]:
    """
    Ordered, deduplicated list of tasks shown by a perspective.

    Pure function - builds a new list and leaves the snapshot untouched so it
    can be re-filtered under another selector without reloading.
    """
    tasks = list(tasks)
    kind = perspective.kind

    if kind == PerspectiveKind.COMPLETED:
        selected = [t for t in tasks if t.is_done]
    else:
        pool = [t for t in tasks if passes_prefilter(t, now)]
        match kind:
            case PerspectiveKind.ANYTIME:
                selected = pool
            case PerspectiveKind.FLAGGED:
                selected = [t for t in pool if t.flagged]
            case PerspectiveKind.TODAY:
                selected = [
                    t for t in pool if t.due_at is None or is_due_today_or_overdue(t, now)
                ]
            case PerspectiveKind.INBOX:
                selected = [t for t in pool if t.is_unfiled]
            case PerspectiveKind.CONTEXT:
                selected = [t for t in pool if perspective.target_id in t.context_ids]
            case PerspectiveKind.PROJECT:
                selected = _project_members(pool, tasks, list(projects), perspective.target_id)
            case _:
                raise ValueError(f"Unknown perspective: {perspective}")

    return sort_for_display(_dedupe(selected))


def _project_members(
    pool: list[Task],
    all_tasks: list[Task],
    projects: list[Project],
    project_id: int,
) -> list[Task]:
    members = [t for t in pool if t.project_id == project_id]
    if project_type_for(project_id, projects) == ProjectType.PARALLEL:
        return members
    # Gating looks at the whole project, including deferred members.
    visible_id = sequential_visible_task(project_id, all_tasks)
    return [t for t in members if t.id == visible_id]


def _dedupe(tasks: list[Task]) -> list[Task]:
    seen: set[int] = set()
    unique = []
    for task in tasks:
        if task.id not in seen:
            seen.add(task.id)
            unique.append(task)
    return unique


def sort_for_display(tasks: Iterable[Task]) -> list[Task]:
    """
    Ascending order_index, ties newest first.

    With no manual ordering every index is 0, which gives reverse-creation order.
    """
    return sorted(tasks, key=lambda t: (t.order_index, -t.created_at.timestamp(), -t.id))


def reorder(visible: list[Task], task_id: int, offset: int) -> dict[int, int]:
    """
    Move a task up (offset -1) or down (+1) among the visible tasks.

    The visible list is renumbered 0..n-1 after the swap so that tasks
    sharing an order_index still move. Returns {task_id: new_order_index}
    for the tasks whose index changed; empty when the move hits an end.
    """
    ids = [t.id for t in visible]
    if task_id not in ids:
        raise ValueError(f"Task {task_id} is not in the visible list")

    position = ids.index(task_id)
    target = position + offset
    if offset == 0 or not 0 <= target < len(ids):
        return {}

    ids[position], ids[target] = ids[target], ids[position]
    current = {t.id: t.order_index for t in visible}
    return {tid: index for index, tid in enumerate(ids) if current[tid] != index}

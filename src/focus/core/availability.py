"""Availability engine - deferral, dependency blocking and sequential gating.

Every function here is pure: it reads an immutable snapshot and returns
derived values without touching the inputs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from .tasks import Context, Project, ProjectType, Task


@dataclass(frozen=True)
class Snapshot:
    """Everything loaded from the store in one refresh cycle."""

    tasks: tuple[Task, ...] = ()
    projects: tuple[Project, ...] = ()
    contexts: tuple[Context, ...] = ()

    def task(self, task_id: int) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def project(self, project_id: int) -> Project | None:
        return next((p for p in self.projects if p.id == project_id), None)

    def context(self, context_id: int) -> Context | None:
        return next((c for c in self.contexts if c.id == context_id), None)

    def context_by_name(self, name: str) -> Context | None:
        return next((c for c in self.contexts if c.name == name), None)


@dataclass(frozen=True)
class Availability:
    """Classification of a single task, independent of any perspective."""

    task_id: int
    done: bool
    deferred: bool
    blocked: bool
    next_action: bool = True

    @property
    def available(self) -> bool:
        return not self.done and not self.deferred and self.next_action


def is_deferred(task: Task, now: datetime) -> bool:
    """Defer instant is set and still in the future."""
    return task.defer_at is not None and task.defer_at > now


def is_blocked(task: Task, tasks: Iterable[Task]) -> bool:
    """
    True if any direct prerequisite is not done.

    Chains are not resolved transitively: each task unblocks as soon as its
    immediate prerequisites are done. Prerequisites missing from the
    snapshot do not block.
    """
    if not task.dependency_ids:
        return False
    by_id = {t.id: t for t in tasks}
    return any(
        dep_id in by_id and not by_id[dep_id].is_done for dep_id in task.dependency_ids
    )


def sequential_visible_task(project_id: int, tasks: Iterable[Task]) -> int | None:
    """
    Id of the earliest-created incomplete task in a project.

    Ties on created_at go to the lower id. None when every member is done.
    """
    candidates = [t for t in tasks if t.project_id == project_id and not t.is_done]
    if not candidates:
        return None
    return min(candidates, key=lambda t: (t.created_at, t.id)).id


def project_type_for(project_id: int, projects: Iterable[Project]) -> ProjectType:
    """Type of a project; dangling references fall back to SEQUENTIAL."""
    for project in projects:
        if project.id == project_id:
            return project.type
    return ProjectType.SEQUENTIAL


def next_actions(tasks: Iterable[Task], projects: Iterable[Project]) -> dict[int, int | None]:
    """Visible task id for every sequential (or unknown) project referenced by a task."""
    tasks = list(tasks)
    projects = list(projects)
    project_ids = {t.project_id for t in tasks if t.project_id is not None}
    return {
        pid: sequential_visible_task(pid, tasks)
        for pid in project_ids
        if project_type_for(pid, projects) == ProjectType.SEQUENTIAL
    }


def annotate(snapshot: Snapshot, now: datetime) -> dict[int, Availability]:
    """Classify every task in the snapshot."""
    by_id = {t.id: t for t in snapshot.tasks}
    gated = next_actions(snapshot.tasks, snapshot.projects)

    result = {}
    for task in snapshot.tasks:
        next_action = True
        if task.project_id in gated:
            next_action = gated[task.project_id] == task.id
        result[task.id] = Availability(
            task_id=task.id,
            done=task.is_done,
            deferred=is_deferred(task, now),
            blocked=is_blocked(task, by_id.values()),
            next_action=next_action,
        )
    return result


@dataclass
class AvailabilitySummary:
    """Counts used by the CLI status line."""

    available: int = 0
    deferred: int = 0
    blocked: int = 0
    done: int = 0
    blocked_ids: list[int] = field(default_factory=list)


def summarize(annotations: dict[int, Availability]) -> AvailabilitySummary:
    summary = AvailabilitySummary()
    for info in annotations.values():
        if info.done:
            summary.done += 1
            continue
        if info.deferred:
            summary.deferred += 1
        if info.blocked:
            summary.blocked += 1
            summary.blocked_ids.append(info.task_id)
        if info.available:
            summary.available += 1
    return summary

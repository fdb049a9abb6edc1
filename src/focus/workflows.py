"""Shared workflow layer between the CLI and the entity store.

Each function composes pure core logic with store reads and writes. Store
failures propagate as FocusError subclasses, except where noted.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .adapters.file_export import FileExporter
from .adapters.sqlite_store import SQLiteTaskStore
from .adapters.undo_file import UndoFile
from .config import Config
from .core import capture
from .core.availability import Snapshot, is_blocked
from .core.export import ExportFormat, render
from .core.perspectives import Perspective, compute_perspective, reorder
from .core.recurrence import RecurrencePolicy, expand
from .core.session import UndoEntry, UndoKind, UndoStack, ViewState
from .core.tasks import (
    ProjectType,
    Recurrence,
    Task,
    TaskDraft,
    TaskStatus,
    creates_cycle,
    validate_dependency,
    validate_title,
)
from .errors import NotFoundError, StoreError, ValidationError
from .ports.exporter import Exporter
from .ports.task_store import TaskStore
from .ports.undo_history import UndoHistory

logger = logging.getLogger(__name__)


def get_store(config: Config) -> SQLiteTaskStore:
    """Open the task database named by config."""
    return SQLiteTaskStore(config.db_path)


def get_exporter(config: Config) -> FileExporter:
    return FileExporter(config.exports_path)


def get_undo_history(config: Config) -> UndoFile:
    return UndoFile(config.undo_path)


@contextmanager
def recording_undo(history: UndoHistory) -> Iterator[UndoStack]:
    """Load the undo stack and save it back, even if the body fails part way."""
    stack = history.load()
    try:
        yield stack
    finally:
        history.save(stack)


def _record(undo: UndoStack | None, entry: UndoEntry) -> None:
    if undo is not None:
        undo.record(entry)


def load_snapshot(store: TaskStore) -> Snapshot:
    """Load everything once for a refresh cycle."""
    return Snapshot(
        tasks=tuple(store.load_all_tasks()),
        projects=tuple(store.load_all_projects()),
        contexts=tuple(store.load_all_contexts()),
    )


def compute_view(
    store: TaskStore,
    perspective: Perspective,
    now: datetime | None = None,
) -> tuple[Snapshot, list[Task]]:
    """Snapshot plus the ordered tasks a perspective shows."""
    snapshot = load_snapshot(store)
    now = now or datetime.now()
    return snapshot, compute_perspective(snapshot.tasks, snapshot.projects, perspective, now)


def is_task_blocked(store: TaskStore, task_id: int) -> bool:
    task = store.get_task(task_id)
    return is_blocked(task, store.load_all_tasks())


# ============== Capture ==============


def resolve_contexts(store: TaskStore, names: list[str], color: str) -> list[int]:
    """Ids for context names, creating the missing ones with a placeholder color."""
    known = {c.name: c.id for c in store.load_all_contexts()}
    ids = []
    for name in names:
        if name not in known:
            known[name] = store.create_context(name, color)
            logger.info(f"Created context @{name}")
        ids.append(known[name])
    return ids


def capture_task(
    store: TaskStore,
    text: str,
    config: Config,
    now: datetime | None = None,
    project_id: int | None = None,
    undo: UndoStack | None = None,
) -> int:
    """Parse a quick-capture line, resolve its contexts and insert the task."""
    now = now or datetime.now()
    try:
        draft = capture.parse(text, now)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    context_ids = resolve_contexts(store, draft.context_names, config.default_context_color)
    task_id = store.create_task(
        TaskDraft(
            title=draft.title,
            project_id=project_id,
            flagged=draft.flagged,
            created_at=now,
            defer_at=draft.defer_at,
            context_ids=set(context_ids),
        )
    )
    _record(undo, UndoEntry(UndoKind.TASK_CREATE, task_id))
    return task_id


# ============== Completion ==============


@dataclass
class CompletionResult:
    """Outcome of completing a task. A warning means no successor was created."""

    task_id: int
    successor: Task | None = None
    warning: str | None = None


def expand_recurrence(
    store: TaskStore,
    task: Task,
    now: datetime,
    policy: RecurrencePolicy = RecurrencePolicy.KEEP,
) -> Task | None:
    """
    Create the next occurrence of a recurring task.

    Returns None if the store write fails; the failure is logged, not raised.
    """
    draft = expand(task, now, policy)
    try:
        new_id = store.create_task(draft)
        return store.get_task(new_id)
    except StoreError as e:
        logger.warning(f"Could not create next occurrence of task {task.id}: {e}")
        return None


def complete_task(
    store: TaskStore,
    task_id: int,
    now: datetime | None = None,
    policy: RecurrencePolicy = RecurrencePolicy.KEEP,
    undo: UndoStack | None = None,
) -> CompletionResult:
    """
    Mark a task done and, if it recurs, create its successor.

    The completion commits first and is never rolled back; a failed expansion
    only produces a warning. Completing an already-done task is a no-op.
    """
    now = now or datetime.now()
    task = store.get_task(task_id)
    if task.is_done:
        return CompletionResult(task_id=task_id)

    store.update_task_status(task_id, TaskStatus.DONE)
    result = CompletionResult(task_id=task_id)
    if task.is_recurring:
        result.successor = expand_recurrence(store, task, now, policy)
        if result.successor is None:
            result.warning = "could not create next instance"

    successors = (result.successor.id,) if result.successor else ()
    _record(undo, UndoEntry(UndoKind.TASK_COMPLETE, task_id, task=task, related_ids=successors))
    return result


def complete_batch(
    store: TaskStore,
    view: ViewState,
    visible: list[Task],
    now: datetime | None = None,
    policy: RecurrencePolicy = RecurrencePolicy.KEEP,
    undo: UndoStack | None = None,
) -> list[CompletionResult]:
    """Complete every batch-selected task in the view, then clear the batch."""
    results = [complete_task(store, t.id, now, policy, undo) for t in view.batch_tasks(visible)]
    view.clear_batch()
    return results


# ============== Task edits ==============


def delete_task(store: TaskStore, task_id: int, undo: UndoStack | None = None) -> None:
    """Delete a task; undo restores it along with the tasks that waited on it."""
    task = store.get_task(task_id)
    dependents = tuple(t.id for t in store.load_all_tasks() if task_id in t.dependency_ids)
    store.delete_task(task_id)
    _record(undo, UndoEntry(UndoKind.TASK_DELETE, task_id, task=task, related_ids=dependents))


def flag_task(store: TaskStore, task_id: int, flagged: bool, undo: UndoStack | None = None) -> None:
    task = store.get_task(task_id)
    store.update_task_flagged(task_id, flagged)
    _record(undo, UndoEntry(UndoKind.TASK_FLAG, task_id, task=task))


def set_defer(
    store: TaskStore, task_id: int, defer_at: datetime | None, undo: UndoStack | None = None
) -> None:
    task = store.get_task(task_id)
    store.update_task_defer_at(task_id, defer_at)
    _record(undo, UndoEntry(UndoKind.TASK_EDIT, task_id, task=task))


def set_due(
    store: TaskStore, task_id: int, due_at: datetime | None, undo: UndoStack | None = None
) -> None:
    task = store.get_task(task_id)
    store.update_task_due_at(task_id, due_at)
    _record(undo, UndoEntry(UndoKind.TASK_EDIT, task_id, task=task))


def set_recurrence(
    store: TaskStore,
    task_id: int,
    recurrence: Recurrence,
    interval: int = 1,
    undo: UndoStack | None = None,
) -> None:
    task = store.get_task(task_id)
    store.update_task_recurrence(task_id, recurrence, interval)
    _record(undo, UndoEntry(UndoKind.TASK_EDIT, task_id, task=task))


def save_edit(store: TaskStore, view: ViewState, undo: UndoStack | None = None) -> Task | None:
    """
    Write the view's edit buffer back to its task and close the buffer.

    Returns the updated task, or None when nothing was being edited.
    """
    buffer = view.edit_buffer
    if buffer is None:
        return None

    before = store.get_task(buffer.task_id)
    title = validate_title(buffer.title)
    if title != before.title:
        store.update_task_title(buffer.task_id, title)
    if buffer.notes != before.notes:
        store.update_task_notes(buffer.task_id, buffer.notes)
    _record(undo, UndoEntry(UndoKind.TASK_EDIT, buffer.task_id, task=before))
    view.cancel_edit()
    return store.get_task(buffer.task_id)


# ============== Projects ==============


def create_project(
    store: TaskStore,
    title: str,
    project_type: ProjectType = ProjectType.SEQUENTIAL,
    undo: UndoStack | None = None,
) -> int:
    project_id = store.create_project(title, project_type)
    _record(undo, UndoEntry(UndoKind.PROJECT_CREATE, project_id))
    return project_id


def delete_project(store: TaskStore, project_id: int, undo: UndoStack | None = None) -> None:
    """Delete a project; its tasks become unfiled until an undo refiles them."""
    project = next((p for p in store.load_all_projects() if p.id == project_id), None)
    if project is None:
        raise NotFoundError(f"Project {project_id} not found")
    members = tuple(t.id for t in store.load_all_tasks() if t.project_id == project_id)
    store.delete_project(project_id)
    _record(undo, UndoEntry(UndoKind.PROJECT_DELETE, project_id, project=project, related_ids=members))


# ============== Undo ==============


def _restore_fields(store: TaskStore, task: Task) -> None:
    store.update_task_title(task.id, task.title)
    store.update_task_notes(task.id, task.notes)
    store.update_task_flagged(task.id, task.flagged)
    store.update_task_defer_at(task.id, task.defer_at)
    store.update_task_due_at(task.id, task.due_at)
    store.update_task_recurrence(task.id, task.recurrence, task.recurrence_interval)


def undo_last(store: TaskStore, undo: UndoStack) -> UndoEntry | None:
    """
    Reverse the most recent recorded change.

    Returns the entry undone, or None when the history is empty. The entry
    is consumed even if reversing it fails.
    """
    entry = undo.pop()
    if entry is None:
        return None

    match entry.kind:
        case UndoKind.TASK_CREATE:
            store.delete_task(entry.affected_id)
        case UndoKind.TASK_DELETE:
            store.restore_task(entry.task, entry.related_ids)
        case UndoKind.TASK_COMPLETE:
            store.update_task_status(entry.affected_id, entry.task.status)
            for successor_id in entry.related_ids:
                try:
                    store.delete_task(successor_id)
                except NotFoundError:
                    logger.info(f"Next occurrence {successor_id} was already deleted")
        case UndoKind.TASK_FLAG:
            store.update_task_flagged(entry.affected_id, entry.task.flagged)
        case UndoKind.TASK_EDIT:
            _restore_fields(store, entry.task)
        case UndoKind.PROJECT_CREATE:
            store.delete_project(entry.affected_id)
        case UndoKind.PROJECT_DELETE:
            store.restore_project(entry.project, entry.related_ids)

    logger.info(f"Undid {entry.describe()}")
    return entry


# ============== Dependencies and ordering ==============


def add_dependency(
    store: TaskStore,
    task_id: int,
    depends_on_id: int,
    reject_cycles: bool = True,
) -> None:
    """Make task_id wait on depends_on_id."""
    validate_dependency(task_id, depends_on_id)
    if reject_cycles and creates_cycle(store.load_all_tasks(), task_id, depends_on_id):
        raise ValidationError(
            f"Task {task_id} cannot depend on task {depends_on_id}: that would create a cycle"
        )
    store.add_dependency(task_id, depends_on_id)


def move_task(
    store: TaskStore,
    perspective: Perspective,
    task_id: int,
    offset: int,
    now: datetime | None = None,
) -> dict[int, int]:
    """Swap a task with its visible neighbor and persist the new order."""
    _, visible = compute_view(store, perspective, now)
    try:
        changes = reorder(visible, task_id, offset)
    except ValueError as e:
        raise ValidationError(f"{e} ({perspective})") from e
    for changed_id, index in changes.items():
        store.update_task_order_index(changed_id, index)
    return changes


# ============== Export ==============


def export_tasks(
    store: TaskStore,
    exporter: Exporter,
    fmt: ExportFormat,
    now: datetime | None = None,
) -> Path:
    """Render every task in the given format and write it out."""
    now = now or datetime.now()
    snapshot = load_snapshot(store)
    content = render(list(snapshot.tasks), list(snapshot.projects), fmt, now)
    filename = f"focus-export-{now.strftime('%Y%m%d-%H%M%S')}.{fmt.extension}"
    return exporter.export(filename, content)


def backup_database(config: Config, exporter: Exporter, now: datetime | None = None) -> Path:
    return exporter.backup(config.db_path, now or datetime.now())

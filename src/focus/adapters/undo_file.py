"""JSON file adapter for the undo history."""

import json
import logging
from datetime import datetime
from pathlib import Path

from focus.core.session import UndoEntry, UndoKind, UndoStack
from focus.core.tasks import Project, ProjectType, Recurrence, Task, TaskStatus

logger = logging.getLogger(__name__)


def _when(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_when(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def task_to_record(task: Task) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "created_at": _when(task.created_at),
        "status": int(task.status),
        "notes": task.notes,
        "project_id": task.project_id,
        "flagged": task.flagged,
        "modified_at": _when(task.modified_at),
        "defer_at": _when(task.defer_at),
        "due_at": _when(task.due_at),
        "order_index": task.order_index,
        "recurrence": int(task.recurrence),
        "recurrence_interval": task.recurrence_interval,
        "context_ids": sorted(task.context_ids),
        "dependency_ids": sorted(task.dependency_ids),
    }


def task_from_record(data: dict) -> Task:
    return Task(
        id=data["id"],
        title=data["title"],
        created_at=_parse_when(data["created_at"]),
        status=TaskStatus(data["status"]),
        notes=data["notes"],
        project_id=data["project_id"],
        flagged=data["flagged"],
        modified_at=_parse_when(data["modified_at"]),
        defer_at=_parse_when(data["defer_at"]),
        due_at=_parse_when(data["due_at"]),
        order_index=data["order_index"],
        recurrence=Recurrence(data["recurrence"]),
        recurrence_interval=data["recurrence_interval"],
        context_ids=frozenset(data["context_ids"]),
        dependency_ids=frozenset(data["dependency_ids"]),
    )


def entry_to_record(entry: UndoEntry) -> dict:
    project = entry.project
    return {
        "kind": entry.kind.name,
        "affected_id": entry.affected_id,
        "task": task_to_record(entry.task) if entry.task else None,
        "project": (
            {
                "id": project.id,
                "title": project.title,
                "type": int(project.type),
                "created_at": _when(project.created_at),
            }
            if project
            else None
        ),
        "related_ids": list(entry.related_ids),
    }


def entry_from_record(data: dict) -> UndoEntry:
    project = data.get("project")
    return UndoEntry(
        kind=UndoKind[data["kind"]],
        affected_id=data["affected_id"],
        task=task_from_record(data["task"]) if data.get("task") else None,
        project=(
            Project(
                id=project["id"],
                title=project["title"],
                type=ProjectType(project["type"]),
                created_at=_parse_when(project["created_at"]),
            )
            if project
            else None
        ),
        related_ids=tuple(data.get("related_ids", ())),
    )


class UndoFile:
    """
    Undo history kept as a JSON list, oldest entry first.

    Implements UndoHistory protocol.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load(self) -> UndoStack:
        stack = UndoStack()
        if not self.path.exists():
            return stack
        try:
            for record in json.loads(self.path.read_text(encoding="utf-8")):
                stack.record(entry_from_record(record))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable undo history {self.path}: {e}")
            return UndoStack()
        return stack

    def save(self, stack: UndoStack) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [entry_to_record(e) for e in stack.entries]
        self.path.write_text(json.dumps(records, indent=2), encoding="utf-8")

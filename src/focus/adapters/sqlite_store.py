"""SQLite entity store adapter."""

import logging
import sqlite3
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Iterator

from focus.core.tasks import (
    Context,
    Project,
    ProjectType,
    Recurrence,
    Task,
    TaskDraft,
    TaskStatus,
    validate_dependency,
    validate_recurrence_interval,
    validate_title,
)
from focus.errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    type INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS contexts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    color TEXT NOT NULL DEFAULT '#808080',
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL CHECK (length(trim(title)) > 0),
    notes TEXT NOT NULL DEFAULT '',
    project_id INTEGER REFERENCES projects(id) ON DELETE SET NULL,
    status INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    modified_at INTEGER NOT NULL DEFAULT 0,
    defer_at INTEGER NOT NULL DEFAULT 0,
    due_at INTEGER NOT NULL DEFAULT 0,
    flagged INTEGER NOT NULL DEFAULT 0,
    order_index INTEGER NOT NULL DEFAULT 0,
    recurrence INTEGER NOT NULL DEFAULT 0,
    recurrence_interval INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS task_contexts (
    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    context_id INTEGER NOT NULL REFERENCES contexts(id) ON DELETE CASCADE,
    PRIMARY KEY (task_id, context_id)
);

CREATE TABLE IF NOT EXISTS task_dependencies (
    task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    depends_on_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    PRIMARY KEY (task_id, depends_on_id),
    CHECK (task_id != depends_on_id)
);
"""


def to_epoch(value: datetime | None) -> int:
    """Stored timestamps are epoch seconds; 0 means absent."""
    return int(value.timestamp()) if value else 0


def from_epoch(value: int | None) -> datetime | None:
    return datetime.fromtimestamp(value) if value else None


class SQLiteTaskStore:
    """
    SQLite-backed entity store.

    Implements TaskStore protocol. Every write is its own commit; writes that
    touch several tables run inside one transaction.
    """

    def __init__(self, db_path: Path | str, clock: Callable[[], datetime] = datetime.now):
        self.db_path = db_path if db_path == ":memory:" else Path(db_path).expanduser()
        self.clock = clock
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self.db_path}: {e}") from e
        logger.debug(f"Opened task database at {self.db_path}")

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SQLiteTaskStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @contextmanager
    def _cursor(self, action: str) -> Iterator[sqlite3.Cursor]:
        """Translate sqlite3 errors into StoreError with some context."""
        try:
            yield self._conn.cursor()
        except sqlite3.Error as e:
            logger.error(f"Database error while trying to {action}: {e}")
            raise StoreError(f"Failed to {action}: {e}") from e

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Cursor]:
        """All statements commit together or not at all."""
        with self._cursor(action) as cur:
            cur.execute("BEGIN")
            try:
                yield cur
            except Exception:
                cur.execute("ROLLBACK")
                raise
            cur.execute("COMMIT")

    def _update(self, action: str, sql: str, params: tuple, missing: str) -> None:
        with self._cursor(action) as cur:
            cur.execute(sql, params)
            if cur.rowcount == 0:
                raise NotFoundError(missing)

    def _update_task(self, task_id: int, column: str, value) -> None:
        self._update(
            f"update task {column}",
            f"UPDATE tasks SET {column} = ?, modified_at = ? WHERE id = ?",
            (value, to_epoch(self.clock()), task_id),
            f"Task {task_id} not found",
        )

    def _require(self, table: str, row_id: int) -> None:
        with self._cursor(f"look up {table}") as cur:
            found = cur.execute(f"SELECT 1 FROM {table} WHERE id = ?", (row_id,)).fetchone()
        if not found:
            raise NotFoundError(f"{table[:-1].capitalize()} {row_id} not found")

    # ---- reads ----

    def _row_to_task(self, row: sqlite3.Row, contexts: set[int], deps: set[int]) -> Task:
        return Task(
            id=row["id"],
            title=row["title"],
            notes=row["notes"],
            status=TaskStatus(row["status"]),
            project_id=row["project_id"],
            flagged=bool(row["flagged"]),
            created_at=from_epoch(row["created_at"]),
            modified_at=from_epoch(row["modified_at"]),
            defer_at=from_epoch(row["defer_at"]),
            due_at=from_epoch(row["due_at"]),
            order_index=row["order_index"],
            recurrence=Recurrence(row["recurrence"]),
            recurrence_interval=row["recurrence_interval"],
            context_ids=frozenset(contexts),
            dependency_ids=frozenset(deps),
        )

    def _relations(self, table: str, column: str) -> dict[int, set[int]]:
        grouped: dict[int, set[int]] = defaultdict(set)
        with self._cursor(f"load {table}") as cur:
            for task_id, other_id in cur.execute(f"SELECT task_id, {column} FROM {table}"):
                grouped[task_id].add(other_id)
        return grouped

    def load_all_tasks(self) -> list[Task]:
        contexts = self._relations("task_contexts", "context_id")
        deps = self._relations("task_dependencies", "depends_on_id")
        with self._cursor("load tasks") as cur:
            rows = cur.execute("SELECT * FROM tasks ORDER BY created_at DESC, id DESC").fetchall()
        return [self._row_to_task(r, contexts.get(r["id"], set()), deps.get(r["id"], set())) for r in rows]

    def get_task(self, task_id: int) -> Task:
        with self._cursor("load task") as cur:
            row = cur.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Task {task_id} not found")
        contexts = {c.id for c in self.get_task_contexts(task_id)}
        return self._row_to_task(row, contexts, set(self.get_task_dependencies(task_id)))

    def load_all_projects(self) -> list[Project]:
        with self._cursor("load projects") as cur:
            rows = cur.execute("SELECT * FROM projects ORDER BY created_at ASC, id ASC").fetchall()
        return [
            Project(
                id=r["id"],
                title=r["title"],
                type=ProjectType(r["type"]),
                created_at=from_epoch(r["created_at"]),
            )
            for r in rows
        ]

    def load_all_contexts(self) -> list[Context]:
        with self._cursor("load contexts") as cur:
            rows = cur.execute("SELECT * FROM contexts ORDER BY name ASC").fetchall()
        return [self._row_to_context(r) for r in rows]

    def _row_to_context(self, row: sqlite3.Row) -> Context:
        return Context(
            id=row["id"],
            name=row["name"],
            color=row["color"],
            created_at=from_epoch(row["created_at"]),
        )

    def get_task_contexts(self, task_id: int) -> list[Context]:
        with self._cursor("load task contexts") as cur:
            rows = cur.execute(
                "SELECT c.* FROM contexts c "
                "JOIN task_contexts tc ON tc.context_id = c.id "
                "WHERE tc.task_id = ? ORDER BY c.name ASC",
                (task_id,),
            ).fetchall()
        return [self._row_to_context(r) for r in rows]

    def get_task_dependencies(self, task_id: int) -> list[int]:
        with self._cursor("load task dependencies") as cur:
            rows = cur.execute(
                "SELECT depends_on_id FROM task_dependencies WHERE task_id = ? ORDER BY depends_on_id",
                (task_id,),
            ).fetchall()
        return [r[0] for r in rows]

    # ---- task writes ----

    def create_task(self, draft: TaskDraft) -> int:
        title = validate_title(draft.title)
        validate_recurrence_interval(draft.recurrence_interval)
        created = draft.created_at or self.clock()
        with self._transaction("create task") as cur:
            cur.execute(
                "INSERT INTO tasks (title, notes, project_id, status, created_at, modified_at,"
                " defer_at, due_at, flagged, recurrence, recurrence_interval)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    title,
                    draft.notes,
                    draft.project_id,
                    int(draft.status),
                    to_epoch(created),
                    to_epoch(created),
                    to_epoch(draft.defer_at),
                    to_epoch(draft.due_at),
                    int(draft.flagged),
                    int(draft.recurrence),
                    draft.recurrence_interval,
                ),
            )
            task_id = cur.lastrowid
            cur.executemany(
                "INSERT OR IGNORE INTO task_contexts (task_id, context_id) VALUES (?, ?)",
                [(task_id, cid) for cid in sorted(draft.context_ids)],
            )
        logger.debug(f"Created task {task_id}: {title}")
        return task_id

    def update_task_title(self, task_id: int, title: str) -> None:
        self._update_task(task_id, "title", validate_title(title))

    def update_task_notes(self, task_id: int, notes: str) -> None:
        self._update_task(task_id, "notes", notes)

    def update_task_status(self, task_id: int, status: TaskStatus) -> None:
        self._update_task(task_id, "status", int(status))

    def update_task_defer_at(self, task_id: int, defer_at: datetime | None) -> None:
        self._update_task(task_id, "defer_at", to_epoch(defer_at))

    def update_task_due_at(self, task_id: int, due_at: datetime | None) -> None:
        self._update_task(task_id, "due_at", to_epoch(due_at))

    def update_task_flagged(self, task_id: int, flagged: bool) -> None:
        self._update_task(task_id, "flagged", int(flagged))

    def update_task_order_index(self, task_id: int, order_index: int) -> None:
        self._update_task(task_id, "order_index", order_index)

    def update_task_recurrence(self, task_id: int, recurrence: Recurrence, interval: int) -> None:
        validate_recurrence_interval(interval)
        self._update(
            "update task recurrence",
            "UPDATE tasks SET recurrence = ?, recurrence_interval = ?, modified_at = ? WHERE id = ?",
            (int(recurrence), interval, to_epoch(self.clock()), task_id),
            f"Task {task_id} not found",
        )

    def assign_task_to_project(self, task_id: int, project_id: int | None) -> None:
        if project_id is not None:
            self._require("projects", project_id)
        self._update_task(task_id, "project_id", project_id)

    def delete_task(self, task_id: int) -> None:
        # Dependency edges and context links go with it via ON DELETE CASCADE.
        self._update("delete task", "DELETE FROM tasks WHERE id = ?", (task_id,), f"Task {task_id} not found")

    def restore_task(self, task: Task, dependent_ids: Iterable[int] = ()) -> None:
        """
        Re-insert a deleted task under its old id.

        Links to projects, contexts and tasks that no longer exist are dropped.
        dependent_ids are tasks that waited on this one before it was deleted.
        """
        with self._transaction("restore task") as cur:
            cur.execute(
                "INSERT INTO tasks (id, title, notes, project_id, status, created_at, modified_at,"
                " defer_at, due_at, flagged, order_index, recurrence, recurrence_interval)"
                " VALUES (?, ?, ?, (SELECT id FROM projects WHERE id = ?), ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    task.id,
                    task.title,
                    task.notes,
                    task.project_id,
                    int(task.status),
                    to_epoch(task.created_at),
                    to_epoch(self.clock()),
                    to_epoch(task.defer_at),
                    to_epoch(task.due_at),
                    int(task.flagged),
                    task.order_index,
                    int(task.recurrence),
                    task.recurrence_interval,
                ),
            )
            cur.executemany(
                "INSERT OR IGNORE INTO task_contexts (task_id, context_id)"
                " SELECT ?, id FROM contexts WHERE id = ?",
                [(task.id, cid) for cid in sorted(task.context_ids)],
            )
            cur.executemany(
                "INSERT OR IGNORE INTO task_dependencies (task_id, depends_on_id)"
                " SELECT ?, id FROM tasks WHERE id = ?",
                [(task.id, dep) for dep in sorted(task.dependency_ids)],
            )
            cur.executemany(
                "INSERT OR IGNORE INTO task_dependencies (task_id, depends_on_id)"
                " SELECT id, ? FROM tasks WHERE id = ?",
                [(task.id, dep) for dep in sorted(dependent_ids)],
            )
        logger.debug(f"Restored task {task.id}: {task.title}")

    # ---- relations ----

    def add_dependency(self, task_id: int, depends_on_id: int) -> None:
        validate_dependency(task_id, depends_on_id)
        self._require("tasks", task_id)
        self._require("tasks", depends_on_id)
        with self._cursor("add dependency") as cur:
            cur.execute(
                "INSERT OR IGNORE INTO task_dependencies (task_id, depends_on_id) VALUES (?, ?)",
                (task_id, depends_on_id),
            )

    def remove_dependency(self, task_id: int, depends_on_id: int) -> None:
        self._update(
            "remove dependency",
            "DELETE FROM task_dependencies WHERE task_id = ? AND depends_on_id = ?",
            (task_id, depends_on_id),
            f"Task {task_id} does not depend on task {depends_on_id}",
        )

    def add_context_to_task(self, task_id: int, context_id: int) -> None:
        self._require("tasks", task_id)
        self._require("contexts", context_id)
        with self._cursor("tag task") as cur:
            cur.execute(
                "INSERT OR IGNORE INTO task_contexts (task_id, context_id) VALUES (?, ?)",
                (task_id, context_id),
            )

    def remove_context_from_task(self, task_id: int, context_id: int) -> None:
        self._update(
            "untag task",
            "DELETE FROM task_contexts WHERE task_id = ? AND context_id = ?",
            (task_id, context_id),
            f"Task {task_id} is not tagged with context {context_id}",
        )

    # ---- projects and contexts ----

    def create_project(self, title: str, project_type: ProjectType = ProjectType.SEQUENTIAL) -> int:
        title = validate_title(title)
        with self._cursor("create project") as cur:
            cur.execute(
                "INSERT INTO projects (title, type, created_at) VALUES (?, ?, ?)",
                (title, int(project_type), to_epoch(self.clock())),
            )
            return cur.lastrowid

    def update_project_type(self, project_id: int, project_type: ProjectType) -> None:
        self._update(
            "update project type",
            "UPDATE projects SET type = ? WHERE id = ?",
            (int(project_type), project_id),
            f"Project {project_id} not found",
        )

    def delete_project(self, project_id: int) -> None:
        # Member tasks are unassigned by ON DELETE SET NULL, not deleted.
        self._update(
            "delete project",
            "DELETE FROM projects WHERE id = ?",
            (project_id,),
            f"Project {project_id} not found",
        )

    def restore_project(self, project: Project, member_ids: Iterable[int] = ()) -> None:
        """Re-insert a deleted project under its old id and refile its former tasks."""
        with self._transaction("restore project") as cur:
            cur.execute(
                "INSERT INTO projects (id, title, type, created_at) VALUES (?, ?, ?, ?)",
                (project.id, project.title, int(project.type), to_epoch(project.created_at)),
            )
            # Tasks refiled elsewhere since the delete keep their new project.
            cur.executemany(
                "UPDATE tasks SET project_id = ? WHERE id = ? AND project_id IS NULL",
                [(project.id, tid) for tid in sorted(member_ids)],
            )

    def create_context(self, name: str, color: str = "#808080") -> int:
        name = name.strip()
        if not name:
            raise ValidationError("Context name cannot be empty")
        with self._cursor("create context") as cur:
            cur.execute(
                "INSERT INTO contexts (name, color, created_at) VALUES (?, ?, ?)",
                (name, color, to_epoch(self.clock())),
            )
            return cur.lastrowid

    def delete_context(self, context_id: int) -> None:
        self._update(
            "delete context",
            "DELETE FROM contexts WHERE id = ?",
            (context_id,),
            f"Context {context_id} not found",
        )

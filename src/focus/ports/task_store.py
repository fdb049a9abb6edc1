"""Entity store interface."""

from datetime import datetime
from typing import Iterable, Protocol

from focus.core.tasks import Context, Project, ProjectType, Recurrence, Task, TaskDraft, TaskStatus


class TaskStore(Protocol):
    """
    Durable storage for tasks, projects, contexts and their relations.

    Writes raise StoreError on failure and NotFoundError for unknown ids.
    """

    # Reads

    def load_all_tasks(self) -> list[Task]:
        """All tasks, newest first, with context and dependency ids filled in."""
        ...

    def load_all_projects(self) -> list[Project]:
        ...

    def load_all_contexts(self) -> list[Context]:
        ...

    def get_task(self, task_id: int) -> Task:
        ...

    def get_task_contexts(self, task_id: int) -> list[Context]:
        ...

    def get_task_dependencies(self, task_id: int) -> list[int]:
        ...

    # Task writes

    def create_task(self, draft: TaskDraft) -> int:
        """Insert a task and return its id."""
        ...

    def update_task_title(self, task_id: int, title: str) -> None:
        ...

    def update_task_notes(self, task_id: int, notes: str) -> None:
        ...

    def update_task_status(self, task_id: int, status: TaskStatus) -> None:
        ...

    def update_task_defer_at(self, task_id: int, defer_at: datetime | None) -> None:
        ...

    def update_task_due_at(self, task_id: int, due_at: datetime | None) -> None:
        ...

    def update_task_flagged(self, task_id: int, flagged: bool) -> None:
        ...

    def update_task_order_index(self, task_id: int, order_index: int) -> None:
        ...

    def update_task_recurrence(self, task_id: int, recurrence: Recurrence, interval: int) -> None:
        ...

    def assign_task_to_project(self, task_id: int, project_id: int | None) -> None:
        ...

    def delete_task(self, task_id: int) -> None:
        ...

    def restore_task(self, task: Task, dependent_ids: Iterable[int] = ()) -> None:
        """Re-insert a deleted task under its old id."""
        ...

    # Relations

    def add_dependency(self, task_id: int, depends_on_id: int) -> None:
        ...

    def remove_dependency(self, task_id: int, depends_on_id: int) -> None:
        ...

    def add_context_to_task(self, task_id: int, context_id: int) -> None:
        ...

    def remove_context_from_task(self, task_id: int, context_id: int) -> None:
        ...

    # Projects and contexts

    def create_project(self, title: str, project_type: ProjectType) -> int:
        ...

    def update_project_type(self, project_id: int, project_type: ProjectType) -> None:
        ...

    def delete_project(self, project_id: int) -> None:
        """Delete a project; its tasks become unfiled."""
        ...

    def restore_project(self, project: Project, member_ids: Iterable[int] = ()) -> None:
        ...

    def create_context(self, name: str, color: str) -> int:
        ...

    def delete_context(self, context_id: int) -> None:
        ...

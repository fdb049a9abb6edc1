"""Functional core - pure business logic with no I/O."""

from .tasks import Task, Project, Context, TaskDraft, TaskStatus, ProjectType, Recurrence
from .availability import Snapshot, Availability, annotate, is_blocked, is_deferred, sequential_visible_task, summarize
from .perspectives import Perspective, PerspectiveKind, compute_perspective, reorder, sort_for_display
from .recurrence import RecurrencePolicy, expand
from .capture import CaptureDraft, parse
from .session import UndoEntry, UndoKind, UndoStack, ViewState
from .export import ExportFormat, render

__all__ = [
    # Model
    "Task",
    "Project",
    "Context",
    "TaskDraft",
    "TaskStatus",
    "ProjectType",
    "Recurrence",
    # Availability
    "Snapshot",
    "Availability",
    "annotate",
    "is_blocked",
    "is_deferred",
    "sequential_visible_task",
    "summarize",
    # Perspectives
    "Perspective",
    "PerspectiveKind",
    "compute_perspective",
    "reorder",
    "sort_for_display",
    # Recurrence
    "RecurrencePolicy",
    "expand",
    # Quick capture
    "CaptureDraft",
    "parse",
    # Session state
    "ViewState",
    "UndoEntry",
    "UndoKind",
    "UndoStack",
    # Export
    "ExportFormat",
    "render",
]

"""Pure export rendering - text, markdown and CSV."""

import csv
import io
from datetime import datetime
from enum import Enum

from .recurrence import describe
from .tasks import Project, Recurrence, StatusName, Task, TaskStatus

CSV_HEADER = [
    "ID",
    "Title",
    "Status",
    "Project",
    "Flagged",
    "Defer Date",
    "Due Date",
    "Created",
    "Modified",
    "Recurrence",
    "Notes",
]


class ExportFormat(Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    CSV = "csv"

    @property
    def extension(self) -> str:
        return {"text": "txt", "markdown": "md", "csv": "csv"}[self.value]


def format_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def project_name(project_id: int | None, projects: list[Project]) -> str:
    if project_id is None:
        return "None"
    for project in projects:
        if project.id == project_id:
            return project.title
    return "Unknown"


def _recurrence_label(task: Task) -> str:
    label = task.recurrence.name.capitalize()
    if task.recurrence_interval > 1:
        label += f" (every {task.recurrence_interval})"
    return label


def _by_status(tasks: list[Task]):
    for status in TaskStatus:
        group = [t for t in tasks if t.status == status]
        if group:
            yield status, group


def render_text(tasks: list[Task], projects: list[Project], now: datetime) -> str:
    lines = [
        "Focus Task Export - Text Format",
        "===============================",
        f"Exported: {format_date(now)}",
        "",
    ]
    for status, group in _by_status(tasks):
        lines += ["", f"{status.name} Tasks ({len(group)})", "-------------------", ""]
        for t in group:
            lines.append(f"• {t.title}" + (" ★" if t.flagged else ""))
            lines.append(f"  ID: {t.id}")
            lines.append(f"  Project: {project_name(t.project_id, projects)}")
            lines.append(f"  Defer: {format_date(t.defer_at)}  Due: {format_date(t.due_at)}")
            lines.append(f"  Created: {format_date(t.created_at)}")
            if t.recurrence != Recurrence.NONE:
                lines.append(f"  Recurrence: {_recurrence_label(t)}")
            if t.notes:
                lines.append(f"  Notes: {t.notes}")
            lines.append("")
    lines += ["", f"Total: {len(tasks)} task(s)"]
    return "\n".join(lines) + "\n"


def render_markdown(tasks: list[Task], projects: list[Project], now: datetime) -> str:
    lines = ["# Focus Task Export", "", f"**Exported:** {format_date(now)}", ""]
    for status, group in _by_status(tasks):
        lines += [f"## {StatusName.for_status(status).value} Tasks ({len(group)})", ""]
        for t in group:
            box = "x" if t.is_done else " "
            lines.append(f"- [{box}] **{t.title}**" + (" ⭐" if t.flagged else ""))
            lines.append(f"  - **ID:** {t.id}")
            lines.append(f"  - **Project:** {project_name(t.project_id, projects)}")
            if t.defer_at:
                lines.append(f"  - **Defer:** {format_date(t.defer_at)}")
            if t.due_at:
                lines.append(f"  - **Due:** {format_date(t.due_at)}")
            if t.recurrence != Recurrence.NONE:
                lines.append(f"  - **Recurrence:** {_recurrence_label(t)}")
            if t.notes:
                lines.append(f"  - **Notes:** {t.notes}")
            lines.append("")
    lines += ["---", f"**Total:** {len(tasks)} task(s)"]
    return "\n".join(lines) + "\n"


def render_csv(tasks: list[Task], projects: list[Project]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for t in tasks:
        writer.writerow(
            [
                t.id,
                t.title,
                t.status.name,
                project_name(t.project_id, projects),
                "YES" if t.flagged else "NO",
                format_date(t.defer_at),
                format_date(t.due_at),
                format_date(t.created_at),
                format_date(t.modified_at),
                describe(t.recurrence, t.recurrence_interval),
                t.notes,
            ]
        )
    return buffer.getvalue()


def render(
    tasks: list[Task],
    projects: list[Project],
    fmt: ExportFormat,
    now: datetime | None = None,
) -> str:
    """Render tasks in the requested format."""
    now = now or datetime.now()
    match fmt:
        case ExportFormat.TEXT:
            return render_text(tasks, projects, now)
        case ExportFormat.MARKDOWN:
            return render_markdown(tasks, projects, now)
        case ExportFormat.CSV:
            return render_csv(tasks, projects)
    raise ValueError(f"Unknown export format: {fmt!r}")

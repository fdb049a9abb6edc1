"""Focus CLI - GTD task manager."""

import json
import logging
import sys
from datetime import date, datetime, time

import click

from .config import load_config
from .core.availability import Availability, Snapshot, annotate, summarize
from .core.capture import resolve_date_keyword
from .core.export import ExportFormat, format_date
from .core.perspectives import Perspective
from .core.recurrence import describe, parse_recurrence
from .core.session import ViewState
from .core.tasks import ProjectType, StatusName, Task
from .errors import FocusError, NotFoundError
from .workflows import (
    CompletionResult,
    add_dependency,
    backup_database,
    capture_task,
    complete_batch,
    complete_task,
    compute_view,
    create_project,
    delete_project,
    delete_task,
    export_tasks,
    flag_task,
    get_exporter,
    get_store,
    get_undo_history,
    load_snapshot,
    move_task,
    recording_undo,
    resolve_contexts,
    save_edit,
    set_defer,
    set_due,
    set_recurrence,
    undo_last,
)


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def parse_when(value: str, now: datetime) -> datetime | None:
    """YYYY-MM-DD, today/tomorrow/weekend, or "none" to clear."""
    if value.lower() == "none":
        return None
    keyword = resolve_date_keyword(value, now)
    if keyword is not None:
        return keyword
    try:
        return datetime.combine(date.fromisoformat(value), time())
    except ValueError:
        raise click.BadParameter(f"Expected YYYY-MM-DD, today, tomorrow, weekend or none, got {value!r}")


def _task_to_dict(task: Task, info: Availability | None) -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status.name.lower(),
        "project_id": task.project_id,
        "flagged": task.flagged,
        "defer_at": task.defer_at.isoformat() if task.defer_at else None,
        "due_at": task.due_at.isoformat() if task.due_at else None,
        "order_index": task.order_index,
        "recurrence": describe(task.recurrence, task.recurrence_interval),
        "context_ids": sorted(task.context_ids),
        "dependency_ids": sorted(task.dependency_ids),
        "blocked": info.blocked if info else False,
    }


def format_task_line(task: Task, info: Availability | None, snapshot: Snapshot) -> str:
    flag = "★" if task.flagged else " "
    blocked = " [blocked]" if info and info.blocked else ""
    due = f" (due {format_date(task.due_at)})" if task.due_at else ""
    contexts = "".join(
        f" @{c.name}" for cid in sorted(task.context_ids) if (c := snapshot.context(cid))
    )
    return f"{task.id:>4} {flag} {task.title}{due}{contexts}{blocked}"


def _show_perspective(perspective: Perspective, as_json: bool, empty_msg: str) -> None:
    config = load_config()
    try:
        with get_store(config) as store:
            snapshot, visible = compute_view(store, perspective)
    except FocusError as e:
        _fail(e)

    info = annotate(snapshot, datetime.now())
    if as_json:
        click.echo(json.dumps([_task_to_dict(t, info.get(t.id)) for t in visible], indent=2))
        return

    if not visible:
        click.echo(empty_msg)
    for task in visible:
        click.echo(format_task_line(task, info.get(task.id), snapshot))

    summary = summarize(info)
    click.echo(
        f"\n{summary.available} available, {summary.deferred} deferred, "
        f"{summary.blocked} blocked, {summary.done} done"
    )


@click.group()
@click.version_option(package_name="focus-gtd")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Focus - GTD task manager."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command()
@click.argument("text", nargs=-1, required=True)
@click.option("--project", "project_id", type=int, default=None, help="Project id to file under")
@click.option("--due", default=None, help="Due date (YYYY-MM-DD, today, tomorrow, weekend)")
def add(text: tuple[str, ...], project_id: int | None, due: str | None):
    """Quick-capture a task: "Buy milk @errands #tomorrow !flag"."""
    config = load_config()
    now = datetime.now()
    due_at = parse_when(due, now) if due else None
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            task_id = capture_task(
                store, " ".join(text), config, now, project_id=project_id, undo=undo
            )
            if due_at:
                store.update_task_due_at(task_id, due_at)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task added (ID: {task_id})")


@main.command("list")
@click.argument("selector", default="inbox")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_tasks(selector: str, as_json: bool):
    """List a perspective: today, anytime, flagged, inbox, completed, project:ID, context:ID."""
    try:
        perspective = Perspective.parse(selector)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="SELECTOR")
    _show_perspective(perspective, as_json, "Nothing here.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def today(as_json: bool):
    """Tasks available today: undated, due today or overdue."""
    _show_perspective(Perspective.today(), as_json, "Nothing due today.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def inbox(as_json: bool):
    """Unfiled tasks."""
    _show_perspective(Perspective.inbox(), as_json, "Inbox is empty.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def flagged(as_json: bool):
    """Flagged tasks."""
    _show_perspective(Perspective.flagged(), as_json, "No flagged tasks.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def anytime(as_json: bool):
    """Every available task."""
    _show_perspective(Perspective.anytime(), as_json, "No available tasks.")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def completed(as_json: bool):
    """Completed tasks."""
    _show_perspective(Perspective.completed(), as_json, "No completed tasks.")


@main.command()
@click.argument("task_id", type=int)
def show(task_id: int):
    """Show task details."""
    config = load_config()
    try:
        with get_store(config) as store:
            snapshot = load_snapshot(store)
            task = store.get_task(task_id)
    except FocusError as e:
        _fail(e)

    info = annotate(snapshot, datetime.now()).get(task.id)
    project = snapshot.project(task.project_id) if task.project_id else None
    contexts = [c.name for cid in sorted(task.context_ids) if (c := snapshot.context(cid))]

    click.echo(f"Task ID:     {task.id}")
    click.echo(f"Title:       {task.title}")
    click.echo(f"Status:      {StatusName.for_status(task.status).value}")
    click.echo(f"Project:     {project.title if project else '-'}")
    click.echo(f"Contexts:    {', '.join('@' + n for n in contexts) or '-'}")
    click.echo(f"Flagged:     {'yes' if task.flagged else 'no'}")
    click.echo(f"Defer:       {format_date(task.defer_at)}")
    click.echo(f"Due:         {format_date(task.due_at)}")
    click.echo(f"Created:     {format_date(task.created_at)}")
    click.echo(f"Modified:    {format_date(task.modified_at)}")
    click.echo(f"Recurrence:  {describe(task.recurrence, task.recurrence_interval)}")
    click.echo(f"Depends on:  {', '.join(str(d) for d in sorted(task.dependency_ids)) or '-'}")
    click.echo(f"Blocked:     {'yes' if info and info.blocked else 'no'}")
    if task.notes:
        click.echo(f"\nNotes:\n{task.notes}")


def _report_completion(result: CompletionResult) -> None:
    if result.successor:
        click.echo(
            f"Task {result.task_id} completed, next occurrence created (ID: {result.successor.id})"
        )
    elif result.warning:
        click.echo(f"Task {result.task_id} completed (warning: {result.warning})")
    else:
        click.echo(f"Task {result.task_id} completed")


@main.command()
@click.argument("task_ids", type=int, nargs=-1, required=True)
@click.option("--in", "selector", default=None, help="Only complete tasks visible in this perspective")
def complete(task_ids: tuple[int, ...], selector: str | None):
    """Mark tasks done; recurring tasks get their next occurrence."""
    config = load_config()
    perspective = None
    if selector:
        try:
            perspective = Perspective.parse(selector)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--in")

    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            if perspective is None:
                for task_id in task_ids:
                    _report_completion(
                        complete_task(store, task_id, policy=config.recurrence_policy, undo=undo)
                    )
                return

            _, visible = compute_view(store, perspective)
            view = ViewState(perspective=perspective, batch_selection=set(task_ids))
            results = complete_batch(
                store, view, visible, policy=config.recurrence_policy, undo=undo
            )
    except FocusError as e:
        _fail(e)

    for result in results:
        _report_completion(result)
    for skipped in sorted(set(task_ids) - {r.task_id for r in results}):
        click.echo(f"Task {skipped} is not in {perspective}, skipped")


@main.command()
@click.argument("task_id", type=int)
def delete(task_id: int):
    """Delete a task and its dependency edges."""
    config = load_config()
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            delete_task(store, task_id, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} deleted")


@main.command()
@click.argument("task_id", type=int)
@click.option("--title", default=None, help="New title")
@click.option("--notes", default=None, help="New notes")
def edit(task_id: int, title: str | None, notes: str | None):
    """Change a task's title or notes."""
    if title is None and notes is None:
        raise click.UsageError("Nothing to change: pass --title and/or --notes")
    config = load_config()
    view = ViewState()
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            buffer = view.begin_edit(store.get_task(task_id))
            if title is not None:
                buffer.title = title
            if notes is not None:
                buffer.notes = notes
            save_edit(store, view, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} updated")


@main.command()
@click.argument("task_id", type=int)
@click.option("--off", is_flag=True, help="Remove the flag")
def flag(task_id: int, off: bool):
    """Flag (or unflag) a task."""
    config = load_config()
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            flag_task(store, task_id, not off, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} {'unflagged' if off else 'flagged'}")


@main.command()
@click.argument("task_id", type=int)
@click.argument("when")
def defer(task_id: int, when: str):
    """Hide a task until WHEN (YYYY-MM-DD, today, tomorrow, weekend, none)."""
    config = load_config()
    defer_at = parse_when(when, datetime.now())
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            set_defer(store, task_id, defer_at, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} deferred until {format_date(defer_at)}")


@main.command()
@click.argument("task_id", type=int)
@click.argument("when")
def due(task_id: int, when: str):
    """Set a due date (YYYY-MM-DD, today, tomorrow, weekend, none)."""
    config = load_config()
    due_at = parse_when(when, datetime.now())
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            set_due(store, task_id, due_at, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} due {format_date(due_at)}")


@main.command()
@click.argument("task_id", type=int)
@click.argument("pattern", type=click.Choice(["none", "daily", "weekly", "monthly", "yearly"]))
@click.option("--every", "interval", type=int, default=1, help="Repeat every N periods")
def recur(task_id: int, pattern: str, interval: int):
    """Set how a task repeats."""
    config = load_config()
    recurrence = parse_recurrence(pattern)
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            set_recurrence(store, task_id, recurrence, interval, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} repeats: {describe(recurrence, interval)}")


@main.command("undo")
def undo_cmd():
    """Undo the most recent change."""
    config = load_config()
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            entry = undo_last(store, undo)
    except FocusError as e:
        _fail(e)
    if entry is None:
        click.echo("Nothing to undo.")
        return
    click.echo(f"Undid: {entry.describe()}")


@main.command()
@click.argument("task_id", type=int)
@click.argument("direction", type=click.Choice(["up", "down"]))
@click.option("--in", "selector", default="inbox", help="Perspective the move applies to")
def move(task_id: int, direction: str, selector: str):
    """Move a task up or down within a perspective."""
    config = load_config()
    try:
        perspective = Perspective.parse(selector)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--in")
    try:
        with get_store(config) as store:
            changes = move_task(store, perspective, task_id, -1 if direction == "up" else 1)
    except FocusError as e:
        _fail(e)
    if not changes:
        click.echo(f"Task {task_id} is already at the {'top' if direction == 'up' else 'bottom'}")
        return
    click.echo(f"Task {task_id} moved {direction} in {perspective}")


# ============== Dependencies ==============


@main.group()
def depend():
    """Manage task dependencies."""
    pass


@depend.command("add")
@click.argument("task_id", type=int)
@click.argument("prerequisite_id", type=int)
def depend_add(task_id: int, prerequisite_id: int):
    """Make TASK_ID wait until PREREQUISITE_ID is done."""
    config = load_config()
    try:
        with get_store(config) as store:
            add_dependency(store, task_id, prerequisite_id, config.reject_dependency_cycles)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} now waits on task {prerequisite_id}")


@depend.command("remove")
@click.argument("task_id", type=int)
@click.argument("prerequisite_id", type=int)
def depend_remove(task_id: int, prerequisite_id: int):
    """Remove a dependency."""
    config = load_config()
    try:
        with get_store(config) as store:
            store.remove_dependency(task_id, prerequisite_id)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} no longer waits on task {prerequisite_id}")


# ============== Projects ==============


@main.group()
def project():
    """Manage projects."""
    pass


@project.command("add")
@click.argument("title")
@click.option("--parallel", is_flag=True, help="Show all tasks, not just the next one")
def project_add(title: str, parallel: bool):
    """Create a project (sequential unless --parallel)."""
    config = load_config()
    project_type = ProjectType.PARALLEL if parallel else ProjectType.SEQUENTIAL
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            project_id = create_project(store, title, project_type, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Project added (ID: {project_id})")


@project.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def project_list(as_json: bool):
    """List projects."""
    config = load_config()
    try:
        with get_store(config) as store:
            projects = store.load_all_projects()
    except FocusError as e:
        _fail(e)

    if as_json:
        click.echo(
            json.dumps(
                [{"id": p.id, "title": p.title, "type": p.type.name.lower()} for p in projects],
                indent=2,
            )
        )
        return
    if not projects:
        click.echo("No projects.")
        return
    for p in projects:
        click.echo(f"{p.id:>4} {p.type.name.lower():<10} {p.title}")


@project.command("delete")
@click.argument("project_id", type=int)
def project_delete(project_id: int):
    """Delete a project; its tasks move back to the inbox."""
    config = load_config()
    try:
        with get_store(config) as store, recording_undo(get_undo_history(config)) as undo:
            delete_project(store, project_id, undo)
    except FocusError as e:
        _fail(e)
    click.echo(f"Project {project_id} deleted")


@project.command("assign")
@click.argument("task_id", type=int)
@click.argument("project_id", type=int)
def project_assign(task_id: int, project_id: int):
    """File a task under a project (0 to unfile)."""
    config = load_config()
    try:
        with get_store(config) as store:
            store.assign_task_to_project(task_id, project_id or None)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} filed under project {project_id}" if project_id else f"Task {task_id} unfiled")


# ============== Contexts ==============


@main.group()
def context():
    """Manage contexts."""
    pass


@context.command("list")
def context_list():
    """List contexts."""
    config = load_config()
    try:
        with get_store(config) as store:
            contexts = store.load_all_contexts()
    except FocusError as e:
        _fail(e)
    if not contexts:
        click.echo("No contexts.")
        return
    for c in contexts:
        click.echo(f"{c.id:>4} {c.color} @{c.name}")


@context.command("add")
@click.argument("name")
@click.option("--color", default=None, help="Hex display color")
def context_add(name: str, color: str | None):
    """Create a context."""
    config = load_config()
    try:
        with get_store(config) as store:
            context_id = store.create_context(name.removeprefix("@"), color or config.default_context_color)
    except FocusError as e:
        _fail(e)
    click.echo(f"Context added (ID: {context_id})")


@context.command("tag")
@click.argument("task_id", type=int)
@click.argument("name")
def context_tag(task_id: int, name: str):
    """Tag a task with a context, creating the context if needed."""
    config = load_config()
    name = name.removeprefix("@")
    try:
        with get_store(config) as store:
            (context_id,) = resolve_contexts(store, [name], config.default_context_color)
            store.add_context_to_task(task_id, context_id)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} tagged @{name}")


@context.command("untag")
@click.argument("task_id", type=int)
@click.argument("name")
def context_untag(task_id: int, name: str):
    """Remove a context from a task."""
    config = load_config()
    name = name.removeprefix("@")
    try:
        with get_store(config) as store:
            found = load_snapshot(store).context_by_name(name)
            if found is None:
                raise NotFoundError(f"Unknown context @{name}")
            store.remove_context_from_task(task_id, found.id)
    except FocusError as e:
        _fail(e)
    click.echo(f"Task {task_id} untagged @{name}")


# ============== Export ==============


@main.command("export")
@click.option(
    "--format",
    "fmt",
    type=click.Choice([f.value for f in ExportFormat]),
    default=ExportFormat.MARKDOWN.value,
    help="Export format",
)
def export_cmd(fmt: str):
    """Export all tasks to a file."""
    config = load_config()
    try:
        with get_store(config) as store:
            path = export_tasks(store, get_exporter(config), ExportFormat(fmt))
    except FocusError as e:
        _fail(e)
    click.echo(f"Exported to {path}")


@main.command()
def backup():
    """Copy the task database to a timestamped backup."""
    config = load_config()
    try:
        path = backup_database(config, get_exporter(config))
    except FileNotFoundError as e:
        _fail(e)
    click.echo(f"Backup written to {path}")


if __name__ == "__main__":
    main()

"""Recurrence expansion - the next occurrence of a completed recurring task."""

import calendar
from datetime import datetime, timedelta
from enum import Enum

from .tasks import Recurrence, Task, TaskDraft, TaskStatus


class RecurrencePolicy(Enum):
    """What happens to defer/due dates on the next occurrence."""

    KEEP = "keep"  # Dates are cleared; the user reschedules each occurrence
    ADVANCE = "advance"  # Dates shift forward by the recurrence interval


RECURRENCE_UNITS = {
    Recurrence.DAILY: ("daily", "days"),
    Recurrence.WEEKLY: ("weekly", "weeks"),
    Recurrence.MONTHLY: ("monthly", "months"),
    Recurrence.YEARLY: ("yearly", "years"),
}


def describe(recurrence: Recurrence, interval: int = 1) -> str:
    """Human-readable recurrence, e.g. "weekly" or "every 2 weeks"."""
    if recurrence == Recurrence.NONE:
        return "-"
    single, plural = RECURRENCE_UNITS[recurrence]
    if interval == 1:
        return single
    return f"every {interval} {plural}"


def parse_recurrence(text: str) -> Recurrence:
    """Accepts "none", "daily", "weekly", "monthly" or "yearly"."""
    try:
        return Recurrence[text.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown recurrence: {text!r}") from None


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping to the last day of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def advance(value: datetime, recurrence: Recurrence, interval: int) -> datetime:
    """Move an instant forward by one recurrence step."""
    match recurrence:
        case Recurrence.DAILY:
            return value + timedelta(days=interval)
        case Recurrence.WEEKLY:
            return value + timedelta(weeks=interval)
        case Recurrence.MONTHLY:
            return add_months(value, interval)
        case Recurrence.YEARLY:
            return add_months(value, 12 * interval)
        case _:
            return value


def expand(
    completed: Task,
    now: datetime,
    policy: RecurrencePolicy = RecurrencePolicy.KEEP,
) -> TaskDraft:
    """
    Draft for the next occurrence of a recurring task.

    Title, notes, project, flag, contexts and recurrence settings are copied.
    The new task starts in the inbox, created at `now`. Dependencies are not
    carried over. There is no series id linking the occurrences.
    """
    if not completed.is_recurring:
        raise ValueError(f"Task {completed.id} does not recur")

    defer_at = due_at = None
    if policy == RecurrencePolicy.ADVANCE:
        step = completed.recurrence, completed.recurrence_interval
        if completed.defer_at is not None:
            defer_at = advance(completed.defer_at, *step)
        if completed.due_at is not None:
            due_at = advance(completed.due_at, *step)

    return TaskDraft(
        title=completed.title,
        notes=completed.notes,
        status=TaskStatus.INBOX,
        project_id=completed.project_id,
        flagged=completed.flagged,
        created_at=now,
        defer_at=defer_at,
        due_at=due_at,
        recurrence=completed.recurrence,
        recurrence_interval=completed.recurrence_interval,
        context_ids=set(completed.context_ids),
    )

"""Tests for the core task model."""

from datetime import datetime, timedelta

import pytest

from focus.core.tasks import (
    Project,
    ProjectType,
    Recurrence,
    StatusName,
    Task,
    TaskStatus,
    creates_cycle,
    validate_dependency,
    validate_recurrence_interval,
    validate_title,
)
from focus.errors import ValidationError


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 10, 0)


def make_task(task_id, now, **kwargs):
    return Task(id=task_id, title=f"Task {task_id}", created_at=now, **kwargs)


class TestTask:
    def test_defaults(self, now):
        task = make_task(1, now)
        assert task.status == TaskStatus.INBOX
        assert task.project_id is None
        assert task.is_unfiled is True
        assert task.is_done is False
        assert task.is_recurring is False
        assert task.context_ids == frozenset()
        assert task.dependency_ids == frozenset()

    def test_is_done(self, now):
        assert make_task(1, now, status=TaskStatus.DONE).is_done is True
        assert make_task(1, now, status=TaskStatus.ACTIVE).is_done is False

    def test_is_recurring(self, now):
        assert make_task(1, now, recurrence=Recurrence.WEEKLY).is_recurring is True

    def test_project_sequential_by_default(self, now):
        project = Project(id=1, title="Launch", created_at=now)
        assert project.type == ProjectType.SEQUENTIAL
        assert project.is_sequential is True

    def test_status_names(self):
        assert StatusName.for_status(TaskStatus.INBOX).value == "Inbox"
        assert StatusName.for_status(TaskStatus.DONE).value == "Done"


class TestValidation:
    def test_title_is_stripped(self):
        assert validate_title("  Write report ") == "Write report"

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_empty_title_rejected(self, title):
        with pytest.raises(ValidationError, match="empty"):
            validate_title(title)

    def test_self_dependency_rejected(self):
        with pytest.raises(ValidationError, match="itself"):
            validate_dependency(3, 3)

    def test_other_dependency_allowed(self):
        validate_dependency(3, 4)

    def test_recurrence_interval_must_be_positive(self):
        assert validate_recurrence_interval(2) == 2
        with pytest.raises(ValidationError):
            validate_recurrence_interval(0)


class TestCreatesCycle:
    def test_direct_cycle(self, now):
        tasks = [make_task(1, now), make_task(2, now, dependency_ids=frozenset({1}))]
        # 1 -> 2 while 2 -> 1 already exists
        assert creates_cycle(tasks, 1, 2) is True

    def test_indirect_cycle(self, now):
        tasks = [
            make_task(1, now),
            make_task(2, now, dependency_ids=frozenset({1})),
            make_task(3, now, dependency_ids=frozenset({2})),
        ]
        assert creates_cycle(tasks, 1, 3) is True

    def test_no_cycle(self, now):
        tasks = [
            make_task(1, now),
            make_task(2, now, dependency_ids=frozenset({1})),
            make_task(3, now + timedelta(minutes=1)),
        ]
        assert creates_cycle(tasks, 3, 2) is False

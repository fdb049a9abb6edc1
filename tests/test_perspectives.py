"""Tests for the perspective filter."""

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from focus.core.perspectives import (
    Perspective,
    PerspectiveKind,
    compute_perspective,
    is_due_today_or_overdue,
    reorder,
    sort_for_display,
)
from focus.core.tasks import Project, ProjectType, Task, TaskStatus


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 10, 0)


def make_task(task_id, created, **kwargs):
    return Task(id=task_id, title=f"Task {task_id}", created_at=created, **kwargs)


def ids(tasks):
    return [t.id for t in tasks]


@pytest.fixture
def sequential(now):
    return Project(id=1, title="Sequential", created_at=now, type=ProjectType.SEQUENTIAL)


@pytest.fixture
def parallel(now):
    return Project(id=2, title="Parallel", created_at=now, type=ProjectType.PARALLEL)


@pytest.fixture
def project_tasks(now):
    """T1, T2, T3 created in order."""
    return [make_task(i, now + timedelta(minutes=i)) for i in (1, 2, 3)]


class TestPerspectiveSelector:
    def test_parse_simple(self):
        assert Perspective.parse("today") == Perspective.today()
        assert Perspective.parse(" Flagged ") == Perspective.flagged()

    def test_parse_targeted(self):
        assert Perspective.parse("project:3") == Perspective.project(3)
        assert Perspective.parse("context:7") == Perspective.context(7)

    @pytest.mark.parametrize("text", ["someday", "", "project", "project:x", "today:3"])
    def test_parse_rejects_unknown(self, text):
        with pytest.raises(ValueError):
            Perspective.parse(text)

    def test_targeted_requires_id(self):
        with pytest.raises(ValueError):
            Perspective(PerspectiveKind.PROJECT)

    def test_untargeted_rejects_id(self):
        with pytest.raises(ValueError):
            Perspective(PerspectiveKind.INBOX, 3)

    def test_rejects_non_kind(self):
        with pytest.raises(ValueError):
            Perspective("today")

    def test_str(self):
        assert str(Perspective.project(4)) == "project:4"
        assert str(Perspective.anytime()) == "anytime"


class TestDeferredInvisible:
    @pytest.mark.parametrize(
        "perspective",
        [
            Perspective.today(),
            Perspective.anytime(),
            Perspective.flagged(),
            Perspective.inbox(),
            Perspective.context(5),
        ],
    )
    def test_deferred_hidden(self, now, perspective):
        task = make_task(
            1,
            now,
            defer_at=now + timedelta(hours=1),
            flagged=True,
            context_ids=frozenset({5}),
        )
        assert compute_perspective([task], [], perspective, now) == []

    def test_deferred_project_task_hidden(self, now, parallel):
        task = make_task(1, now, project_id=2, defer_at=now + timedelta(days=1))
        assert compute_perspective([task], [parallel], Perspective.project(2), now) == []

    def test_deferred_done_task_in_completed(self, now):
        task = make_task(1, now, status=TaskStatus.DONE, defer_at=now + timedelta(days=1))
        assert ids(compute_perspective([task], [], Perspective.completed(), now)) == [1]


class TestBasicPerspectives:
    def test_completed_only_done(self, now):
        tasks = [make_task(1, now, status=TaskStatus.DONE), make_task(2, now)]
        assert ids(compute_perspective(tasks, [], Perspective.completed(), now)) == [1]

    def test_anytime_excludes_done(self, now):
        tasks = [make_task(1, now, status=TaskStatus.DONE), make_task(2, now)]
        assert ids(compute_perspective(tasks, [], Perspective.anytime(), now)) == [2]

    def test_flagged(self, now):
        tasks = [make_task(1, now, flagged=True), make_task(2, now)]
        assert ids(compute_perspective(tasks, [], Perspective.flagged(), now)) == [1]

    def test_inbox_only_unfiled(self, now, parallel):
        tasks = [make_task(1, now), make_task(2, now, project_id=2)]
        assert ids(compute_perspective(tasks, [parallel], Perspective.inbox(), now)) == [1]

    def test_context(self, now):
        tasks = [
            make_task(1, now, context_ids=frozenset({5, 6})),
            make_task(2, now, context_ids=frozenset({6})),
            make_task(3, now),
        ]
        assert ids(compute_perspective(tasks, [], Perspective.context(5), now)) == [1]

    def test_blocked_tasks_still_listed(self, now):
        tasks = [make_task(1, now), make_task(2, now, dependency_ids=frozenset({1}))]
        assert sorted(ids(compute_perspective(tasks, [], Perspective.anytime(), now))) == [1, 2]

    def test_empty_snapshot(self, now):
        assert compute_perspective([], [], Perspective.today(), now) == []

    def test_deduplicates(self, now):
        task = make_task(1, now)
        assert ids(compute_perspective([task, task], [], Perspective.anytime(), now)) == [1]

    def test_does_not_mutate_input(self, now):
        tasks = [make_task(1, now, status=TaskStatus.DONE), make_task(2, now)]
        original = list(tasks)
        compute_perspective(tasks, [], Perspective.anytime(), now)
        assert tasks == original


class TestToday:
    def test_due_now_included(self, now):
        task = make_task(1, now, due_at=now)
        assert ids(compute_perspective([task], [], Perspective.today(), now)) == [1]

    def test_due_earlier_today_included(self, now):
        task = make_task(1, now, due_at=now.replace(hour=0, minute=1))
        assert ids(compute_perspective([task], [], Perspective.today(), now)) == [1]

    def test_due_later_today_included(self, now):
        task = make_task(1, now, due_at=now.replace(hour=23, minute=59))
        assert ids(compute_perspective([task], [], Perspective.today(), now)) == [1]

    def test_overdue_included(self, now):
        task = make_task(1, now, due_at=now - timedelta(days=3))
        assert ids(compute_perspective([task], [], Perspective.today(), now)) == [1]

    def test_due_tomorrow_excluded(self, now):
        task = make_task(1, now, due_at=now + timedelta(days=1))
        assert compute_perspective([task], [], Perspective.today(), now) == []

    def test_no_due_date_included(self, now):
        task = make_task(1, now)
        assert ids(compute_perspective([task], [], Perspective.today(), now)) == [1]

    def test_year_boundary(self):
        now = datetime(2025, 1, 1, 9, 0)
        task = make_task(1, now, due_at=datetime(2024, 12, 31, 23, 0))
        assert is_due_today_or_overdue(task, now) is True

    def test_no_due_date_is_not_overdue(self, now):
        assert is_due_today_or_overdue(make_task(1, now), now) is False


class TestProjectPerspective:
    def test_sequential_shows_first_only(self, now, sequential, project_tasks):
        tasks = [replace(t, project_id=1) for t in project_tasks]
        result = compute_perspective(tasks, [sequential], Perspective.project(1), now)
        assert ids(result) == [1]

    def test_sequential_advances_after_completion(self, now, sequential, project_tasks):
        tasks = [replace(t, project_id=1) for t in project_tasks]
        tasks[0] = replace(tasks[0], status=TaskStatus.DONE)
        result = compute_perspective(tasks, [sequential], Perspective.project(1), now)
        assert ids(result) == [2]

    def test_sequential_gated_by_deferred_head(self, now, sequential, project_tasks):
        tasks = [replace(t, project_id=1) for t in project_tasks]
        tasks[0] = replace(tasks[0], defer_at=now + timedelta(days=1))
        assert compute_perspective(tasks, [sequential], Perspective.project(1), now) == []

    def test_parallel_shows_all_incomplete(self, now, parallel, project_tasks):
        tasks = [replace(t, project_id=2) for t in project_tasks]
        tasks[1] = replace(tasks[1], status=TaskStatus.DONE)
        result = compute_perspective(tasks, [parallel], Perspective.project(2), now)
        assert sorted(ids(result)) == [1, 3]

    def test_parallel_shows_all_three(self, now, parallel, project_tasks):
        tasks = [replace(t, project_id=2) for t in project_tasks]
        result = compute_perspective(tasks, [parallel], Perspective.project(2), now)
        assert sorted(ids(result)) == [1, 2, 3]

    def test_unknown_project_treated_as_sequential(self, now, project_tasks):
        tasks = [replace(t, project_id=9) for t in project_tasks]
        assert ids(compute_perspective(tasks, [], Perspective.project(9), now)) == [1]

    def test_other_projects_excluded(self, now, parallel):
        tasks = [make_task(1, now, project_id=2), make_task(2, now, project_id=3)]
        assert ids(compute_perspective(tasks, [parallel], Perspective.project(2), now)) == [1]


class TestOrdering:
    def test_newest_first_by_default(self, now):
        tasks = [make_task(i, now + timedelta(minutes=i)) for i in (1, 2, 3)]
        assert ids(sort_for_display(tasks)) == [3, 2, 1]

    def test_order_index_wins(self, now):
        tasks = [
            make_task(1, now, order_index=0),
            make_task(2, now + timedelta(minutes=1), order_index=2),
            make_task(3, now + timedelta(minutes=2), order_index=1),
        ]
        assert ids(sort_for_display(tasks)) == [1, 3, 2]

    def test_same_timestamp_higher_id_first(self, now):
        tasks = [make_task(1, now), make_task(2, now)]
        assert ids(sort_for_display(tasks)) == [2, 1]


class TestReorder:
    @pytest.fixture
    def visible(self, now):
        # All order_index 0; display order newest first: 3, 2, 1
        return sort_for_display([make_task(i, now + timedelta(minutes=i)) for i in (1, 2, 3)])

    def test_move_up(self, visible):
        changes = reorder(visible, 2, -1)
        # New order 2, 3, 1 -> indexes 0, 1, 2
        assert changes == {3: 1, 1: 2}

    def test_move_down(self, visible):
        assert reorder(visible, 3, 1) == {3: 1, 1: 2}

    def test_result_sorts_into_new_order(self, visible):
        changes = reorder(visible, 1, -1)
        moved = [replace(t, order_index=changes.get(t.id, t.order_index)) for t in visible]
        assert ids(sort_for_display(moved)) == [3, 1, 2]

    def test_top_and_bottom_are_noops(self, visible):
        assert reorder(visible, 3, -1) == {}
        assert reorder(visible, 1, 1) == {}

    def test_unknown_task(self, visible):
        with pytest.raises(ValueError):
            reorder(visible, 42, 1)

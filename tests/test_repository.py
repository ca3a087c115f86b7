from __future__ import annotations

import sqlite3
from datetime import date, datetime, timedelta, timezone

import pytest

from taskpad.models import EmptyContentError, InvalidStatusError, TaskStatus, extract_tags, extract_urls
from taskpad.repository import TaskRepository


def _active_priorities(repo: TaskRepository) -> list[int]:
    return [t.priority for t in repo.get_all_active_tasks()]


# ---- create / read ----


def test_create_task_persists_and_derives(repo: TaskRepository) -> None:
    task = repo.create_task("Read https://example.com #reading")

    stored = repo.get_task_by_id(task.id)
    assert stored is not None
    assert stored.content == "Read https://example.com #reading"
    assert stored.extracted_urls == ["https://example.com"]
    assert stored.tags == ["reading"]
    assert stored.status == TaskStatus.PENDING


def test_create_assigns_increasing_priorities(repo: TaskRepository) -> None:
    a = repo.create_task("A #work")
    b = repo.create_task("B #personal")
    c = repo.create_task("C")

    assert [a.priority, b.priority, c.priority] == [0, 1, 2]
    assert [t.id for t in repo.get_all_pending_tasks()] == [a.id, b.id, c.id]


def test_create_priority_ignores_non_pending_tasks(repo: TaskRepository) -> None:
    first = repo.create_task("first")
    second = repo.create_task("second")
    repo.mark_in_progress(second.id)

    third = repo.create_task("third")
    assert third.priority == first.priority + 1


def test_create_priority_starts_at_zero_without_pending(repo: TaskRepository) -> None:
    done = repo.create_task("done")
    repo.mark_completed(done.id)
    assert repo.create_task("next").priority == 0


def test_create_accepts_empty_content(repo: TaskRepository) -> None:
    task = repo.create_task("   ")
    assert repo.get_task_by_id(task.id) is not None


def test_create_with_schedule(repo: TaskRepository) -> None:
    task = repo.create_task("dentist", "2026-11-03")
    assert repo.get_task_by_id(task.id).scheduled_for == date(2026, 11, 3)


def test_get_missing_task_returns_none(repo: TaskRepository) -> None:
    assert repo.get_task_by_id("nope") is None


# ---- content updates ----


def test_update_content_persists(repo: TaskRepository) -> None:
    task = repo.create_task("Original task content #work")

    updated = repo.update_task_content(task.id, "Updated task content #personal")

    assert updated is not None
    assert updated.id == task.id
    stored = repo.get_task_by_id(task.id)
    assert stored.content == "Updated task content #personal"
    assert stored.updated_at >= task.created_at


def test_update_content_rederives_urls_and_tags(repo: TaskRepository) -> None:
    task = repo.create_task("Check out https://github.com #work")
    new_content = "Visit https://example.com and https://docs.github.com #personal #important"

    updated = repo.update_task_content(task.id, new_content)

    assert updated.extracted_urls == extract_urls(new_content)
    assert updated.tags == extract_tags(new_content)
    stored = repo.get_task_by_id(task.id)
    assert stored.extracted_urls == ["https://example.com", "https://docs.github.com"]
    assert stored.tags == ["personal", "important"]


def test_update_content_drops_stale_tags(repo: TaskRepository) -> None:
    task = repo.create_task("Test task #work")
    repo.update_task_content(task.id, "Test task - updated")

    assert repo.get_task_by_id(task.id).tags == []
    assert repo.get_tasks_filtered_by_work_personal("work") == []
    assert len(repo.get_tasks_filtered_by_work_personal("both")) == 1


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
def test_update_content_rejects_empty(repo: TaskRepository, content: str) -> None:
    task = repo.create_task("Original task #work")

    with pytest.raises(EmptyContentError):
        repo.update_task_content(task.id, content)

    stored = repo.get_task_by_id(task.id)
    assert stored.content == "Original task #work"
    assert stored.updated_at == task.updated_at


def test_update_content_empty_raises_before_lookup(repo: TaskRepository) -> None:
    with pytest.raises(EmptyContentError):
        repo.update_task_content("non-existent-id", "")


def test_update_content_missing_task_returns_none(repo: TaskRepository) -> None:
    assert repo.update_task_content("non-existent-id", "New content") is None


def test_update_content_preserves_other_fields(repo: TaskRepository) -> None:
    task = repo.create_task("Original task #work")
    repo.change_task_status(task.id, "in_progress")
    before = repo.get_task_by_id(task.id)

    updated = repo.update_task_content(task.id, "Updated task content #personal")

    assert updated.status == TaskStatus.IN_PROGRESS
    assert updated.priority == before.priority
    assert updated.created_at == before.created_at
    assert updated.completed_at is None


# ---- status changes ----


def test_status_round_trip_through_completed(repo: TaskRepository) -> None:
    task = repo.create_task("cycle")

    first = repo.mark_completed(task.id).completed_at
    assert first is not None

    pending = repo.change_task_status(task.id, "pending")
    assert pending.completed_at is None
    assert repo.get_task_by_id(task.id).completed_at is None

    again = repo.change_task_status(task.id, "completed")
    assert again.completed_at >= first
    assert repo.get_task_by_id(task.id).completed_at == again.completed_at


def test_status_sugar(repo: TaskRepository) -> None:
    task = repo.create_task("x")
    assert repo.mark_in_progress(task.id).status == TaskStatus.IN_PROGRESS
    assert repo.mark_waiting(task.id).status == TaskStatus.WAITING
    assert repo.mark_pending(task.id).status == TaskStatus.PENDING
    assert repo.get_task_by_id(task.id).status == TaskStatus.PENDING


def test_invalid_status_raises_without_writing(repo: TaskRepository) -> None:
    task = repo.create_task("x")
    with pytest.raises(InvalidStatusError):
        repo.change_task_status(task.id, "archived")
    assert repo.get_task_by_id(task.id).updated_at == task.updated_at


def test_status_change_on_missing_task(repo: TaskRepository) -> None:
    assert repo.mark_completed("missing") is None
    assert repo.change_task_status("missing", TaskStatus.WAITING) is None


# ---- scheduling ----


def test_schedule_task(repo: TaskRepository) -> None:
    task = repo.create_task("x")
    assert repo.schedule_task(task.id, date(2026, 12, 24)).scheduled_for == date(2026, 12, 24)
    assert repo.get_task_by_id(task.id).scheduled_for == date(2026, 12, 24)
    assert repo.schedule_task(task.id, None).scheduled_for is None
    assert repo.schedule_task("missing", "2026-01-01") is None


# ---- moving ----


def test_move_up_reorders_and_reindexes(repo: TaskRepository) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")

    moved = repo.move_task(c.id, "up")

    assert moved.id == c.id
    assert moved.priority == 1
    assert [t.id for t in repo.get_all_active_tasks()] == [a.id, c.id, b.id]
    assert _active_priorities(repo) == [0, 1, 2]


def test_move_down(repo: TaskRepository) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")
    repo.move_task(a.id, "down")
    assert [t.id for t in repo.get_all_active_tasks()] == [b.id, a.id, c.id]


def test_move_first_up_is_a_no_op(repo: TaskRepository) -> None:
    a = repo.create_task("A")
    repo.create_task("B")

    result = repo.move_task(a.id, "up")

    assert result.id == a.id
    assert result.priority == 0
    assert repo.get_task_by_id(a.id).updated_at == a.updated_at


def test_move_last_down_is_a_no_op(repo: TaskRepository) -> None:
    repo.create_task("A")
    b = repo.create_task("B")

    result = repo.move_task(b.id, "down")

    assert result.id == b.id
    assert repo.get_task_by_id(b.id).updated_at == b.updated_at


def test_move_closes_priority_gaps(repo: TaskRepository) -> None:
    tasks = [repo.create_task(name) for name in "ABCD"]
    repo.update_task_priorities([tasks[0].id, tasks[1].id])  # C and D keep 2, 3
    repo.update_task_priorities([tasks[3].id])  # D -> 0, duplicates A

    repo.move_task(tasks[2].id, "up")

    assert sorted(_active_priorities(repo)) == [0, 1, 2, 3]


def test_move_spans_all_active_statuses(repo: TaskRepository) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")
    repo.mark_waiting(b.id)
    repo.mark_in_progress(c.id)

    repo.move_task(c.id, "up")

    assert [t.id for t in repo.get_all_active_tasks()] == [a.id, c.id, b.id]


def test_move_completed_task_returns_none(repo: TaskRepository) -> None:
    a = repo.create_task("A")
    repo.create_task("B")
    repo.mark_completed(a.id)
    assert repo.move_task(a.id, "down") is None


def test_move_missing_or_bad_direction(repo: TaskRepository) -> None:
    a = repo.create_task("A")
    assert repo.move_task("missing", "up") is None
    assert repo.move_task(a.id, "sideways") is None


# ---- bulk priorities ----


def test_update_task_priorities_follows_given_order(repo: TaskRepository) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")

    assert repo.update_task_priorities([c.id, a.id, b.id]) is True

    assert [t.id for t in repo.get_all_pending_tasks()] == [c.id, a.id, b.id]
    assert repo.get_task_by_id(c.id).updated_at >= c.updated_at


def test_update_task_priorities_partial_and_unknown_ids(repo: TaskRepository) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")

    repo.update_task_priorities(["ghost", c.id])

    assert repo.get_task_by_id(c.id).priority == 1
    # Omitted tasks keep their old priority, so B and C now share 1
    assert repo.get_task_by_id(a.id).priority == 0
    assert repo.get_task_by_id(b.id).priority == 1


# ---- delete ----


def test_delete_task(repo: TaskRepository) -> None:
    task = repo.create_task("bye")
    assert repo.delete_task(task.id) is True
    assert repo.get_task_by_id(task.id) is None
    assert repo.delete_task(task.id) is False


# ---- queries ----


def test_all_tasks_sort_contract(repo: TaskRepository) -> None:
    a, b, c, d = (repo.create_task(name) for name in "ABCD")
    repo.mark_completed(a.id)
    repo.mark_completed(c.id)
    repo.mark_waiting(d.id)

    ordered = [t.id for t in repo.get_all_tasks()]

    # Active by priority, then completed with the newest first
    assert ordered == [b.id, d.id, c.id, a.id]


def test_pending_and_active_views(repo: TaskRepository) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")
    repo.mark_waiting(b.id)
    repo.mark_completed(c.id)

    assert [t.id for t in repo.get_all_pending_tasks()] == [a.id]
    assert [t.id for t in repo.get_all_active_tasks()] == [a.id, b.id]


def test_tasks_by_status_and_grouping(repo: TaskRepository) -> None:
    a, b = repo.create_task("A"), repo.create_task("B")
    repo.mark_in_progress(b.id)

    assert [t.id for t in repo.get_tasks_by_status("in_progress")] == [b.id]
    assert repo.get_tasks_by_status(TaskStatus.COMPLETED) == []
    with pytest.raises(InvalidStatusError):
        repo.get_tasks_by_status("bogus")

    grouped = repo.get_tasks_grouped_by_status()
    assert set(grouped) == set(TaskStatus)
    assert [t.id for t in grouped[TaskStatus.PENDING]] == [a.id]
    assert [t.id for t in grouped[TaskStatus.IN_PROGRESS]] == [b.id]
    assert grouped[TaskStatus.WAITING] == []


def test_completed_in_range_is_inclusive(repo: TaskRepository) -> None:
    task = repo.create_task("done")
    completed_at = repo.mark_completed(task.id).completed_at
    repo.create_task("not done")

    assert [t.id for t in repo.get_completed_in_range(completed_at, completed_at)] == [task.id]
    assert repo.get_completed_in_range(
        completed_at + timedelta(seconds=1), completed_at + timedelta(days=1)
    ) == []


def test_completed_in_range_with_day_bounds(repo: TaskRepository) -> None:
    task = repo.create_task("done")
    repo.mark_completed(task.id)
    today = datetime.now(timezone.utc).date()

    assert [t.id for t in repo.get_completed_in_range(today, today)] == [task.id]


def test_completed_in_range_newest_first(repo: TaskRepository) -> None:
    a, b = repo.create_task("A"), repo.create_task("B")
    repo.mark_completed(a.id)
    repo.mark_completed(b.id)
    start = datetime.now(timezone.utc) - timedelta(days=1)
    end = datetime.now(timezone.utc) + timedelta(days=1)

    assert [t.id for t in repo.get_completed_in_range(start, end)] == [b.id, a.id]


def test_work_personal_filter_scenario(repo: TaskRepository) -> None:
    a = repo.create_task("A #work")
    b = repo.create_task("B #personal")
    c = repo.create_task("C")

    assert [t.priority for t in repo.get_all_pending_tasks()] == [0, 1, 2]
    assert [t.id for t in repo.get_tasks_filtered_by_work_personal("work")] == [a.id]
    assert [t.id for t in repo.get_tasks_filtered_by_work_personal("personal")] == [b.id]
    assert [t.id for t in repo.get_tasks_filtered_by_work_personal("both")] == [a.id, b.id, c.id]


def test_work_personal_filter_rejects_unknown(repo: TaskRepository) -> None:
    with pytest.raises(ValueError):
        repo.get_tasks_filtered_by_work_personal("everything")


def test_tasks_by_tag(repo: TaskRepository) -> None:
    work = repo.create_task("Ship it #Work")
    repo.create_task("Clean #notwork")
    snake = repo.create_task("Refactor #big_job")
    repo.create_task("Other #bigxjob")

    assert [t.id for t in repo.get_tasks_by_tag("work")] == [work.id]
    assert [t.id for t in repo.get_tasks_by_tag("#WORK")] == [work.id]
    assert [t.id for t in repo.get_tasks_by_tag("big_job")] == [snake.id]
    assert repo.get_tasks_by_tag("missing") == []


def test_get_all_tags(repo: TaskRepository) -> None:
    repo.create_task("a #work #urgent")
    repo.create_task("b #personal #work")
    repo.create_task("c")

    assert repo.get_all_tags() == ["personal", "urgent", "work"]


# ---- lifecycle ----


def test_repository_reopens_after_close(db_path) -> None:
    repo = TaskRepository(db_path)
    task = repo.create_task("persisted")
    repo.close()
    repo.close()

    with TaskRepository(db_path) as reopened:
        assert reopened.get_task_by_id(task.id).content == "persisted"


def test_repository_uses_env_database(tmp_path, monkeypatch) -> None:
    target = tmp_path / "env.db"
    monkeypatch.setenv("TASKPAD_DB", str(target))
    with TaskRepository() as repo:
        repo.create_task("x")
    assert target.exists()


def test_completed_in_range_normalises_offsets(repo: TaskRepository) -> None:
    task = repo.create_task("done")
    completed_at = repo.mark_completed(task.id).completed_at
    eastern = timezone(timedelta(hours=-5))

    start = (completed_at - timedelta(minutes=1)).astimezone(eastern)
    end = (completed_at + timedelta(minutes=1)).astimezone(eastern)
    assert [t.id for t in repo.get_completed_in_range(start, end)] == [task.id]

    naive_start = (completed_at - timedelta(minutes=1)).replace(tzinfo=None)
    naive_end = (completed_at + timedelta(minutes=1)).replace(tzinfo=None)
    assert [t.id for t in repo.get_completed_in_range(naive_start, naive_end)] == [task.id]


def test_completed_in_range_with_string_bounds(repo: TaskRepository) -> None:
    task = repo.create_task("done")
    completed_at = repo.mark_completed(task.id).completed_at
    day = completed_at.date().isoformat()

    assert [t.id for t in repo.get_completed_in_range(day, day)] == [task.id]

    start = (completed_at - timedelta(hours=1)).isoformat().replace("+00:00", "Z")
    end = (completed_at + timedelta(hours=1)).astimezone(timezone(timedelta(hours=2))).isoformat()
    assert [t.id for t in repo.get_completed_in_range(start, end)] == [task.id]

    with pytest.raises(ValueError):
        repo.get_completed_in_range("last week", day)


# ---- atomic reindexing ----


def _fail_after(repo: TaskRepository, monkeypatch: pytest.MonkeyPatch, calls: int) -> None:
    real_update = repo._update
    seen = []

    def flaky_update(task) -> None:
        seen.append(task.id)
        if len(seen) > calls:
            raise sqlite3.OperationalError("disk I/O error")
        real_update(task)

    monkeypatch.setattr(repo, "_update", flaky_update)


def test_failed_move_rolls_back_every_priority(
    repo: TaskRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")
    _fail_after(repo, monkeypatch, calls=1)

    with pytest.raises(sqlite3.OperationalError):
        repo.move_task(c.id, "up")

    assert [t.id for t in repo.get_all_active_tasks()] == [a.id, b.id, c.id]
    assert _active_priorities(repo) == [0, 1, 2]
    assert repo.get_task_by_id(a.id).updated_at == a.updated_at


def test_failed_priority_update_rolls_back(
    repo: TaskRepository, monkeypatch: pytest.MonkeyPatch
) -> None:
    a, b, c = (repo.create_task(name) for name in "ABC")

    def ids():
        yield c.id
        yield a.id
        raise sqlite3.OperationalError("database is locked")

    with pytest.raises(sqlite3.OperationalError):
        repo.update_task_priorities(ids())

    assert [t.id for t in repo.get_all_pending_tasks()] == [a.id, b.id, c.id]
    assert repo.get_task_by_id(c.id).priority == 2

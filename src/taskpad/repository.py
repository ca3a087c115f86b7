"""Task repository: the only path between callers and the tasks table."""

import logging
import sqlite3
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Iterable

from taskpad.config import resolve_db_path
from taskpad.database import Database
from taskpad.models import (
    EmptyContentError,
    Task,
    TaskStatus,
    decode_list,
)

logger = logging.getLogger(__name__)

# Completed tasks sort after every active priority
COMPLETED_SORT_KEY = 999999

WORK_PERSONAL_FILTERS = ("work", "personal", "both")

DIRECTIONS = ("up", "down")

COLUMNS = (
    "id",
    "content",
    "priority",
    "status",
    "created_at",
    "completed_at",
    "scheduled_for",
    "updated_at",
    "extracted_urls",
    "tags",
)

ALL_TASKS_ORDER = f"""
    ORDER BY
        CASE WHEN status = 'completed' THEN {COMPLETED_SORT_KEY} ELSE priority END ASC,
        completed_at DESC,
        created_at ASC
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_bound(text: str) -> datetime | date:
    text = text.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _range_bound(value: datetime | date | str, end: bool) -> str:
    """Convert a range bound to UTC ISO text comparable with completed_at.

    Naive datetimes are taken as UTC. A bare day, as a date or as
    "YYYY-MM-DD", covers the whole day at either end of the range.

    Raises:
        ValueError: If a string bound is not an ISO date or timestamp.
    """
    if isinstance(value, str):
        value = _parse_bound(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    moment = datetime.combine(value, time.max if end else time.min, timezone.utc)
    return moment.isoformat()


class TaskRepository:
    """CRUD, ordering and priority management for tasks.

    The repository owns one Database handle. The connection is opened on
    first use (or by initialize()) and released once by close().
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._database = Database(db_path if db_path is not None else resolve_db_path())

    @property
    def db_path(self) -> Path:
        return self._database.db_path

    def initialize(self) -> None:
        """Open the database and run pending migrations."""
        self._database.open()

    def close(self) -> None:
        """Release the database connection."""
        self._database.close()

    def __enter__(self) -> "TaskRepository":
        self.initialize()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ---- low-level helpers ----

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._database.connection

    def _select(self, where: str = "", params: Iterable[Any] = (), order: str = ALL_TASKS_ORDER) -> list[Task]:
        sql = f"SELECT {', '.join(COLUMNS)} FROM tasks {where} {order}"
        rows = self._conn.execute(sql, tuple(params)).fetchall()
        return [Task.from_row(dict(row)) for row in rows]

    def _insert(self, task: Task) -> None:
        row = task.to_row()
        placeholders = ", ".join("?" for _ in COLUMNS)
        self._conn.execute(
            f"INSERT INTO tasks ({', '.join(COLUMNS)}) VALUES ({placeholders})",
            tuple(row[col] for col in COLUMNS),
        )

    def _update(self, task: Task) -> None:
        """Write every mutable column of a task; does not commit."""
        row = task.to_row()
        fields = [col for col in COLUMNS if col not in ("id", "created_at")]
        self._conn.execute(
            f"UPDATE tasks SET {', '.join(f'{col} = ?' for col in fields)} WHERE id = ?",
            tuple(row[col] for col in fields) + (task.id,),
        )

    def _save(self, task: Task) -> Task:
        with self._database.transaction():
            self._update(task)
        return task

    # ---- commands ----

    def create_task(self, content: str, scheduled_for: date | str | None = None) -> Task:
        """Create a task below every pending task.

        Priority is the highest pending priority plus one, or 0 when there
        are no pending tasks. Content is stored as given.
        """
        task = Task(content=content)
        if scheduled_for is not None:
            task.schedule(scheduled_for)

        with self._database.transaction() as conn:
            row = conn.execute(
                "SELECT MAX(priority) AS max_priority FROM tasks WHERE status = ?",
                (TaskStatus.PENDING.value,),
            ).fetchone()
            max_priority = row["max_priority"]
            task.set_priority(0 if max_priority is None else max_priority + 1)
            self._insert(task)

        logger.debug("Created task id=%s priority=%s tags=%s", task.id, task.priority, task.tags)
        return task

    def get_task_by_id(self, task_id: str) -> Task | None:
        """Look up one task; None when no row matches."""
        tasks = self._select("WHERE id = ?", (task_id,), order="")
        return tasks[0] if tasks else None

    def update_task_content(self, task_id: str, new_content: str) -> Task | None:
        """Replace a task's content, re-deriving its URLs and tags.

        Raises:
            EmptyContentError: If new_content is empty or whitespace only.
        """
        if not new_content or not new_content.strip():
            raise EmptyContentError("Task content cannot be empty")

        task = self.get_task_by_id(task_id)
        if task is None:
            return None

        task.update_content(new_content)
        self._save(task)
        logger.debug("Updated content of task id=%s tags=%s", task.id, task.tags)
        return task

    def change_task_status(self, task_id: str, status: TaskStatus | str) -> Task | None:
        """Apply a status transition and persist it.

        Raises:
            InvalidStatusError: If status is not a TaskStatus value.
        """
        new_status = TaskStatus.parse(status)
        task = self.get_task_by_id(task_id)
        if task is None:
            return None

        task.set_status(new_status)
        self._save(task)
        logger.debug("Task id=%s is now %s", task.id, new_status.value)
        return task

    def mark_completed(self, task_id: str) -> Task | None:
        """Complete a task; None if it does not exist."""
        return self.change_task_status(task_id, TaskStatus.COMPLETED)

    def mark_in_progress(self, task_id: str) -> Task | None:
        """Start work on a task; None if it does not exist."""
        return self.change_task_status(task_id, TaskStatus.IN_PROGRESS)

    def mark_waiting(self, task_id: str) -> Task | None:
        """Park a task as waiting; None if it does not exist."""
        return self.change_task_status(task_id, TaskStatus.WAITING)

    def mark_pending(self, task_id: str) -> Task | None:
        """Return a task to pending; None if it does not exist."""
        return self.change_task_status(task_id, TaskStatus.PENDING)

    def schedule_task(self, task_id: str, when: date | str | None) -> Task | None:
        """Set or clear a task's scheduled day; None if it does not exist."""
        task = self.get_task_by_id(task_id)
        if task is None:
            return None

        task.schedule(when)
        return self._save(task)

    def move_task(self, task_id: str, direction: str) -> Task | None:
        """Move an active task one place up or down.

        Moves are clamped at both ends of the active list; a move that does
        not change the position returns the task without writing. Otherwise
        every active task is renumbered 0..n-1 in its new display order
        inside a single transaction.

        Returns:
            The reloaded task, or None if the task is not active, does not
            exist, or direction is not "up" or "down".
        """
        if direction not in DIRECTIONS:
            return None

        active = self.get_all_active_tasks()
        current_index = next(
            (i for i, t in enumerate(active) if t.id == task_id), None
        )
        if current_index is None:
            return None

        step = -1 if direction == "up" else 1
        new_index = min(max(current_index + step, 0), len(active) - 1)
        if new_index == current_index:
            return active[current_index]

        reordered = list(active)
        moved = reordered.pop(current_index)
        reordered.insert(new_index, moved)

        with self._database.transaction():
            for index, task in enumerate(reordered):
                task.set_priority(index)
                self._update(task)

        logger.debug("Moved task id=%s %s to position %d", task_id, direction, new_index)
        return self.get_task_by_id(task_id)

    def update_task_priorities(self, task_ids: Iterable[str]) -> bool:
        """Set each listed task's priority to its position in task_ids.

        The sequence is taken as given: unknown ids change nothing and tasks
        left out keep their current priority.
        """
        updated_at = datetime.now(timezone.utc).isoformat()
        with self._database.transaction() as conn:
            for index, task_id in enumerate(task_ids):
                conn.execute(
                    "UPDATE tasks SET priority = ?, updated_at = ? WHERE id = ?",
                    (index, updated_at, task_id),
                )
        return True

    def delete_task(self, task_id: str) -> bool:
        """Delete a task; returns whether a row was removed."""
        with self._database.transaction() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.debug("Deleted task id=%s", task_id)
        return deleted

    # ---- queries ----

    def get_all_tasks(self) -> list[Task]:
        """All tasks: active ones by priority, then completed ones, newest first."""
        return self._select()

    def get_all_pending_tasks(self) -> list[Task]:
        """Pending tasks ordered by priority."""
        return self._select(
            "WHERE status = ?",
            (TaskStatus.PENDING.value,),
            order="ORDER BY priority ASC, created_at ASC",
        )

    def get_all_active_tasks(self) -> list[Task]:
        """Tasks that are not completed, ordered by priority."""
        return self._select(
            "WHERE status != ?",
            (TaskStatus.COMPLETED.value,),
            order="ORDER BY priority ASC, created_at ASC",
        )

    def get_tasks_by_status(self, status: TaskStatus | str) -> list[Task]:
        """Tasks with the given status, in display order."""
        return self._select("WHERE status = ?", (TaskStatus.parse(status).value,))

    def get_tasks_grouped_by_status(self) -> dict[TaskStatus, list[Task]]:
        """Map every status to its tasks, each list in display order."""
        grouped: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
        for task in self.get_all_tasks():
            grouped[task.status].append(task)
        return grouped

    def get_completed_in_range(
        self, start: datetime | date | str, end: datetime | date | str
    ) -> list[Task]:
        """Completed tasks with start <= completed_at <= end, newest first."""
        return self._select(
            "WHERE status = ? AND completed_at >= ? AND completed_at <= ?",
            (
                TaskStatus.COMPLETED.value,
                _range_bound(start, end=False),
                _range_bound(end, end=True),
            ),
            order="ORDER BY completed_at DESC",
        )

    def get_tasks_by_tag(self, tag: str) -> list[Task]:
        """Tasks whose stored tag list contains the tag.

        Matches against the JSON text of the tags column, so the quoted
        tag must appear in it.
        """
        needle = tag.lstrip("#").lower()
        return self._select(
            "WHERE tags LIKE ? ESCAPE '\\'",
            (f'%"{_escape_like(needle)}"%',),
        )

    def get_tasks_filtered_by_work_personal(self, work_filter: str) -> list[Task]:
        """Tasks tagged #work, tagged #personal, or all tasks for "both".

        Raises:
            ValueError: If work_filter is not "work", "personal" or "both".
        """
        if work_filter not in WORK_PERSONAL_FILTERS:
            raise ValueError(
                f"Invalid filter: {work_filter!r}. Must be one of: "
                + ", ".join(WORK_PERSONAL_FILTERS)
            )
        if work_filter == "both":
            return self.get_all_tasks()
        return self.get_tasks_by_tag(work_filter)

    def get_all_tags(self) -> list[str]:
        """Every distinct tag in use, sorted."""
        rows = self._conn.execute(
            "SELECT tags FROM tasks WHERE tags IS NOT NULL AND tags != ''"
        ).fetchall()
        tags: set[str] = set()
        for row in rows:
            tags.update(decode_list(row["tags"]))
        return sorted(tags)

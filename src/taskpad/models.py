"""Data models for taskpad."""

import json
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

URL_PATTERN = re.compile(
    r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"[-a-zA-Z0-9()@:%_+.~#?&/=]*",
    re.ASCII,
)
TAG_PATTERN = re.compile(r"#(\w+)", re.ASCII)


class EmptyContentError(ValueError):
    """Raised when task content is empty or whitespace only."""


class InvalidStatusError(ValueError):
    """Raised when a status outside TaskStatus is requested."""


class TaskStatus(Enum):
    """Status of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING = "waiting"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: "TaskStatus | str") -> "TaskStatus":
        """Return the member for a status or its string value.

        Raises:
            InvalidStatusError: If the value is not one of the four statuses.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise InvalidStatusError(
                f"Invalid status: {value!r}. Must be one of: {valid}"
            ) from None


def extract_urls(content: str) -> list[str]:
    """Return every http(s) URL in content, in order of appearance."""
    return URL_PATTERN.findall(content or "")


def extract_tags(content: str) -> list[str]:
    """Return lowercased #word tags in content, in order of appearance.

    Only word characters belong to a tag, so "#valid-tag" yields "valid".
    """
    return [tag.lower() for tag in TAG_PATTERN.findall(content or "")]


def decode_list(raw: str | None) -> list[str]:
    """Decode a JSON array column; absent or empty values give []."""
    if not raw:
        return []
    value = json.loads(raw)
    return [str(item) for item in value] if isinstance(value, list) else []


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    # Older clients wrote UTC timestamps with a trailing "Z".
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass
class Task:
    """A task whose URLs and tags are always derived from its content."""

    content: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    priority: int = 0
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = field(default_factory=_now)
    completed_at: datetime | None = None
    scheduled_for: date | None = None
    updated_at: datetime = field(default_factory=_now)
    extracted_urls: list[str] = field(init=False, default_factory=list)
    tags: list[str] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        self.status = TaskStatus.parse(self.status)
        self._derive_fields()

    def _derive_fields(self) -> None:
        self.extracted_urls = extract_urls(self.content)
        self.tags = extract_tags(self.content)

    def _touch(self) -> None:
        self.updated_at = _now()

    @property
    def is_active(self) -> bool:
        """True for any status other than completed."""
        return self.status != TaskStatus.COMPLETED

    def update_content(self, content: str) -> "Task":
        """Replace the content and re-derive URLs and tags from it."""
        self.content = content
        self._derive_fields()
        self._touch()
        return self

    def set_status(self, status: "TaskStatus | str") -> "Task":
        """Move to a new status, keeping completed_at in step with it."""
        new_status = TaskStatus.parse(status)
        self.status = new_status
        if new_status == TaskStatus.COMPLETED:
            self.completed_at = _now()
        elif self.completed_at is not None:
            self.completed_at = None
        self._touch()
        return self

    def complete(self) -> "Task":
        """Mark the task completed, stamping completed_at."""
        return self.set_status(TaskStatus.COMPLETED)

    def start_progress(self) -> "Task":
        """Mark the task in progress."""
        return self.set_status(TaskStatus.IN_PROGRESS)

    def set_waiting(self) -> "Task":
        """Mark the task as waiting on someone else."""
        return self.set_status(TaskStatus.WAITING)

    def mark_pending(self) -> "Task":
        """Return the task to pending."""
        return self.set_status(TaskStatus.PENDING)

    def schedule(self, when: date | str | None) -> "Task":
        """Schedule the task for a day, given as a date or a YYYY-MM-DD string."""
        if isinstance(when, datetime):
            when = when.date()
        elif isinstance(when, str):
            when = date.fromisoformat(when)
        self.scheduled_for = when
        self._touch()
        return self

    def set_priority(self, priority: int) -> "Task":
        """Set the sort position among active tasks."""
        self.priority = priority
        self._touch()
        return self

    def to_row(self) -> dict[str, Any]:
        """Convert to a dictionary keyed by tasks table column."""
        return {
            "id": self.id,
            "content": self.content,
            "priority": self.priority,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "scheduled_for": self.scheduled_for.isoformat() if self.scheduled_for else None,
            "updated_at": self.updated_at.isoformat(),
            "extracted_urls": json.dumps(self.extracted_urls),
            "tags": json.dumps(self.tags),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Task":
        """Create a Task from a SQLite row dictionary.

        The extracted_urls and tags columns are not trusted; both are
        derived again from content.
        """
        scheduled = row.get("scheduled_for")
        return cls(
            id=row["id"],
            content=row["content"],
            priority=row["priority"],
            status=TaskStatus.parse(row["status"]),
            created_at=_parse_timestamp(row["created_at"]) or _now(),
            completed_at=_parse_timestamp(row.get("completed_at")),
            scheduled_for=date.fromisoformat(scheduled) if scheduled else None,
            updated_at=_parse_timestamp(row["updated_at"]) or _now(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready representation."""
        return {
            "id": self.id,
            "content": self.content,
            "priority": self.priority,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "scheduled_for": self.scheduled_for.isoformat() if self.scheduled_for else None,
            "updated_at": self.updated_at.isoformat(),
            "extracted_urls": list(self.extracted_urls),
            "tags": list(self.tags),
        }

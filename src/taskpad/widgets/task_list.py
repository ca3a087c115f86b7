"""Task list widget."""

from datetime import date

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Input, ListItem, ListView, Static

from taskpad.config import DEFAULT_DATE_FORMAT
from taskpad.models import Task, TaskStatus
from taskpad.utils import get_domain, relative_date, shorten_url

STATUS_INDICATORS = {
    TaskStatus.PENDING: "[ ]",
    TaskStatus.IN_PROGRESS: "[~]",
    TaskStatus.WAITING: "[?]",
    TaskStatus.COMPLETED: "[x]",
}

# Order used by the 'p' key; completed is reached with space instead
STATUS_CYCLE = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.WAITING)


def next_status(status: TaskStatus) -> TaskStatus:
    """Return the status after this one in the pending/in progress/waiting cycle."""
    if status not in STATUS_CYCLE:
        return TaskStatus.PENDING
    return STATUS_CYCLE[(STATUS_CYCLE.index(status) + 1) % len(STATUS_CYCLE)]


def format_task_line(
    task: Task, date_format: str = DEFAULT_DATE_FORMAT, today: date | None = None
) -> str:
    """Build the one-line text of a task row.

    Scheduled days are shown relative to today while the task is active,
    and links by their domain.
    """
    text = f"{STATUS_INDICATORS[task.status]} {task.content}"
    if task.scheduled_for:
        if task.is_active:
            when = relative_date(task.scheduled_for, today=today, fmt=date_format)
        else:
            when = task.scheduled_for.strftime(date_format)
        text += f"  @{when}"
    if task.extracted_urls:
        links = ", ".join(get_domain(url) or shorten_url(url, 30) for url in task.extracted_urls)
        text += f"  ({links})"
    return text


class TaskCreated(Message):
    """Message sent when new task content is entered."""

    def __init__(self, content: str) -> None:
        self.content = content
        super().__init__()


class TaskStatusChanged(Message):
    """Message sent when a task's status should change."""

    def __init__(self, task_id: str, new_status: TaskStatus) -> None:
        self.task_id = task_id
        self.new_status = new_status
        super().__init__()


class TaskMoved(Message):
    """Message sent when a task should move up or down."""

    def __init__(self, task_id: str, direction: str) -> None:
        self.task_id = task_id
        self.direction = direction
        super().__init__()


class TaskDeleted(Message):
    """Message sent when a task is deleted."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__()


class TaskEditRequested(Message):
    """Message sent when the highlighted task should open in the editor."""

    def __init__(self, task: Task) -> None:
        self.task = task
        super().__init__()


class TaskUrlsOpened(Message):
    """Message sent when the highlighted task's URLs should be opened."""

    def __init__(self, task: Task) -> None:
        self.task = task
        super().__init__()


class StatusBarUpdate(Message):
    """Message sent to update the status bar text."""

    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__()


class InputCancelled(Message):
    """Message sent when input is cancelled via Escape."""

    pass


class SectionHeader(ListItem):
    """A non-selectable header row, shown above the completed tasks."""

    def __init__(self, title: str) -> None:
        self._title = title
        super().__init__()
        self.disabled = True

    def compose(self) -> ComposeResult:
        yield Static(self._title)


class TaskListItem(ListItem):
    """A single task row."""

    def __init__(self, task: Task, date_format: str = DEFAULT_DATE_FORMAT) -> None:
        self._task_data = task
        self._date_format = date_format
        super().__init__()
        self.add_class(f"-{task.status.value.replace('_', '-')}")

    @property
    def task_data(self) -> Task:
        return self._task_data

    def compose(self) -> ComposeResult:
        yield Static(format_task_line(self._task_data, self._date_format), markup=False)


class NewTaskRow(ListItem):
    """An inline input row for creating a new task."""

    BINDINGS = [
        Binding("escape", "cancel", show=False),
    ]

    DEFAULT_CSS = """
    NewTaskRow {
        height: 1;
        padding: 0 1;
    }

    NewTaskRow Horizontal {
        height: 1;
        width: 100%;
    }

    NewTaskRow .status-prefix {
        width: 4;
        height: 1;
    }

    NewTaskRow Input {
        border: none;
        background: transparent;
        padding: 0;
        height: 1;
        width: 1fr;
    }
    """

    def compose(self) -> ComposeResult:
        with Horizontal():
            yield Static("[ ] ", classes="status-prefix", markup=False)
            yield Input(placeholder="New task, #tags and links welcome", id="new-task-input")

    def on_mount(self) -> None:
        self.call_later(self._focus_input)

    def _focus_input(self) -> None:
        self.query_one(Input).focus()

    def action_cancel(self) -> None:
        """Handle Escape key - cancel new task creation."""
        self.post_message(InputCancelled())


class TaskList(ListView):
    """ListView for displaying tasks with j/k navigation."""

    BINDINGS = [
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("space", "toggle_completed", "Toggle done", show=True),
        Binding("p", "cycle_status", "Status", show=True),
        Binding("K", "move_up", "Move up", show=True),
        Binding("J", "move_down", "Move down", show=True),
        Binding("e", "edit", "Edit", show=True),
        Binding("o", "open_urls", "Open links", show=False),
        Binding("d", "delete_press", "Delete", show=True),
        Binding("escape", "cancel_delete", "Cancel", show=False),
    ]

    DEFAULT_CSS = """
    TaskList {
        height: 1fr;
    }

    TaskList:focus > TaskListItem.-highlight {
        background: $accent;
    }

    TaskList > TaskListItem {
        height: auto;
        padding: 0 1;
    }

    TaskList > TaskListItem.-in-progress Static {
        color: $warning;
    }

    TaskList > TaskListItem.-waiting Static {
        color: $secondary;
    }

    TaskList > TaskListItem.-completed Static {
        text-style: strike;
        color: $text-muted;
    }

    TaskList > SectionHeader {
        height: auto;
        padding: 1 1 0 1;
    }

    TaskList > SectionHeader Static {
        text-style: bold;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._delete_pending: bool = False

    def get_selected_task(self) -> Task | None:
        """Return the currently highlighted task, or None if no task is selected."""
        if isinstance(self.highlighted_child, TaskListItem):
            return self.highlighted_child.task_data
        return None

    def action_toggle_completed(self) -> None:
        """Toggle the highlighted task between completed and pending."""
        task = self.get_selected_task()
        if task is None:
            return
        new_status = (
            TaskStatus.PENDING if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
        )
        self.post_message(TaskStatusChanged(task.id, new_status))

    def action_cycle_status(self) -> None:
        task = self.get_selected_task()
        if task is not None:
            self.post_message(TaskStatusChanged(task.id, next_status(task.status)))

    def action_move_up(self) -> None:
        task = self.get_selected_task()
        if task is not None:
            self.post_message(TaskMoved(task.id, "up"))

    def action_move_down(self) -> None:
        task = self.get_selected_task()
        if task is not None:
            self.post_message(TaskMoved(task.id, "down"))

    def action_edit(self) -> None:
        task = self.get_selected_task()
        if task is not None:
            self.post_message(TaskEditRequested(task))

    def action_open_urls(self) -> None:
        task = self.get_selected_task()
        if task is not None:
            self.post_message(TaskUrlsOpened(task))

    def action_delete_press(self) -> None:
        """Handle 'd' key press for vim-style delete."""
        task = self.get_selected_task()
        if task is None:
            return

        if not self._delete_pending:
            self._delete_pending = True
            self.post_message(StatusBarUpdate("Press d again to delete, Escape to cancel"))
        else:
            self._delete_pending = False
            self.post_message(StatusBarUpdate(""))
            self.post_message(TaskDeleted(task.id))

    def action_cancel_delete(self) -> None:
        """Cancel pending delete operation."""
        if self._delete_pending:
            self._delete_pending = False
            self.post_message(StatusBarUpdate(""))


class TaskListView(Vertical):
    """Widget displaying a list of tasks with inline creation."""

    DEFAULT_CSS = """
    TaskListView {
        height: 1fr;
    }

    TaskListView #input-container {
        height: auto;
    }

    TaskListView #empty-message {
        width: 100%;
        height: 1fr;
        content-align: center middle;
        color: $text-muted;
    }
    """

    def __init__(self, date_format: str = DEFAULT_DATE_FORMAT) -> None:
        super().__init__()
        self._date_format = date_format
        self._tasks: list[Task] = []
        self._adding = False

    @property
    def tasks(self) -> list[Task]:
        """The tasks currently loaded, in display order."""
        return list(self._tasks)

    @property
    def is_adding(self) -> bool:
        return self._adding

    def compose(self) -> ComposeResult:
        yield Vertical(id="input-container")
        yield TaskList(id="task-list")
        yield Static("No tasks yet. Press 'a' to add one.", id="empty-message")

    @property
    def task_list(self) -> TaskList:
        return self.query_one("#task-list", TaskList)

    def load_tasks(self, tasks: list[Task], select_task_id: str | None = None) -> None:
        """Load tasks into the list view, keeping the given task highlighted."""
        self._tasks = tasks
        task_list = self.task_list
        task_list.clear()

        self.query_one("#empty-message", Static).display = not tasks

        shown_completed_header = False
        for task in tasks:
            if task.status == TaskStatus.COMPLETED and not shown_completed_header:
                task_list.append(SectionHeader("Completed"))
                shown_completed_header = True
            task_list.append(TaskListItem(task, self._date_format))

        self.call_after_refresh(self.select_task_by_id, select_task_id)

    def select_task_by_id(self, task_id: str | None) -> None:
        """Highlight a task by its ID, or the first task when it isn't listed."""
        task_list = self.task_list
        items = list(task_list.children)
        for i, child in enumerate(items):
            if isinstance(child, TaskListItem) and (
                task_id is None or child.task_data.id == task_id
            ):
                task_list.index = i
                return
        for i, child in enumerate(items):
            if isinstance(child, TaskListItem):
                task_list.index = i
                return

    def show_input(self) -> None:
        """Show an inline input row above the list."""
        if self._adding:
            return
        self._adding = True
        self.query_one("#empty-message", Static).display = False
        self.query_one("#input-container", Vertical).mount(NewTaskRow())

    def hide_input(self) -> None:
        """Remove the inline input row."""
        if not self._adding:
            return
        self._adding = False
        for row in self.query(NewTaskRow):
            row.remove()
        self.query_one("#empty-message", Static).display = not self._tasks

    def focus_list(self) -> None:
        """Focus the task list for keyboard navigation."""
        self.task_list.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle new task submission."""
        if event.input.id != "new-task-input":
            return
        event.stop()
        content = event.value.strip()
        self.hide_input()
        if content:
            self.post_message(TaskCreated(content))
        self.focus_list()

    def on_input_cancelled(self, event: InputCancelled) -> None:
        """Handle input cancellation via Escape."""
        self.hide_input()
        self.focus_list()

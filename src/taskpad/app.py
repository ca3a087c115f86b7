"""Main application module."""

import logging
import sqlite3
import sys

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.reactive import reactive
from textual.widgets import Footer, Header, Static

from taskpad.cli import run_cli
from taskpad.config import Config, load_config
from taskpad.logging_setup import setup_logging
from taskpad.models import Task, TaskStatus
from taskpad.repository import TaskRepository
from taskpad.screens import TaskEditModal
from taskpad.utils import ensure_default_tag, open_url
from taskpad.widgets import TaskListView
from taskpad.widgets.task_list import (
    StatusBarUpdate,
    TaskCreated,
    TaskDeleted,
    TaskEditRequested,
    TaskMoved,
    TaskStatusChanged,
    TaskUrlsOpened,
)

logger = logging.getLogger(__name__)

FILTER_CYCLE = ("both", "work", "personal")

STATUS_LABELS = {
    TaskStatus.PENDING: "pending",
    TaskStatus.IN_PROGRESS: "in progress",
    TaskStatus.WAITING: "waiting",
    TaskStatus.COMPLETED: "done",
}


class TaskpadApp(App):
    """A Textual app for taskpad."""

    TITLE = "taskpad"

    hide_completed: reactive[bool] = reactive(False, bindings=True)
    work_filter: reactive[str] = reactive("both")

    BINDINGS = [
        ("a", "add_task", "Add task"),
        ("f", "cycle_filter", "Filter"),
        Binding("f1", "hide_completed_tasks", "Hide done"),
        Binding("f1", "show_completed_tasks", "Show done"),
        ("q", "quit", "Quit"),
    ]

    CSS = """
    #status-bar {
        height: 1;
        width: 100%;
        background: $surface;
        color: $warning;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        repository: TaskRepository | None = None,
        config: Config | None = None,
    ) -> None:
        """Initialize the application."""
        super().__init__()
        self._config = config or load_config()
        self.repository = repository or TaskRepository(self._config.db_path)
        self._status_override = ""

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        """Control which F1 binding is shown based on current state."""
        if action == "hide_completed_tasks":
            return not self.hide_completed
        if action == "show_completed_tasks":
            return self.hide_completed
        return True

    def compose(self) -> ComposeResult:
        """Create child widgets for the app."""
        yield Header()
        yield TaskListView(date_format=self._config.date_format)
        yield Static("", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Open the repository and show the tasks."""
        if self._config.theme in self.available_themes:
            self.theme = self._config.theme
        else:
            logger.warning("Unknown theme %r, keeping the default", self._config.theme)
        try:
            self.repository.initialize()
        except sqlite3.Error as e:
            logger.exception("Failed to open database at %s", self.repository.db_path)
            self.notify(f"Failed to open database: {e}", severity="error")
            self.exit(return_code=1)
            return
        self.sub_title = str(self.repository.db_path)
        self._load_tasks()
        self.query_one(TaskListView).focus_list()

    def on_unmount(self) -> None:
        self.repository.close()

    def _report_store_error(self, error: sqlite3.Error) -> None:
        logger.exception("Database error")
        self.notify(f"Database error: {error}", severity="error")

    def _load_tasks(self, select_task_id: str | None = None) -> None:
        """Load tasks for the current filter into the task list view."""
        try:
            tasks = self.repository.get_tasks_filtered_by_work_personal(self.work_filter)
            grouped = self.repository.get_tasks_grouped_by_status()
        except sqlite3.Error as e:
            self._report_store_error(e)
            return

        if self.hide_completed:
            tasks = [t for t in tasks if t.is_active]
        self.query_one(TaskListView).load_tasks(tasks, select_task_id=select_task_id)
        self._update_status_bar(grouped)

    def _update_status_bar(self, grouped: dict[TaskStatus, list[Task]] | None = None) -> None:
        status_bar = self.query_one("#status-bar", Static)
        if self._status_override:
            status_bar.update(self._status_override)
            return
        if grouped is None:
            grouped = self.repository.get_tasks_grouped_by_status()
        counts = " | ".join(
            f"{len(grouped[status])} {label}" for status, label in STATUS_LABELS.items()
        )
        status_bar.update(f"filter: {self.work_filter}  {counts}")

    def _selected_task_id(self) -> str | None:
        task = self.query_one(TaskListView).task_list.get_selected_task()
        return task.id if task else None

    def action_add_task(self) -> None:
        """Show the task input field."""
        self.query_one(TaskListView).show_input()

    def action_cycle_filter(self) -> None:
        """Switch between all, #work and #personal tasks."""
        index = FILTER_CYCLE.index(self.work_filter)
        self.work_filter = FILTER_CYCLE[(index + 1) % len(FILTER_CYCLE)]
        self._load_tasks(select_task_id=self._selected_task_id())

    def action_hide_completed_tasks(self) -> None:
        """Hide completed tasks from the list."""
        self.hide_completed = True
        self._load_tasks(select_task_id=self._selected_task_id())

    def action_show_completed_tasks(self) -> None:
        """Show completed tasks in the list."""
        self.hide_completed = False
        self._load_tasks(select_task_id=self._selected_task_id())

    def on_task_created(self, event: TaskCreated) -> None:
        """Create a task, tagging it for the active filter when it has no tags."""
        default_tag = (
            self.work_filter if self.work_filter != "both" else self._config.default_tag
        )
        try:
            task = self.repository.create_task(ensure_default_tag(event.content, default_tag))
        except sqlite3.Error as e:
            self._report_store_error(e)
            return
        self._load_tasks(select_task_id=task.id)

    def on_task_status_changed(self, event: TaskStatusChanged) -> None:
        try:
            self.repository.change_task_status(event.task_id, event.new_status)
        except sqlite3.Error as e:
            self._report_store_error(e)
            return
        self._load_tasks(select_task_id=event.task_id)

    def on_task_moved(self, event: TaskMoved) -> None:
        try:
            moved = self.repository.move_task(event.task_id, event.direction)
        except sqlite3.Error as e:
            self._report_store_error(e)
            return
        if moved is None:
            self.notify("Completed tasks can't be moved.", severity="warning")
        self._load_tasks(select_task_id=event.task_id)

    def on_task_deleted(self, event: TaskDeleted) -> None:
        """Delete a task and highlight its neighbour."""
        task_list = self.query_one(TaskListView).task_list
        ids = [t.id for t in self.query_one(TaskListView).tasks]
        next_task_id: str | None = None
        if event.task_id in ids:
            idx = ids.index(event.task_id)
            if idx < len(ids) - 1:
                next_task_id = ids[idx + 1]
            elif idx > 0:
                next_task_id = ids[idx - 1]

        try:
            self.repository.delete_task(event.task_id)
        except sqlite3.Error as e:
            self._report_store_error(e)
            return
        self._load_tasks(select_task_id=next_task_id)
        task_list.focus()

    def on_task_edit_requested(self, event: TaskEditRequested) -> None:
        task_id = event.task.id

        def apply_edit(result: tuple | None) -> None:
            if result is None:
                return
            content, scheduled_for = result
            try:
                self.repository.update_task_content(task_id, content)
                self.repository.schedule_task(task_id, scheduled_for)
            except sqlite3.Error as e:
                self._report_store_error(e)
                return
            self._load_tasks(select_task_id=task_id)

        self.push_screen(TaskEditModal(event.task), apply_edit)

    def on_task_urls_opened(self, event: TaskUrlsOpened) -> None:
        if not event.task.extracted_urls:
            self.notify("No links in this task.")
            return
        for url in event.task.extracted_urls:
            open_url(url)
        self.notify(f"Opening {len(event.task.extracted_urls)} link(s)")

    def on_status_bar_update(self, event: StatusBarUpdate) -> None:
        """Show a transient message, or the counts when the text is empty."""
        self._status_override = event.text
        self._update_status_bar()


def main() -> None:
    """Run a CLI command, or the application when no command is given."""
    config = load_config()
    argv = sys.argv[1:]
    if argv:
        setup_logging(console_level=config.log_level)
        exit_code = run_cli(argv, config=config)
        if exit_code is not None:
            sys.exit(exit_code)

    setup_logging(console=False)
    app = TaskpadApp(config=config)
    app.run()
    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()

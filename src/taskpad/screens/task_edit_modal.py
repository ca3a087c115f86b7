"""Task edit modal dialog."""

from datetime import date

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from taskpad.models import Task
from taskpad.utils import parse_date


class TaskEditModal(ModalScreen[tuple[str, date | None] | None]):
    """Modal dialog for editing a task's content and scheduled day.

    Dismisses with (content, scheduled_for), or None when cancelled.
    """

    CSS = """
    TaskEditModal {
        align: center middle;
        background: $background 60%;
    }

    TaskEditModal > Vertical {
        width: 70;
        height: auto;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }

    TaskEditModal #modal-title {
        text-style: bold;
        margin-bottom: 1;
    }

    TaskEditModal .field-label {
        color: $text-muted;
    }

    TaskEditModal Input {
        margin-bottom: 1;
    }

    TaskEditModal #error {
        color: $error;
        height: auto;
    }

    TaskEditModal #button-row {
        margin-top: 1;
        height: auto;
    }

    TaskEditModal Button {
        min-width: 10;
        margin-right: 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    def __init__(self, task: Task) -> None:
        """Initialize the modal with a task to edit."""
        super().__init__()
        self._task = task

    def compose(self) -> ComposeResult:
        """Create dialog widgets."""
        scheduled = self._task.scheduled_for.isoformat() if self._task.scheduled_for else ""
        with Vertical():
            yield Label("Edit Task", id="modal-title")
            yield Label("Content (#tags and links are picked up from the text):", classes="field-label")
            yield Input(value=self._task.content, id="content-input")
            yield Label("Scheduled for (YYYY-MM-DD, blank for none):", classes="field-label")
            yield Input(value=scheduled, placeholder="YYYY-MM-DD", id="schedule-input")
            yield Static("", id="error")
            with Horizontal(id="button-row"):
                yield Button("Save", variant="primary", id="save-btn")
                yield Button("Cancel", id="cancel-btn")

    def on_mount(self) -> None:
        """Focus the content input when the modal opens."""
        self.query_one("#content-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Enter in either field saves."""
        event.stop()
        self._save()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "save-btn":
            self._save()
        elif event.button.id == "cancel-btn":
            self.dismiss(None)

    def action_cancel(self) -> None:
        """Handle Escape key - cancel editing."""
        self.dismiss(None)

    def _show_error(self, message: str) -> None:
        self.query_one("#error", Static).update(message)

    def _save(self) -> None:
        """Validate the fields and dismiss with the edited values."""
        content = self.query_one("#content-input", Input).value.strip()
        if not content:
            self._show_error("Task content cannot be empty.")
            return

        schedule_text = self.query_one("#schedule-input", Input).value.strip()
        scheduled_for: date | None = None
        if schedule_text:
            try:
                scheduled_for = parse_date(schedule_text)
            except ValueError as e:
                self._show_error(str(e))
                return

        self.dismiss((content, scheduled_for))

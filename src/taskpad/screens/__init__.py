"""Screen modules for taskpad."""

from taskpad.screens.task_edit_modal import TaskEditModal

__all__ = ["TaskEditModal"]

"""Widgets for taskpad."""

from taskpad.widgets.task_list import TaskList, TaskListView

__all__ = ["TaskList", "TaskListView"]

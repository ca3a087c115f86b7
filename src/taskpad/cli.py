"""CLI commands for taskpad."""

import argparse
import json
import logging
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable

from taskpad.config import Config, load_config
from taskpad.models import EmptyContentError, InvalidStatusError, Task, TaskStatus
from taskpad.repository import TaskRepository
from taskpad.utils import ensure_default_tag, format_date, open_url, parse_date, shorten_url

logger = logging.getLogger(__name__)

STATUS_MARKERS = {
    TaskStatus.PENDING: "[ ]",
    TaskStatus.IN_PROGRESS: "[~]",
    TaskStatus.WAITING: "[?]",
    TaskStatus.COMPLETED: "[x]",
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="taskpad",
        description="taskpad - a local task manager. Run without a command to open the UI.",
    )
    subparsers = parser.add_subparsers(dest="command")

    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("content", help="Task text; #words become tags")
    add_parser.add_argument(
        "-s", "--schedule", dest="schedule", help="Schedule for a date (YYYY-MM-DD)"
    )

    ls_parser = subparsers.add_parser("ls", aliases=["list"], help="List tasks")
    ls_group = ls_parser.add_mutually_exclusive_group()
    ls_group.add_argument(
        "-a", "--all", action="store_true", dest="show_all", help="Include completed tasks"
    )
    ls_group.add_argument(
        "-c",
        "--completed",
        action="store_true",
        help="Only tasks completed within the configured number of days",
    )
    ls_group.add_argument("--tag", help="Only tasks with this tag")
    ls_group.add_argument(
        "--filter",
        choices=("work", "personal", "both"),
        dest="work_filter",
        help="Work/personal filter",
    )
    ls_parser.add_argument(
        "--json", action="store_true", dest="json_output", help="Output as JSON"
    )

    done_parser = subparsers.add_parser(
        "done", aliases=["complete"], help="Mark a task as completed"
    )
    done_parser.add_argument("index", type=int, help="Task number from 'taskpad ls'")

    status_parser = subparsers.add_parser("status", help="Change a task's status")
    status_parser.add_argument("index", type=int, help="Task number from 'taskpad ls'")
    status_parser.add_argument(
        "status", help="One of: " + ", ".join(s.value for s in TaskStatus)
    )

    move_parser = subparsers.add_parser("move", help="Move a task up or down")
    move_parser.add_argument("index", type=int, help="Task number from 'taskpad ls'")
    move_parser.add_argument("direction", choices=("up", "down"))

    schedule_parser = subparsers.add_parser("schedule", help="Schedule a task")
    schedule_parser.add_argument("index", type=int, help="Task number from 'taskpad ls'")
    schedule_parser.add_argument("date", help="Date (YYYY-MM-DD)")

    edit_parser = subparsers.add_parser("edit", help="Replace a task's content")
    edit_parser.add_argument("index", type=int, help="Task number from 'taskpad ls'")
    edit_parser.add_argument("content", help="New task text")

    rm_parser = subparsers.add_parser("rm", aliases=["delete"], help="Delete a task")
    rm_parser.add_argument("index", type=int, help="Task number from 'taskpad ls'")

    open_parser = subparsers.add_parser("open", help="Open a task's URLs in the browser")
    open_parser.add_argument("index", type=int, help="Task number from 'taskpad ls'")

    subparsers.add_parser("tags", help="List all tags in use")

    return parser


def get_task_by_index(repo: TaskRepository, index: int) -> Task | None:
    """Find an active task by its 1-based position in the list."""
    tasks = repo.get_all_active_tasks()
    if index < 1 or index > len(tasks):
        print(
            f"Error: Invalid task number {index}. Use a number from 'taskpad ls'.",
            file=sys.stderr,
        )
        return None
    return tasks[index - 1]


def _print_task(prefix: str, task: Task, config: Config) -> None:
    line = f"{prefix} {STATUS_MARKERS[task.status]} {task.content}"
    if task.scheduled_for:
        line += f"  (scheduled {format_date(task.scheduled_for, config.date_format)})"
    if task.completed_at:
        line += f"  (completed {format_date(task.completed_at, config.date_format)})"
    print(line)
    for url in task.extracted_urls:
        print(f"      -> {shorten_url(url, 70)}")


def cmd_add(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Add a task, tagging it with the default tag when it has none."""
    try:
        scheduled_for = parse_date(args.schedule) if args.schedule else None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    content = ensure_default_tag(args.content, config.default_tag)
    task = repo.create_task(content, scheduled_for)

    print(f"Added task: {task.content}")
    if task.scheduled_for:
        print(f"Scheduled for: {format_date(task.scheduled_for, config.date_format)}")
    if task.extracted_urls:
        print(f"URLs detected: {', '.join(task.extracted_urls)}")
    return 0


def cmd_ls(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """List tasks."""
    numbered = False
    if args.show_all:
        tasks = repo.get_all_tasks()
    elif args.completed:
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=config.completed_days)
        tasks = repo.get_completed_in_range(start, end)
    elif args.tag:
        tasks = repo.get_tasks_by_tag(args.tag)
    elif args.work_filter:
        tasks = repo.get_tasks_filtered_by_work_personal(args.work_filter)
    else:
        tasks = repo.get_all_active_tasks()
        numbered = True

    if args.json_output:
        print(json.dumps([t.to_dict() for t in tasks], indent=2))
        return 0

    if not tasks:
        print("No tasks found.")
        return 0

    for position, task in enumerate(tasks, start=1):
        prefix = f"{position:>3}." if numbered else "   -"
        _print_task(prefix, task, config)
    return 0


def cmd_done(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Mark a task as completed."""
    task = get_task_by_index(repo, args.index)
    if task is None:
        return 1

    repo.mark_completed(task.id)
    print(f"Completed: {task.content}")
    return 0


def cmd_status(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Change a task's status."""
    task = get_task_by_index(repo, args.index)
    if task is None:
        return 1

    try:
        updated = repo.change_task_status(task.id, args.status)
    except InvalidStatusError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if updated is None:
        print(f"Error: Task {args.index} no longer exists.", file=sys.stderr)
        return 1
    print(f"Marked task {args.index} as {updated.status.value}.")
    return 0


def cmd_move(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Move a task up or down in priority."""
    task = get_task_by_index(repo, args.index)
    if task is None:
        return 1

    moved = repo.move_task(task.id, args.direction)
    if moved is None:
        print(f"Error: Task {args.index} can't be moved.", file=sys.stderr)
        return 1
    print(f"Moved task {args.direction}: {moved.content}")
    return 0


def cmd_schedule(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Schedule a task for a date."""
    try:
        when = parse_date(args.date)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    task = get_task_by_index(repo, args.index)
    if task is None:
        return 1

    repo.schedule_task(task.id, when)
    print(f"Scheduled task for {format_date(when, config.date_format)}: {task.content}")
    return 0


def cmd_edit(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Replace a task's content."""
    task = get_task_by_index(repo, args.index)
    if task is None:
        return 1

    try:
        updated = repo.update_task_content(task.id, args.content)
    except EmptyContentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if updated is None:
        print(f"Error: Task {args.index} no longer exists.", file=sys.stderr)
        return 1

    print(f"Updated task: {updated.content}")
    if updated.extracted_urls:
        print(f"URLs detected: {', '.join(updated.extracted_urls)}")
    return 0


def cmd_rm(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Delete a task."""
    task = get_task_by_index(repo, args.index)
    if task is None:
        return 1

    repo.delete_task(task.id)
    print(f"Deleted task: {task.content}")
    return 0


def cmd_open(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """Open every URL of a task in the browser."""
    task = get_task_by_index(repo, args.index)
    if task is None:
        return 1

    if not task.extracted_urls:
        print("No URLs found in this task.")
        return 0

    print(f"Opening {len(task.extracted_urls)} URL(s)...")
    for url in task.extracted_urls:
        print(f"Opening: {url}")
        open_url(url)
    return 0


def cmd_tags(args: argparse.Namespace, repo: TaskRepository, config: Config) -> int:
    """List tags in use."""
    tags = repo.get_all_tags()
    if not tags:
        print("No tags found.")
        return 0
    for tag in tags:
        print(f"#{tag}")
    return 0


COMMANDS: dict[str, Callable[[argparse.Namespace, TaskRepository, Config], int]] = {
    "add": cmd_add,
    "ls": cmd_ls,
    "list": cmd_ls,
    "done": cmd_done,
    "complete": cmd_done,
    "status": cmd_status,
    "move": cmd_move,
    "schedule": cmd_schedule,
    "edit": cmd_edit,
    "rm": cmd_rm,
    "delete": cmd_rm,
    "open": cmd_open,
    "tags": cmd_tags,
}


def run_cli(
    argv: list[str] | None = None,
    config: Config | None = None,
    repo: TaskRepository | None = None,
) -> int | None:
    """Parse arguments and dispatch to command handlers.

    Returns:
        Exit code (0 for success, non-zero for error) if a command was handled,
        None if no command was specified (should launch the UI).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        return None

    handler = COMMANDS[args.command]
    config = config or load_config()
    owns_repo = repo is None
    if repo is None:
        repo = TaskRepository(config.db_path)

    try:
        return handler(args, repo, config)
    except sqlite3.Error as e:
        logger.exception("Database error running %r", args.command)
        print(f"Error: Database failure: {e}", file=sys.stderr)
        return 1
    finally:
        if owns_repo:
            repo.close()


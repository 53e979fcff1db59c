"""Command-line interface for taskboard.

This module provides the CLI interface for managing tasks using argparse.
It supports the following commands:
- add: Create a new task
- edit: Change fields of a task
- done: Mark a task as completed
- delete: Delete a task
- clear: Delete every task
- list: Search, filter and sort tasks
- stats: Show task counts
- export: Write all tasks to a JSON file
- import: Replace all tasks with the contents of a JSON file
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from taskboard.config import BACKENDS, load_settings
from taskboard.errors import NotFoundError, TaskError
from taskboard.logging_setup import setup_logging
from taskboard.models import (
    Priority,
    SortField,
    Status,
    Task,
    TaskFilters,
    TaskInput,
    parse_timestamp,
)
from taskboard.repository import TaskRepository
from taskboard.transfer import default_export_name

logger = logging.getLogger(__name__)

PRIORITY_CHOICES = [p.value for p in Priority]
STATUS_CHOICES = [s.value for s in Status]
SORT_CHOICES = [f.value for f in SortField]


def _parse_due(value: str):
    try:
        return parse_timestamp(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Use YYYY-MM-DD or YYYY-MM-DDTHH:MM[+HH:MM]."
        ) from e


def format_task(task: Task) -> str:
    """Render one task as a single list line."""
    status_icon = "✓" if task.status == Status.COMPLETED else " "
    line = (
        f"[{status_icon}] #{task.id} {task.title} "
        f"[{task.priority.value}] ({task.status.value}) "
        f"due {task.due_date.strftime('%Y-%m-%d %H:%M')}"
    )
    if task.description:
        line += f"\n      {task.description}"
    return line


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="Task management with search, sorting, statistics and JSON import/export"
    )
    parser.add_argument(
        "--backend",
        choices=BACKENDS,
        help="Storage backend (default: TASK_BACKEND or json)"
    )
    parser.add_argument(
        "--db",
        help="Path to the task store (default: TASK_DB_PATH or tasks.json / tasks.sqlite3)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log more (-v info, -vv debug)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("title", help="Task title")
    add_parser.add_argument("--due", required=True, type=_parse_due, help="Due date/time (ISO 8601)")
    add_parser.add_argument("-d", "--description", default="", help="Longer description")
    add_parser.add_argument(
        "--priority",
        choices=PRIORITY_CHOICES,
        default=Priority.MEDIUM.value,
        help="Task priority (default: Medium)"
    )
    add_parser.add_argument(
        "--status",
        choices=STATUS_CHOICES,
        default=Status.INCOMPLETE.value,
        help="Task status (default: Incomplete)"
    )

    # Edit command
    edit_parser = subparsers.add_parser("edit", help="Edit a task")
    edit_parser.add_argument("id", help="Task ID")
    edit_parser.add_argument("--title", help="New title")
    edit_parser.add_argument("-d", "--description", help="New description")
    edit_parser.add_argument("--due", type=_parse_due, help="New due date/time (ISO 8601)")
    edit_parser.add_argument("--priority", choices=PRIORITY_CHOICES, help="New priority")
    edit_parser.add_argument("--status", choices=STATUS_CHOICES, help="New status")

    # Done command
    done_parser = subparsers.add_parser("done", help="Mark a task as completed")
    done_parser.add_argument("id", help="Task ID")

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("id", help="Task ID")

    # Clear command
    clear_parser = subparsers.add_parser("clear", help="Delete all tasks")
    clear_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # List command
    list_parser = subparsers.add_parser("list", help="List tasks")
    list_parser.add_argument("-s", "--search", help="Text to find in title or description")
    list_parser.add_argument("--status", choices=STATUS_CHOICES, help="Filter tasks by status")
    list_parser.add_argument("--priority", choices=PRIORITY_CHOICES, help="Filter tasks by priority")
    list_parser.add_argument("--sort", choices=SORT_CHOICES, help="Field to sort by (default: newest first)")
    list_parser.add_argument("--desc", action="store_true", help="Sort in descending order")

    # Stats command
    subparsers.add_parser("stats", help="Show task statistics")

    # Export command
    export_parser = subparsers.add_parser("export", help="Export all tasks to JSON")
    export_parser.add_argument(
        "--out",
        help="Output file, '-' for stdout (default: tasks-YYYY-MM-DD.json)"
    )

    # Import command
    import_parser = subparsers.add_parser("import", help="Replace all tasks with a JSON export")
    import_parser.add_argument("file", help="JSON file previously written by export")

    return parser


def cmd_add(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'add' command.

    Args:
        args: Parsed command-line arguments
        repo: TaskRepository instance

    Returns:
        Exit code (0 for success)
    """
    data = TaskInput(
        title=args.title,
        description=args.description,
        due_date=args.due,
        priority=Priority(args.priority),
        status=Status(args.status),
    )
    task = repo.create_task(data)
    print(f"Task added: #{task.id} {task.title} [{task.priority.value}]")
    return 0


def cmd_edit(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'edit' command.

    Options that are not given keep the task's current values.
    """
    current = repo.get_task(args.id)
    if current is None:
        if repo.has_task(args.id):
            print(f"Error: Task #{args.id} has an unreadable record.", file=sys.stderr)
            return 1
        raise NotFoundError(args.id)

    data = TaskInput(
        title=args.title if args.title is not None else current.title,
        description=args.description if args.description is not None else current.description,
        due_date=args.due or current.due_date,
        priority=Priority(args.priority) if args.priority else current.priority,
        status=Status(args.status) if args.status else current.status,
    )
    task = repo.update_task(args.id, data)
    if task is None:
        print(f"Error: Failed to update task #{args.id}.", file=sys.stderr)
        return 1

    print(f"Task #{task.id} updated: {task.title}")
    return 0


def cmd_done(args: argparse.Namespace, repo: TaskRepository) -> int:
    task = repo.mark_done(args.id)

    if task is None and repo.has_task(args.id):
        print(f"Task #{args.id} marked as done.")
        return 0
    if task is None:
        print(f"Error: Task #{args.id} not found.", file=sys.stderr)
        return 1

    print(f"Task #{task.id} marked as done: {task.title}")
    return 0


def cmd_delete(args: argparse.Namespace, repo: TaskRepository) -> int:
    deleted = repo.delete_task(args.id)

    if not deleted:
        print(f"Error: Task #{args.id} not found.", file=sys.stderr)
        return 1

    print(f"Task #{args.id} deleted.")
    return 0


def cmd_clear(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'clear' command, asking first unless --yes was given."""
    if not args.yes:
        answer = input("Delete ALL tasks? This cannot be undone. [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.")
            return 0

    if not repo.delete_all_tasks():
        print("Error: Failed to delete all tasks.", file=sys.stderr)
        return 1

    print("All tasks deleted.")
    return 0


def cmd_list(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'list' command.

    Args:
        args: Parsed command-line arguments
        repo: TaskRepository instance

    Returns:
        Exit code (0 for success)
    """
    filters = TaskFilters.from_params(
        search=args.search,
        status=args.status,
        priority=args.priority,
        sort_by=args.sort,
        sort_direction="desc" if args.desc else None,
    )
    tasks = repo.get_filtered_tasks(filters)

    if not tasks:
        print("No tasks found.")
        return 0

    for task in tasks:
        print(format_task(task))

    return 0


def cmd_stats(args: argparse.Namespace, repo: TaskRepository) -> int:
    stats = repo.get_stats()
    print(f"Total tasks:     {stats.total_tasks}")
    print(f"Completed:       {stats.completed_tasks} ({stats.completion_rate}% of total)")
    print(f"Due in 7 days:   {stats.due_soon_tasks}")
    return 0


def cmd_export(args: argparse.Namespace, repo: TaskRepository) -> int:
    data = repo.export_json()

    if args.out == "-":
        print(data)
        return 0

    out = Path(args.out or default_export_name()).expanduser()
    try:
        out.write_text(data, encoding="utf-8")
    except OSError as e:
        print(f"Error: Cannot write {out}: {e}", file=sys.stderr)
        return 1

    print(f"Exported to: {out}")
    return 0


def cmd_import(args: argparse.Namespace, repo: TaskRepository) -> int:
    """Handle the 'import' command.

    The current tasks are replaced, not merged.
    """
    path = Path(args.file).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Error: Cannot read {path}: {e}", file=sys.stderr)
        return 1

    if not repo.import_json(text):
        print(f"Error: Failed to import tasks from {path}. Check the JSON format.", file=sys.stderr)
        return 1

    print(f"Imported tasks from: {path}")
    return 0


COMMANDS = {
    "add": cmd_add,
    "edit": cmd_edit,
    "done": cmd_done,
    "delete": cmd_delete,
    "clear": cmd_clear,
    "list": cmd_list,
    "stats": cmd_stats,
    "export": cmd_export,
    "import": cmd_import,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        settings = load_settings(backend=args.backend, db_path=args.db)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = settings.log_level
    if args.verbose >= 2:
        level = "DEBUG"
    elif args.verbose == 1:
        level = "INFO"
    setup_logging(level, settings.log_file)

    handler = COMMANDS.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    try:
        repo = TaskRepository(settings.make_storage())
        return handler(args, repo)
    except TaskError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""Task collection statistics."""

from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional

from taskboard.models import Status, Task, TaskStats, parse_timestamp, utc_now

DUE_SOON_WINDOW = timedelta(days=7)


def is_due_soon(task: Task, now: datetime) -> bool:
    """A task is due soon when it is not completed and its due date lies
    within the next seven days, both ends included."""
    if task.status == Status.COMPLETED:
        return False
    return now <= task.due_date <= now + DUE_SOON_WINDOW


def compute_stats(tasks: Iterable[Task], now: Optional[datetime] = None) -> TaskStats:
    """Count all, completed and due-soon tasks.

    Args:
        tasks: The full, unfiltered task collection
        now: Reference time for the due-soon window. Defaults to the
            current UTC time, read on every call.

    Returns:
        TaskStats for the collection
    """
    if now is None:
        now = utc_now()
    stats = TaskStats()
    for task in tasks:
        stats.total_tasks += 1
        if task.status == Status.COMPLETED:
            stats.completed_tasks += 1
        elif is_due_soon(task, now):
            stats.due_soon_tasks += 1
    return stats


def _record_due_date(record: Mapping[str, Any]) -> Optional[datetime]:
    try:
        return parse_timestamp(record["due_date"])
    except (KeyError, TypeError, ValueError):
        return None


def compute_record_stats(records: Iterable[Any], now: Optional[datetime] = None) -> TaskStats:
    """Count all, completed and due-soon tasks over stored records.

    Every record counts towards the total, including ones that cannot be
    read back as a Task. Completion is read from the raw status value. A
    record whose due date does not parse is never due soon.
    """
    if now is None:
        now = utc_now()
    stats = TaskStats()
    for record in records:
        stats.total_tasks += 1
        if not isinstance(record, Mapping):
            continue
        if record.get("status") == Status.COMPLETED.value:
            stats.completed_tasks += 1
            continue
        due = _record_due_date(record)
        if due is not None and now <= due <= now + DUE_SOON_WINDOW:
            stats.due_soon_tasks += 1
    return stats

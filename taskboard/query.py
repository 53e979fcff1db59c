"""Filtering and ordering of task lists."""

from typing import Any, Callable, Dict, Iterable, List, Tuple

from taskboard.models import SortDirection, SortField, Task, TaskFilters

_SORT_KEYS: Dict[SortField, Callable[[Task], Any]] = {
    SortField.TITLE: lambda t: t.title,
    SortField.DUE_DATE: lambda t: t.due_date,
    SortField.PRIORITY: lambda t: t.priority.rank,
    SortField.STATUS: lambda t: t.status.rank,
    SortField.CREATED_AT: lambda t: t.created_at,
}


def matches(task: Task, filters: TaskFilters) -> bool:
    """Return True if the task passes every filter that is set.

    The search text matches case-insensitively anywhere in the title or
    the description.
    """
    if filters.search and filters.search.strip():
        needle = filters.search.lower()
        if needle not in task.title.lower() and needle not in task.description.lower():
            return False
    if filters.status is not None and task.status != filters.status:
        return False
    if filters.priority is not None and task.priority != filters.priority:
        return False
    return True


def sort_order(filters: TaskFilters) -> Tuple[SortField, SortDirection]:
    """Resolve the effective sort field and direction.

    Without a sort field, tasks are listed newest first. With a sort field
    but no direction, the order is ascending.
    """
    if filters.sort_by is None:
        return SortField.CREATED_AT, SortDirection.DESC
    return filters.sort_by, filters.sort_direction or SortDirection.ASC


def sort_tasks(
    tasks: Iterable[Task],
    sort_by: SortField,
    direction: SortDirection = SortDirection.ASC,
) -> List[Task]:
    """Sort tasks by one field.

    Ties are broken by id, so the descending order is always the exact
    reverse of the ascending one.
    """
    key = _SORT_KEYS[sort_by]
    return sorted(
        tasks,
        key=lambda t: (key(t), t.id),
        reverse=direction == SortDirection.DESC,
    )


def filter_tasks(tasks: Iterable[Task], filters: TaskFilters) -> List[Task]:
    """Apply search, status and priority filters, then sort.

    Args:
        tasks: Task collection to query
        filters: Filter and sort parameters

    Returns:
        Matching tasks in the requested order
    """
    sort_by, direction = sort_order(filters)
    return sort_tasks((t for t in tasks if matches(t, filters)), sort_by, direction)

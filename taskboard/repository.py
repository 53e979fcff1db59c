"""Task repository for managing task operations.

This module provides a high-level TaskRepository class on top of a Storage
backend. It is the data-access boundary: store failures are logged here and
turned into failure results (None, False, empty lists, zero stats) instead
of exceptions. Task creation is the exception and re-raises StoreError so
the caller can report it.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from taskboard import transfer
from taskboard.errors import ImportFormatError, StoreError
from taskboard.models import (
    Status,
    Task,
    TaskFilters,
    TaskInput,
    TaskStats,
    new_task_id,
    utc_now,
    validate_task_input,
)
from taskboard.query import filter_tasks
from taskboard.stats import compute_record_stats
from taskboard.storage import Storage

logger = logging.getLogger(__name__)


def _to_tasks(records: Iterable[Dict[str, Any]]) -> List[Task]:
    tasks = []
    for record in records:
        try:
            tasks.append(Task.from_dict(record))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            task_id = record.get("id") if isinstance(record, dict) else None
            logger.warning("Skipping unreadable task record %r: %s", task_id, e)
    return tasks


class TaskRepository:
    """Repository for managing tasks with a storage backend.

    Attributes:
        storage: Storage backend for persisting tasks
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    def create_task(self, data: TaskInput) -> Task:
        """Create a new task.

        Args:
            data: Field values for the new task

        Returns:
            The created Task with its assigned id and created_at

        Raises:
            ValidationError: If a required field is missing; nothing is stored
            StoreError: If the store rejects the insert
        """
        error = validate_task_input(data)
        if error is not None:
            raise error

        task = Task(
            id=new_task_id(),
            title=data.title,
            description=data.description or "",
            due_date=data.due_date,
            priority=data.priority,
            status=data.status,
            created_at=utc_now(),
        )
        try:
            self.storage.insert(task.to_dict())
        except StoreError:
            logger.exception("Failed to create task %r", task.title)
            raise
        logger.info("Created task %s", task.id)
        return task

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get a task by id. Returns None if it is unknown or unreadable."""
        try:
            record = self.storage.get_by_id(task_id)
        except StoreError:
            logger.exception("Failed to load task %s", task_id)
            return None
        if record is None:
            return None
        tasks = _to_tasks([record])
        return tasks[0] if tasks else None

    def get_all_tasks(self) -> List[Task]:
        """Get all tasks, newest first."""
        return self.get_filtered_tasks(TaskFilters())

    def update_task(self, task_id: str, data: TaskInput) -> Optional[Task]:
        """Update an existing task.

        Only the fields set on data are written; id and created_at never
        change.

        Args:
            task_id: Id of the task to update
            data: New field values. Must carry every required field.

        Returns:
            The updated Task, or None if the task does not exist or the
            store failed

        Raises:
            ValidationError: If a required field is missing
        """
        error = validate_task_input(data)
        if error is not None:
            raise error
        return self._apply_changes(task_id, data.changes())

    def mark_done(self, task_id: str) -> Optional[Task]:
        """Set a task's status to Completed."""
        return self._apply_changes(task_id, {"status": Status.COMPLETED.value})

    def _apply_changes(self, task_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        try:
            record = self.storage.update(task_id, changes)
        except StoreError:
            logger.exception("Failed to update task %s", task_id)
            return None
        if record is None:
            logger.info("Update skipped, task %s not found", task_id)
            return None
        tasks = _to_tasks([record])
        if not tasks:
            logger.warning("Task %s was updated but its stored record is unreadable", task_id)
            return None
        return tasks[0]

    def has_task(self, task_id: str) -> bool:
        """Whether a record with this id is stored, readable or not."""
        try:
            return self.storage.get_by_id(task_id) is not None
        except StoreError:
            logger.exception("Failed to load task %s", task_id)
            return False

    def delete_task(self, task_id: str) -> bool:
        """Delete a task by id.

        Returns:
            True if the task was deleted, False if it did not exist or the
            store failed
        """
        try:
            deleted = self.storage.delete_by_id(task_id)
        except StoreError:
            logger.exception("Failed to delete task %s", task_id)
            return False
        if deleted:
            logger.info("Deleted task %s", task_id)
        return deleted

    def delete_all_tasks(self) -> bool:
        """Delete every task. Returns False if the store failed."""
        try:
            self.storage.delete_all()
        except StoreError:
            logger.exception("Failed to delete all tasks")
            return False
        logger.info("Deleted all tasks")
        return True

    def get_filtered_tasks(self, filters: Optional[TaskFilters] = None) -> List[Task]:
        """List tasks matching the filters, in the requested order.

        Args:
            filters: Search, filter and sort parameters. None lists every
                task, newest first.

        Returns:
            Matching tasks; an empty list if the store failed
        """
        try:
            records = self.storage.list_all()
        except StoreError:
            logger.exception("Failed to list tasks")
            return []
        return filter_tasks(_to_tasks(records), filters or TaskFilters())

    def get_stats(self, now: Optional[datetime] = None) -> TaskStats:
        """Compute statistics over all tasks. Zero counts if the store failed."""
        try:
            records = self.storage.list_all()
        except StoreError:
            logger.exception("Failed to compute task stats")
            return TaskStats()
        return compute_record_stats(records, now)

    def export_json(self) -> str:
        """Export every stored task record as a JSON array string."""
        try:
            records = self.storage.list_all()
        except StoreError:
            logger.exception("Failed to export tasks")
            return "[]"
        return transfer.dump_tasks(records)

    def import_json(self, text: str) -> bool:
        """Replace the whole task collection with the tasks in a JSON array.

        Existing tasks are deleted before the imported ones are inserted.
        The two steps are not atomic: if the insert fails, the collection
        is left empty or partially filled.

        Args:
            text: JSON array of task records, as produced by export_json()

        Returns:
            True on success, False if the document could not be parsed or
            the store failed
        """
        try:
            records = transfer.parse_tasks(text)
        except ImportFormatError as e:
            logger.error("Import rejected: %s", e)
            return False

        try:
            self.storage.delete_all()
            if records:
                self.storage.insert_many(records)
        except StoreError:
            logger.exception("Import failed, task collection may be incomplete")
            return False
        logger.info("Imported %d task(s)", len(records))
        return True

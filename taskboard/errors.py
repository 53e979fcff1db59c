"""Exceptions raised by taskboard."""

from typing import Iterable, Optional


class TaskError(Exception):
    """Base class for all taskboard errors."""


class ValidationError(TaskError):
    """A create or update request is missing required fields."""

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required fields: {', '.join(self.missing_fields)}")


class NotFoundError(TaskError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class StoreError(TaskError):
    """The backing store could not be read or written."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ImportFormatError(TaskError):
    """An import document is not a JSON array of task objects."""

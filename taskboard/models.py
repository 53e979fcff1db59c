"""Core models for taskboard.

This module defines the core data structures for task management:
- Task: A dataclass representing a stored task
- TaskInput: The field bag accepted by create and update operations
- TaskFilters: Search, filter and sort parameters for listing tasks
- TaskStats: Aggregate counts over the whole collection
- Priority, Status, SortField, SortDirection: Enums for the fixed vocabularies
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from taskboard.errors import ValidationError


class Priority(Enum):
    """Task priority levels, in ascending rank order."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


class Status(Enum):
    """Task progress status, in ascending rank order."""

    INCOMPLETE = "Incomplete"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_PRIORITY_RANK = {p: i for i, p in enumerate(Priority)}
_STATUS_RANK = {s: i for i, s in enumerate(Status)}


class SortField(Enum):
    """Fields a task listing can be ordered by."""

    TITLE = "title"
    DUE_DATE = "due_date"
    PRIORITY = "priority"
    STATUS = "status"
    CREATED_AT = "created_at"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_task_id() -> str:
    return uuid.uuid4().hex


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO 8601 timestamp into a timezone-aware datetime.

    A trailing "Z" is accepted, and naive values are taken to be UTC.
    Date-only strings ("2024-05-01") resolve to midnight UTC.

    Args:
        value: ISO 8601 string or datetime instance

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the string is not a valid ISO 8601 timestamp
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(value: datetime) -> str:
    return parse_timestamp(value).isoformat()


@dataclass
class Task:
    """Task model representing a single stored task.

    Attributes:
        id: Opaque unique identifier, assigned at creation
        title: Short task title
        description: Longer free text, may be empty
        due_date: Timezone-aware due timestamp
        priority: Priority level of the task
        status: Current progress status
        created_at: Timezone-aware creation timestamp
    """

    title: str
    due_date: datetime
    priority: Priority = Priority.MEDIUM
    status: Status = Status.INCOMPLETE
    description: str = ""
    id: str = field(default_factory=new_task_id)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the task to its persisted record form."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "due_date": format_timestamp(self.due_date),
            "priority": self.priority.value,
            "status": self.status.value,
            "created_at": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Task":
        """Build a task from its persisted record form.

        Args:
            record: Mapping with the seven task keys

        Returns:
            Task instance

        Raises:
            KeyError: If id, due_date, priority, status or created_at is missing
            ValueError: If a timestamp or enum value cannot be parsed
        """
        return cls(
            id=str(record["id"]),
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            due_date=parse_timestamp(record["due_date"]),
            priority=Priority(record["priority"]),
            status=Status(record["status"]),
            created_at=parse_timestamp(record["created_at"]),
        )


@dataclass
class TaskInput:
    """Field bag for creating or updating a task.

    Every field is optional at the type level; use validate_task_input()
    to check that the required ones are present.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    status: Optional[Status] = None

    @classmethod
    def from_mapping(cls, bag: Mapping[str, Any]) -> "TaskInput":
        """Build a TaskInput from loose form-style values.

        Empty strings count as absent. Timestamps and enum values given as
        strings are parsed.

        Raises:
            ValueError: If a present value cannot be parsed
        """

        def get(key: str) -> Any:
            value = bag.get(key)
            if isinstance(value, str) and not value.strip():
                return None
            return value

        due = get("due_date")
        priority = get("priority")
        status = get("status")
        return cls(
            title=get("title"),
            description=bag.get("description"),
            due_date=parse_timestamp(due) if due is not None else None,
            priority=Priority(priority) if priority is not None else None,
            status=Status(status) if status is not None else None,
        )

    def changes(self) -> Dict[str, Any]:
        """Return the record fields this input sets, in persisted form."""
        out: Dict[str, Any] = {}
        if self.title is not None:
            out["title"] = self.title
        if self.description is not None:
            out["description"] = self.description
        if self.due_date is not None:
            out["due_date"] = format_timestamp(self.due_date)
        if self.priority is not None:
            out["priority"] = self.priority.value
        if self.status is not None:
            out["status"] = self.status.value
        return out


REQUIRED_FIELDS = ("title", "due_date", "priority", "status")


def validate_task_input(data: TaskInput) -> Optional[ValidationError]:
    """Check that the required task fields are present.

    Args:
        data: Field bag from a create or update request

    Returns:
        None if the input is valid, otherwise a ValidationError naming
        the missing fields
    """
    missing = []
    for name in REQUIRED_FIELDS:
        value = getattr(data, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        return ValidationError(missing)
    return None


@dataclass
class TaskFilters:
    """Parameters for listing tasks. Unset fields do not filter."""

    search: Optional[str] = None
    status: Optional[Status] = None
    priority: Optional[Priority] = None
    sort_by: Optional[SortField] = None
    sort_direction: Optional[SortDirection] = None

    @classmethod
    def from_params(
        cls,
        search: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
    ) -> "TaskFilters":
        """Build filters from string parameters.

        Raises:
            ValueError: If a status, priority, sort field or direction is
                not one of the known values
        """
        return cls(
            search=search or None,
            status=Status(status) if status else None,
            priority=Priority(priority) if priority else None,
            sort_by=SortField(sort_by) if sort_by else None,
            sort_direction=SortDirection(sort_direction.lower()) if sort_direction else None,
        )


@dataclass
class TaskStats:
    """Aggregate counts over the full task collection."""

    total_tasks: int = 0
    completed_tasks: int = 0
    due_soon_tasks: int = 0

    @property
    def completion_rate(self) -> int:
        """Completed tasks as a rounded percentage of all tasks."""
        if not self.total_tasks:
            return 0
        return round(self.completed_tasks * 100 / self.total_tasks)

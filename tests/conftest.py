"""Shared fixtures for taskboard tests."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from taskboard.models import Priority, Status, Task
from taskboard.repository import TaskRepository
from taskboard.storage import JsonStorage, SqliteStorage

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time for date-dependent tests."""
    return NOW


@pytest.fixture
def make_task():
    """Factory building tasks with sensible defaults relative to NOW."""

    def _make(title="Task", days_due=3, **kwargs):
        kwargs.setdefault("due_date", NOW + timedelta(days=days_due))
        kwargs.setdefault("priority", Priority.MEDIUM)
        kwargs.setdefault("status", Status.INCOMPLETE)
        kwargs.setdefault("created_at", NOW)
        return Task(title=title, **kwargs)

    return _make


@pytest.fixture(params=["json", "sqlite"])
def storage(request, tmp_path: Path):
    """Each storage backend, backed by a fresh file."""
    if request.param == "json":
        return JsonStorage(str(tmp_path / "tasks.json"))
    return SqliteStorage(str(tmp_path / "tasks.sqlite3"))


@pytest.fixture
def repo(storage):
    return TaskRepository(storage)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Drop handlers installed by setup_logging() during a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)

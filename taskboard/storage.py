"""Storage layer for taskboard.

This module provides an abstract storage interface and two interchangeable
implementations that persist task records (plain dicts, see Task.to_dict):
- JsonStorage: one JSON file holding an array of records, fully read and
  rewritten on every operation, with fcntl-based file locking
- SqliteStorage: one relational table in a SQLite database

Backend failures of any kind are raised as StoreError. Neither backend
wraps several operations in a transaction.
"""

import fcntl
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from taskboard.errors import StoreError

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

TASK_FIELDS = ("id", "title", "description", "due_date", "priority", "status", "created_at")
IMMUTABLE_FIELDS = ("id", "created_at")


class Storage(ABC):
    """Abstract base class for task storage implementations."""

    @abstractmethod
    def list_all(self) -> List[Record]:
        """Return every stored record, in storage order."""

    @abstractmethod
    def get_by_id(self, task_id: str) -> Optional[Record]:
        """Return the record with the given id, or None."""

    @abstractmethod
    def insert(self, record: Record) -> Record:
        """Store a new record.

        Args:
            record: Record to store. Must carry an id not already stored.

        Returns:
            The stored record
        """

    def insert_many(self, records: Iterable[Record]) -> None:
        """Store several records, one insert at a time."""
        for record in records:
            self.insert(record)

    @abstractmethod
    def update(self, task_id: str, changes: Record) -> Optional[Record]:
        """Replace some fields of a stored record.

        The id and created_at fields are never changed.

        Args:
            task_id: Id of the record to change
            changes: Field values to set

        Returns:
            The updated record, or None if no record has this id
        """

    @abstractmethod
    def delete_by_id(self, task_id: str) -> bool:
        """Delete one record. Returns False if it did not exist."""

    @abstractmethod
    def delete_all(self) -> None:
        """Delete every record."""


def _mutable_changes(changes: Record) -> Record:
    return {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}


def _require_id(record: Record) -> str:
    task_id = record.get("id") if isinstance(record, dict) else None
    if task_id is None or task_id == "":
        raise StoreError("Task record has no id")
    return str(task_id)


def _has_id(record: Any, task_id: str) -> bool:
    # Imported JSON may hold numeric ids; they match their string form.
    if not isinstance(record, dict) or record.get("id") is None:
        return False
    return str(record["id"]) == str(task_id)


class JsonStorage(Storage):
    """JSON file-based storage implementation with file locking.

    The file holds a single JSON array of task records. It is created
    holding an empty array the first time it is read, if absent.

    Attributes:
        file_path: Path to the JSON storage file
    """

    def __init__(self, file_path: str = "tasks.json"):
        self.file_path = Path(file_path)

    def _load(self) -> List[Record]:
        if not self.file_path.exists():
            self._save([])
            return []

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    content = f.read().strip()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            raise StoreError(f"Cannot read {self.file_path}: {e}", e) from e

        if not content:
            return []
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupted task file {self.file_path}: {e}", e) from e
        if not isinstance(data, list):
            raise StoreError(f"Task file {self.file_path} does not hold a JSON array")
        return data

    def _save(self, records: List[Record]) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.file_path, "w", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    json.dump(records, f, indent=2)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except (OSError, TypeError) as e:
            raise StoreError(f"Cannot write {self.file_path}: {e}", e) from e
        logger.debug("Wrote %d task(s) to %s", len(records), self.file_path)

    def list_all(self) -> List[Record]:
        return self._load()

    def get_by_id(self, task_id: str) -> Optional[Record]:
        for record in self._load():
            if _has_id(record, task_id):
                return record
        return None

    def insert(self, record: Record) -> Record:
        task_id = _require_id(record)
        records = self._load()
        if any(_has_id(r, task_id) for r in records):
            raise StoreError(f"Duplicate task id {task_id}")
        records.append(dict(record))
        self._save(records)
        return dict(record)

    def insert_many(self, records: Iterable[Record]) -> None:
        stored = self._load()
        seen = {str(r["id"]) for r in stored if isinstance(r, dict) and r.get("id") is not None}
        for record in records:
            task_id = _require_id(record)
            if task_id in seen:
                raise StoreError(f"Duplicate task id {task_id}")
            seen.add(task_id)
            stored.append(dict(record))
        self._save(stored)

    def update(self, task_id: str, changes: Record) -> Optional[Record]:
        records = self._load()
        for record in records:
            if _has_id(record, task_id):
                record.update(_mutable_changes(changes))
                self._save(records)
                return record
        return None

    def delete_by_id(self, task_id: str) -> bool:
        records = self._load()
        kept = [r for r in records if not _has_id(r, task_id)]
        if len(kept) == len(records):
            return False
        self._save(kept)
        return True

    def delete_all(self) -> None:
        self._save([])


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tasks (
    id          TEXT PRIMARY KEY NOT NULL,
    title       TEXT,
    description TEXT,
    due_date    TEXT, -- ISO 8601 with offset
    priority    TEXT,
    status      TEXT,
    created_at  TEXT
);
"""


class SqliteStorage(Storage):
    """SQLite table storage.

    Each method opens its own connection and commits on success.
    Values are stored as given; nothing is validated beyond the primary key.
    """

    def __init__(self, db_path: str = "tasks.sqlite3"):
        self.db_path = Path(db_path)
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
        logger.info("SqliteStorage ready db=%s", self.db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot open {self.db_path}: {e}", e) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Database error: {e}", e) from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Record:
        return {name: row[name] for name in TASK_FIELDS}

    def list_all(self) -> List[Record]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY rowid ASC").fetchall()
            return [self._row_to_record(r) for r in rows]

    def get_by_id(self, task_id: str) -> Optional[Record]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_record(row) if row else None

    def _insert(self, conn: sqlite3.Connection, record: Record) -> None:
        task_id = _require_id(record)
        values = [task_id] + [record.get(name) for name in TASK_FIELDS[1:]]
        try:
            conn.execute(
                f"INSERT INTO tasks ({', '.join(TASK_FIELDS)}) "
                f"VALUES ({', '.join('?' for _ in TASK_FIELDS)})",
                values,
            )
        except sqlite3.Error as e:
            raise StoreError(f"Cannot insert task {task_id}: {e}", e) from e

    def insert(self, record: Record) -> Record:
        with self._connect() as conn:
            self._insert(conn, record)
        return {name: record.get(name) for name in TASK_FIELDS}

    def insert_many(self, records: Iterable[Record]) -> None:
        with self._connect() as conn:
            for record in records:
                self._insert(conn, record)

    def update(self, task_id: str, changes: Record) -> Optional[Record]:
        fields = {k: v for k, v in _mutable_changes(changes).items() if k in TASK_FIELDS}
        with self._connect() as conn:
            if fields:
                assignments = ", ".join(f"{name} = ?" for name in fields)
                cur = conn.execute(
                    f"UPDATE tasks SET {assignments} WHERE id = ?",
                    list(fields.values()) + [task_id],
                )
                if cur.rowcount == 0:
                    return None
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_record(row) if row else None

    def delete_by_id(self, task_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cur.rowcount > 0

    def delete_all(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM tasks")

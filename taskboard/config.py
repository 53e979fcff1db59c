"""Settings loaded from environment variables.

Recognized variables:
- TASK_BACKEND: "json" (default) or "sqlite"
- TASK_DB_PATH: store location; defaults to tasks.json or tasks.sqlite3
- TASK_LOG_LEVEL: logging level name (default WARNING)
- TASK_LOG_FILE: optional log file path

Command-line options override the environment.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from taskboard.storage import JsonStorage, SqliteStorage, Storage

BACKENDS = ("json", "sqlite")

DEFAULT_PATHS = {
    "json": "tasks.json",
    "sqlite": "tasks.sqlite3",
}


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    backend: str = "json"
    db_path: Path = Path(DEFAULT_PATHS["json"])
    log_level: str = "WARNING"
    log_file: Optional[Path] = None

    def make_storage(self) -> Storage:
        """Build the configured storage backend."""
        if self.backend == "sqlite":
            return SqliteStorage(str(self.db_path))
        return JsonStorage(str(self.db_path))


def load_settings(
    backend: Optional[str] = None,
    db_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Resolve settings from explicit values, then the environment.

    Args:
        backend: Backend name overriding TASK_BACKEND
        db_path: Store path overriding TASK_DB_PATH
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Settings instance

    Raises:
        ValueError: If the backend name is unknown
    """
    env = os.environ if environ is None else environ

    backend = (backend or _env(env, "TASK_BACKEND") or "json").lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}' (expected one of: {', '.join(BACKENDS)})")

    path = db_path or _env(env, "TASK_DB_PATH") or DEFAULT_PATHS[backend]
    log_file = _env(env, "TASK_LOG_FILE")

    return Settings(
        backend=backend,
        db_path=Path(path).expanduser(),
        log_level=(_env(env, "TASK_LOG_LEVEL") or "WARNING").upper(),
        log_file=Path(log_file).expanduser() if log_file else None,
    )

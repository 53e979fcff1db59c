"""JSON export and import documents.

An export document is a JSON array of task records exactly as the store
holds them. Import accepts any JSON array of objects; the records are not
checked against the task schema.
"""

import json
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from taskboard.errors import ImportFormatError


def dump_tasks(records: Iterable[Dict[str, Any]]) -> str:
    """Serialize task records to a pretty-printed JSON array."""
    return json.dumps(list(records), indent=2, ensure_ascii=False)


def parse_tasks(text: str) -> List[Dict[str, Any]]:
    """Parse an import document.

    Args:
        text: JSON document text

    Returns:
        The task records it holds

    Raises:
        ImportFormatError: If the text is not valid JSON, or not an array
            of objects
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportFormatError(f"Invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise ImportFormatError("Import document must be a JSON array of tasks")
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ImportFormatError(f"Item {index} is not a JSON object")
    return data


def default_export_name(today: Optional[date] = None) -> str:
    """File name for an export made today, e.g. tasks-2024-05-01.json."""
    return f"tasks-{(today or date.today()).isoformat()}.json"

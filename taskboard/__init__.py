"""taskboard: a small task manager with searchable lists, statistics and JSON import/export."""

__version__ = "0.1.0"

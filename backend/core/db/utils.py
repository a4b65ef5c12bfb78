"""
Shared database utilities.

Common functions used across database modules for:
- JSON field parsing
- Row conversion
"""
from typing import Any, Dict, Iterable, Optional
import json
import sqlite3


def parse_json_field(value: Optional[str], default: Any = None) -> Any:
    """
    Safely parse a JSON field from the database.

    Args:
        value: JSON string from database, may be None
        default: Default value if parsing fails or value is None

    Returns:
        Parsed JSON value or default
    """
    if not value:
        return default if default is not None else []
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return default if default is not None else []


def row_to_dict(row: sqlite3.Row, json_fields: Iterable[str] = (), json_defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Convert a sqlite3.Row to a dict, decoding JSON columns.

    Args:
        row: Row from a query using sqlite3.Row as row_factory
        json_fields: Column names holding JSON text
        json_defaults: Per-column default when the JSON is missing or invalid

    Returns:
        Plain dict of column -> value
    """
    result = dict(row)
    defaults = json_defaults or {}
    for field in json_fields:
        if field in result:
            result[field] = parse_json_field(result[field], defaults.get(field))
    return result

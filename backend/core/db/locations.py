"""
Location index database operations.
"""
from typing import Any, Dict, List

from .base import get_db, LOCATION_TABLE


def list_location_index() -> List[Dict[str, Any]]:
    """Get every location_index row that has a loc_key."""
    with get_db() as conn:
        rows = conn.execute(
            f"SELECT * FROM {LOCATION_TABLE} WHERE loc_key IS NOT NULL AND loc_key != ''"
        ).fetchall()
        return [dict(row) for row in rows]

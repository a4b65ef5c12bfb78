"""
GTIN inventory matrix database operations.

Read-only ordered scans over the matrix table. The query engine describes
what it wants (order field, range, filters, resume point) and this module
turns it into a single SELECT.
"""
from typing import Any, Dict, List, Optional, Tuple

from .base import get_db, MATRIX_TABLE
from .utils import row_to_dict

# Whitelists (SQL injection prevention - field names are interpolated)
ORDERABLE_COLUMNS = {"gtin", "name_key", "sku_key", "price_spread"}
EQUALITY_COLUMNS = {"has_mismatch"}
ARRAY_COLUMNS = {"search_tokens"}

JSON_FIELDS = ("search_tokens", "prices_by_location")
JSON_DEFAULTS = {"search_tokens": [], "prices_by_location": {}}


def _matrix_row(row) -> Dict[str, Any]:
    record = row_to_dict(row, JSON_FIELDS, JSON_DEFAULTS)
    record["has_mismatch"] = bool(record.get("has_mismatch"))
    return record


def scan_matrix(
    order_by: str = "gtin",
    descending: bool = False,
    range_start: Optional[Any] = None,
    range_end: Optional[Any] = None,
    where_equals: Optional[Dict[str, Any]] = None,
    array_contains: Optional[Tuple[str, Any]] = None,
    start_after: Optional[Tuple[Any, ...]] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    """
    Run one ordered scan over the matrix.

    Args:
        order_by: Column to order by; gtin breaks ties (ascending)
        descending: Order the order_by column descending
        range_start: Inclusive lower bound on order_by
        range_end: Inclusive upper bound on order_by
        where_equals: Column -> value equality filters
        array_contains: (column, value) membership filter on a JSON array column
        start_after: Resume point. (gtin,) when ordering by gtin,
            otherwise (order_by value, gtin)
        limit: Max rows to return

    Returns:
        List of matrix records as dicts, JSON columns decoded
    """
    if order_by not in ORDERABLE_COLUMNS:
        raise ValueError(f"Cannot order matrix by {order_by!r}")

    clauses: List[str] = []
    params: List[Any] = []

    if range_start is not None:
        clauses.append(f"{order_by} >= ?")
        params.append(range_start)
    if range_end is not None:
        clauses.append(f"{order_by} <= ?")
        params.append(range_end)

    for column, value in (where_equals or {}).items():
        if column not in EQUALITY_COLUMNS:
            raise ValueError(f"Cannot filter matrix on {column!r}")
        clauses.append(f"{column} = ?")
        params.append(value)

    if array_contains:
        column, value = array_contains
        if column not in ARRAY_COLUMNS:
            raise ValueError(f"Cannot run membership filter on {column!r}")
        clauses.append(
            f"EXISTS (SELECT 1 FROM json_each({MATRIX_TABLE}.{column}) WHERE json_each.value = ?)"
        )
        params.append(value)

    if order_by == "gtin":
        direction = "DESC" if descending else "ASC"
        order_sql = f"gtin {direction}"
        if start_after:
            clauses.append("gtin < ?" if descending else "gtin > ?")
            params.append(start_after[-1])
    else:
        direction = "DESC" if descending else "ASC"
        order_sql = f"{order_by} {direction}, gtin ASC"
        if start_after:
            key_value, last_gtin = start_after
            cmp = "<" if descending else ">"
            clauses.append(f"({order_by} {cmp} ? OR ({order_by} = ? AND gtin > ?))")
            params.extend([key_value, key_value, last_gtin])

    query = f"SELECT * FROM {MATRIX_TABLE}"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += f" ORDER BY {order_sql} LIMIT ?"
    params.append(max(int(limit), 0))

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
        return [_matrix_row(row) for row in rows]

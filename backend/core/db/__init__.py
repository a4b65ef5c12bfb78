"""
Database package for the matrix backend.

    from backend.core.db import scan_matrix, list_location_index
"""

# Base - connection, initialization
from .base import (
    DB_PATH,
    MATRIX_TABLE,
    LOCATION_TABLE,
    get_db,
    init_db,
)

# Matrix scans
from .matrix import scan_matrix

# Location index
from .locations import list_location_index

__all__ = [
    "DB_PATH",
    "MATRIX_TABLE",
    "LOCATION_TABLE",
    "get_db",
    "init_db",
    "scan_matrix",
    "list_location_index",
]

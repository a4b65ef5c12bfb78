"""GTIN inventory matrix query engine."""

from .engine import run_matrix_query, make_checkpoint, assemble_page
from .errors import MatrixQueryValidationError, QueryCancelled
from .locations import get_location_directory, clear_location_cache
from .models import (
    AccessMode,
    LocationDirectory,
    LocationRecord,
    MatrixPage,
    MatrixQuery,
    MatrixRecord,
    SearchField,
)

__all__ = [
    'run_matrix_query',
    'make_checkpoint',
    'assemble_page',
    'MatrixQueryValidationError',
    'QueryCancelled',
    'get_location_directory',
    'clear_location_cache',
    'AccessMode',
    'LocationDirectory',
    'LocationRecord',
    'MatrixPage',
    'MatrixQuery',
    'MatrixRecord',
    'SearchField',
]

"""
GTIN inventory matrix query engine.

run_matrix_query is the single read operation behind the matrix API:

    directory -> plan -> decode cursor -> scan -> assemble page

Each call is independent apart from the shared location directory cache.
A missing_only request may issue several sequential store reads (bounded
by MISSING_SCAN_HARD_CAP); every other request issues exactly one.
"""
import logging
import threading
import time
from typing import Optional

from .cursor import decode_cursor, encode_cursor
from .errors import QueryCancelled
from .locations import get_location_directory
from .models import LocationDirectory, MatrixPage, MatrixQuery, QueryPlan, ScanResult
from .planner import plan_query
from .scanner import Checkpoint, fetch_page, scan_missing

logger = logging.getLogger(__name__)


def make_checkpoint(
    cancel_event: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
) -> Checkpoint:
    """
    Build the callable the scanner runs before every store read.

    Args:
        cancel_event: Set by the caller to abandon the request
        deadline: time.monotonic() value after which the request is abandoned
    """
    def checkpoint() -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise QueryCancelled("Matrix query cancelled")
        if deadline is not None and time.monotonic() >= deadline:
            raise QueryCancelled("Matrix query deadline exceeded")

    return checkpoint


def assemble_page(plan: QueryPlan, result: ScanResult, directory: LocationDirectory) -> MatrixPage:
    """Combine scan output, location metadata and the next cursor."""
    next_cursor = None
    if not result.exhausted and result.position is not None:
        next_cursor = encode_cursor(plan.spec, result.position)

    return MatrixPage(
        rows=result.rows,
        locations=list(directory.locations),
        locations_meta=dict(directory.meta),
        next_cursor=next_cursor,
    )


def run_matrix_query(
    query: MatrixQuery,
    cancel_event: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
) -> MatrixPage:
    """
    Serve one page of the matrix.

    Raises:
        MatrixQueryValidationError: bad missing_only parameters
        QueryCancelled: cancel_event set or deadline passed before the page was complete
        sqlite3.Error: the store failed
    """
    checkpoint = make_checkpoint(cancel_event, deadline)

    directory = get_location_directory()
    plan = plan_query(query, directory.meta)
    start = decode_cursor(query.cursor, plan.spec)

    if plan.missing_filter is not None:
        result = scan_missing(plan.spec, start, plan.page_size, plan.missing_filter, checkpoint)
    else:
        result = fetch_page(plan.spec, start, plan.page_size, checkpoint)

    # Never hand back a page assembled after the caller gave up
    checkpoint()

    logger.debug(
        f"Matrix page served: mode={plan.spec.mode.value} rows={len(result.rows)} "
        f"resumed={start is not None} exhausted={result.exhausted}"
    )
    return assemble_page(plan, result, directory)

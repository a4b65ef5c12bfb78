"""
Ordered scans over the matrix store.

fetch_page runs the single query used by every plain request. scan_missing
implements the missing_only filter: "priced somewhere, but not at target".
That predicate is over the dynamic keys of prices_by_location, which the
store cannot index, so it is evaluated here over bounded batches.

The resume point of a missing scan is always the last record *evaluated*,
never the last record *matched*.
"""
import logging
from typing import Callable, Optional

from backend.core.config import settings
from backend.core.db import scan_matrix

from .models import AccessMode, MatrixRecord, MissingFilter, ScanPosition, ScanResult, ScanSpec

logger = logging.getLogger(__name__)

Checkpoint = Callable[[], None]


def _no_checkpoint() -> None:
    return None


def _fetch(spec: ScanSpec, after: Optional[ScanPosition], limit: int):
    rows = scan_matrix(
        order_by=spec.order_by,
        descending=spec.descending,
        range_start=spec.range_start,
        range_end=spec.range_end,
        where_equals=spec.where_equals,
        array_contains=spec.array_contains,
        start_after=after.as_start_after() if after else None,
        limit=limit,
    )
    return [MatrixRecord.from_row(row) for row in rows]


def fetch_page(
    spec: ScanSpec,
    start: Optional[ScanPosition],
    page_size: int,
    checkpoint: Checkpoint = _no_checkpoint,
) -> ScanResult:
    """Read one page in a single store query. An exact-key lookup is always complete after it."""
    checkpoint()
    rows = _fetch(spec, start, page_size)
    position = spec.position_of(rows[-1]) if rows else start
    return ScanResult(
        rows=rows,
        position=position,
        exhausted=len(rows) < page_size or spec.mode is AccessMode.EXACT_KEY,
        rounds=1,
        scanned=len(rows),
    )


def missing_batch_size(page_size: int) -> int:
    """Records requested per scan round."""
    size = min(page_size * settings.MISSING_SCAN_FETCH_MULTIPLIER, settings.MISSING_SCAN_MAX_BATCH)
    return max(size, 1)


def scan_missing(
    spec: ScanSpec,
    start: Optional[ScanPosition],
    page_size: int,
    missing_filter: MissingFilter,
    checkpoint: Checkpoint = _no_checkpoint,
) -> ScanResult:
    """
    Scan forward from start collecting up to page_size records that pass
    missing_filter, for at most MISSING_SCAN_HARD_CAP rounds.

    A short page with exhausted=False means the hard cap was hit; the
    caller resumes from result.position.
    """
    batch_size = missing_batch_size(page_size)
    hard_cap = max(settings.MISSING_SCAN_HARD_CAP, 1)
    result = ScanResult(position=start, exhausted=False)

    while result.rounds < hard_cap:
        checkpoint()
        batch = _fetch(spec, result.position, batch_size)
        result.rounds += 1

        if not batch:
            result.exhausted = True
            break

        page_full = False
        for index, record in enumerate(batch):
            result.scanned += 1
            result.position = spec.position_of(record)
            if missing_filter.matches(record):
                result.rows.append(record)
                if len(result.rows) >= page_size:
                    page_full = True
                    break

        short_batch = len(batch) < batch_size
        if page_full:
            # Only exhausted if the record that filled the page was the last one left
            result.exhausted = (short_batch and index == len(batch) - 1) or spec.mode is AccessMode.EXACT_KEY
            break
        if short_batch:
            result.exhausted = True
            break
    else:
        logger.warning(
            f"Missing-filter scan hit hard cap of {hard_cap} rounds "
            f"({result.scanned} scanned, {len(result.rows)}/{page_size} matched)"
        )

    logger.info(
        f"Missing-filter scan for {missing_filter.target}: rounds={result.rounds} "
        f"scanned={result.scanned} matched={len(result.rows)} exhausted={result.exhausted}"
    )
    return result

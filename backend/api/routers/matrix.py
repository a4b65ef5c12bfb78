"""
GTIN inventory matrix API router (cross-location price reconciliation).
"""
import asyncio
import logging
import sqlite3
import threading
import time
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.concurrency import run_in_threadpool

from backend.api.models import LocationDirectoryResponse, MatrixPageResponse
from backend.core.config import settings
from backend.core.matrix import (
    MatrixQuery, MatrixQueryValidationError, QueryCancelled,
    get_location_directory, run_matrix_query
)

router = APIRouter(prefix="/api/gtin-inventory-matrix", tags=["Matrix"])
logger = logging.getLogger(__name__)

# The matrix is rebuilt continuously; never let a proxy or browser cache a page
NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}

# How often a running query checks whether its client went away
DISCONNECT_POLL_SECONDS = 0.1


async def watch_disconnect(request: Request, cancel_event: threading.Event, poll_interval: float = DISCONNECT_POLL_SECONDS) -> None:
    """Set cancel_event as soon as the client disconnects."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info(f"Client disconnected from {request.url.path}; cancelling matrix query")
            cancel_event.set()
            return
        await asyncio.sleep(poll_interval)


@router.get("", response_model=MatrixPageResponse)
async def get_matrix_page(
    request: Request,
    response: Response,
    q: Optional[str] = Query(None, description="GTIN, size token (200ml) or name/sku prefix"),
    page_size: Optional[int] = Query(None, description="Rows per page, clamped to the configured max"),
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
    mismatch_only: bool = Query(False, description="Only GTINs priced differently across locations"),
    missing_only: bool = Query(False, description="Only GTINs not carried at missing_target"),
    missing_target: Optional[str] = Query(None, description="loc_key the GTIN must be missing from"),
    missing_require_present_in: Optional[str] = Query(None, description="loc_key the GTIN must be carried at"),
    search_field: str = Query("name", description="Prefix search field: name or sku"),
):
    """
    Page through the consolidated GTIN inventory matrix.

    Keep q and the filters fixed while following next_cursor; an empty
    next_cursor means there is nothing left. missing_only pages can come
    back short (even empty) with a next_cursor - keep following it.
    """
    response.headers.update(NO_CACHE_HEADERS)

    query = MatrixQuery(
        query_text=q or "",
        mismatch_only=mismatch_only,
        missing_only=missing_only,
        missing_target=missing_target,
        missing_require_present_in=missing_require_present_in,
        search_field=search_field,
        page_size=page_size,
        cursor=cursor,
    )
    deadline = time.monotonic() + settings.MATRIX_QUERY_TIMEOUT_SECONDS
    cancel_event = threading.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))

    try:
        page = await run_in_threadpool(run_matrix_query, query, cancel_event=cancel_event, deadline=deadline)
    except MatrixQueryValidationError as e:
        raise HTTPException(status_code=400, detail=str(e), headers=NO_CACHE_HEADERS)
    except QueryCancelled as e:
        logger.warning(f"Matrix query abandoned: {e}")
        raise HTTPException(status_code=504, detail=str(e), headers=NO_CACHE_HEADERS)
    except sqlite3.Error:
        logger.exception("Error in /api/gtin-inventory-matrix")
        raise HTTPException(status_code=500, detail="Internal error", headers=NO_CACHE_HEADERS)
    finally:
        watcher.cancel()

    return asdict(page)


@router.get("/locations", response_model=LocationDirectoryResponse)
def get_matrix_locations(response: Response, refresh: bool = Query(False, description="Bypass the cache")):
    """Get the location columns of the matrix in display order."""
    response.headers.update(NO_CACHE_HEADERS)
    try:
        directory = get_location_directory(force_refresh=refresh)
    except sqlite3.Error:
        logger.exception("Error in /api/gtin-inventory-matrix/locations")
        raise HTTPException(status_code=500, detail="Internal error", headers=NO_CACHE_HEADERS)

    return {
        "locations": directory.locations,
        "locations_meta": {key: asdict(meta) for key, meta in directory.meta.items()},
    }

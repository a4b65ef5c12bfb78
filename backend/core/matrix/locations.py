"""
Location directory cache.

The directory (every known loc_key plus display metadata) is read from
location_index on first use and kept in process for
LOCATION_CACHE_TTL_SECONDS. Concurrent requests that find it expired may
each refetch; the last write wins and staleness stays bounded by the TTL.
"""
import logging
import time
from typing import Any, Dict

from backend.core.config import settings
from backend.core.db import list_location_index

from .models import LocationDirectory, LocationRecord

logger = logging.getLogger(__name__)

_clock = time.monotonic

_directory_cache: Dict[str, Any] = {
    "directory": None,
    "fetched_at": 0.0,
}


def _label(row: Dict[str, Any]) -> str:
    return str(row.get("merchant_name") or row.get("location_name") or row.get("loc_key"))


def load_location_directory() -> LocationDirectory:
    """Read location_index and build a directory sorted by display label."""
    records = [
        LocationRecord(
            loc_key=str(row["loc_key"]),
            label=_label(row),
            merchant_id=row.get("merchant_id") or None,
            merchant_name=row.get("merchant_name") or None,
        )
        for row in list_location_index()
        if row.get("loc_key")
    ]
    records.sort(key=lambda r: (r.label.casefold(), r.loc_key))

    return LocationDirectory(
        locations=[r.loc_key for r in records],
        meta={r.loc_key: r for r in records},
    )


def get_location_directory(force_refresh: bool = False) -> LocationDirectory:
    """Get the cached directory, refetching when empty, expired or forced."""
    directory = _directory_cache["directory"]
    age = _clock() - _directory_cache["fetched_at"]

    if directory is not None and not force_refresh and age < settings.LOCATION_CACHE_TTL_SECONDS:
        return directory

    directory = load_location_directory()
    _directory_cache["directory"] = directory
    _directory_cache["fetched_at"] = _clock()
    logger.debug(f"Location directory refreshed ({len(directory.locations)} locations)")
    return directory


def clear_location_cache() -> None:
    """Drop the cached directory so the next read hits the store."""
    _directory_cache["directory"] = None
    _directory_cache["fetched_at"] = 0.0

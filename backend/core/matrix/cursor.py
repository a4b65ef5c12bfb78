"""
Opaque resume tokens for matrix scans.

A cursor is urlsafe-base64 JSON of a tagged variant:

    {"m": "by_key" | "exact_key", "id": <gtin>}
    {"m": "prefix", "f": <name_key|sku_key>, "k": <search key>, "id": <gtin>}
    {"m": "token", "s": <price_spread>, "id": <gtin>}

Decoding fails closed: anything unreadable, or produced for a different
mode/search field, comes back as None and the request starts from the
first page.
"""
import base64
import json
import logging
import math
from typing import Any, Dict, Optional

from .models import AccessMode, ScanPosition, ScanSpec

logger = logging.getLogger(__name__)


def encode_cursor(spec: ScanSpec, position: ScanPosition) -> str:
    """Encode the resume point of a scan."""
    payload: Dict[str, Any] = {"m": spec.mode.value}
    if spec.mode is AccessMode.PREFIX:
        payload["f"] = spec.order_by
        payload["k"] = "" if position.key is None else str(position.key)
    elif spec.mode is AccessMode.TOKEN:
        payload["s"] = float(position.key or 0)
    payload["id"] = position.gtin

    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _load(token: str) -> Optional[Dict[str, Any]]:
    try:
        padded = token + "=" * (-len(token) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (ValueError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _spread(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        spread = float(value)
    except (TypeError, ValueError):
        return None
    return spread if math.isfinite(spread) else None


def decode_cursor(token: Optional[str], spec: ScanSpec) -> Optional[ScanPosition]:
    """
    Decode a cursor for the given scan.

    Returns:
        The position to resume after, or None to start from the first page
    """
    if not token:
        return None

    data = _load(token)
    if data is None:
        logger.warning("Discarding undecodable matrix cursor")
        return None

    if data.get("m") != spec.mode.value:
        logger.warning(f"Discarding matrix cursor for mode {data.get('m')!r}; query resolved to {spec.mode.value!r}")
        return None

    gtin = data.get("id")
    if not isinstance(gtin, str) or not gtin:
        logger.warning("Discarding matrix cursor without a gtin")
        return None

    if spec.mode is AccessMode.PREFIX:
        key = data.get("k")
        if data.get("f") != spec.order_by or not isinstance(key, str):
            logger.warning("Discarding prefix cursor for a different search field")
            return None
        return ScanPosition(gtin=gtin, key=key)

    if spec.mode is AccessMode.TOKEN:
        spread = _spread(data.get("s"))
        if spread is None:
            logger.warning("Discarding token cursor with a non-numeric spread")
            return None
        return ScanPosition(gtin=gtin, key=spread)

    return ScanPosition(gtin=gtin)

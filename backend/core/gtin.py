"""
GTIN and search-field normalization.

These helpers are shared by the matrix query engine and the nightly
matrix build job, so both sides agree on:
- the canonical form of a GTIN (the matrix document key)
- name_key / sku_key prefix search keys
- search_tokens used for size/pack token lookups
- the derived has_mismatch / price_spread fields
"""
import math
import re
from typing import Any, Dict, Iterable, List, Optional

MAX_SEARCH_TOKENS = 40

_NON_DIGIT = re.compile(r"[^0-9]")
_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_NUMBER = re.compile(r"^\d+(\.\d+)?$")
_LETTERS = re.compile(r"^[a-z]+$")
_FUSED_SIZE = re.compile(r"\d+(?:\.\d+)?[a-z]+")
_ZEROS = re.compile(r"^0+$")


def _safe_str(value: Any) -> str:
    return "" if value is None else str(value)


def normalize_digits(raw: Any) -> str:
    """Strip everything except digits."""
    return _NON_DIGIT.sub("", _WHITESPACE.sub("", _safe_str(raw).strip()))


def canonical_gtin(raw: Any) -> str:
    """
    Canonicalize a GTIN/UPC string.

    - 8-digit values stay 8-digit
    - 12/13/14-digit values usually stay unchanged
    - if the part before the last 8 digits is all zeros, the value is a
      zero-padded 8-digit code and collapses to its last 8 digits

    Examples:
        000002785123 -> 02785123
        008421372232 -> 008421372232
    """
    digits = normalize_digits(raw)
    if not digits:
        return ""

    if len(digits) == 8:
        return digits

    if len(digits) > 8:
        prefix, last8 = digits[:-8], digits[-8:]
        if _ZEROS.match(prefix):
            return last8

    return digits


def make_search_key(value: Any) -> str:
    """Lowercase, drop whitespace and anything that is not a-z/0-9."""
    lowered = _WHITESPACE.sub("", _safe_str(value).lower().strip())
    return _NON_ALNUM.sub("", lowered)


def make_search_tokens(item_name: Any, sku: Any = None) -> List[str]:
    """
    Build the compact token list stored in search_tokens.

    Captures plain words ("vodka"), merged size tokens ("200 ml" -> "200ml",
    "12pk"), and sku parts. Order of first appearance is preserved and the
    list is capped at MAX_SEARCH_TOKENS.
    """
    tokens: Dict[str, None] = {}

    def add(raw: str) -> None:
        key = make_search_key(raw)
        if 2 < len(key) <= 24:
            tokens.setdefault(key, None)

    name = _safe_str(item_name).lower()
    sku_str = _safe_str(sku).lower()

    parts = [p for p in _NON_ALNUM_RUN.sub(" ", name).split() if p]
    for part in parts:
        add(part)

    for a, b in zip(parts, parts[1:]):
        if _NUMBER.match(a) and _LETTERS.match(b):
            add(f"{a}{b}")

    for fused in _FUSED_SIZE.findall(name):
        add(fused)

    if sku_str:
        for part in _NON_ALNUM_RUN.sub(" ", sku_str).split():
            add(part)
        add(sku_str)

    return list(tokens)[:MAX_SEARCH_TOKENS]


def _priced(entries: Iterable[Any]) -> List[float]:
    prices = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        price = entry.get("price")
        if price is None or isinstance(price, bool):
            continue
        try:
            value = float(price)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value):
            prices.append(value)
    return prices


def compute_mismatch_metrics(prices_by_location: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Derive the mismatch fields of a matrix record from its price map.

    Returns priced_location_count, min_price, max_price, price_spread and
    has_mismatch. Fewer than two priced locations is never a mismatch.
    """
    prices = _priced((prices_by_location or {}).values())

    if len(prices) < 2:
        only = prices[0] if prices else None
        return {
            "priced_location_count": len(prices),
            "min_price": only,
            "max_price": only,
            "price_spread": 0,
            "has_mismatch": False,
        }

    low, high = min(prices), max(prices)
    return {
        "priced_location_count": len(prices),
        "min_price": low,
        "max_price": high,
        "price_spread": high - low,
        "has_mismatch": high != low,
    }

"""
Query planner for the GTIN inventory matrix.

Classifies a request into exactly one access mode and builds the ordered
scan for it. Decision order (first match wins):

1. empty query                      -> by_key   (list everything by gtin)
2. all digits, length >= 8          -> exact_key (canonical gtin lookup)
3. short "<digits><letters>" token  -> token    (e.g. 200ml, 12pk, 1l)
4. anything else                    -> prefix   (name_key / sku_key range)

missing_only is orthogonal to the mode and is validated here against the
location directory before any scan runs.
"""
import logging
import re
from typing import Any, Collection, Optional

from backend.core.config import settings
from backend.core.gtin import canonical_gtin, make_search_key

from .errors import MatrixQueryValidationError
from .models import AccessMode, MatrixQuery, MissingFilter, QueryPlan, ScanSpec, SearchField

logger = logging.getLogger(__name__)

# Upper bound for prefix ranges; sorts after any a-z0-9 search key
MAX_SENTINEL = "\uf8ff"

EXACT_KEY_MIN_LENGTH = 8
TOKEN_MAX_LENGTH = 10

_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"^[0-9]+$")
_SIZE_TOKEN = re.compile(r"^[0-9]+[a-z]+$")


def normalize_query(query_text: Optional[str]) -> str:
    """Trim, lowercase and remove all whitespace."""
    return _WHITESPACE.sub("", (query_text or "").strip().lower())


def choose_mode(query_text: Optional[str]) -> AccessMode:
    """Pick the access mode for a query. Pure function of the text."""
    normalized = normalize_query(query_text)
    if not normalized:
        return AccessMode.BY_KEY
    if _DIGITS.match(normalized) and len(normalized) >= EXACT_KEY_MIN_LENGTH:
        return AccessMode.EXACT_KEY
    token = make_search_key(query_text)
    if _SIZE_TOKEN.match(token) and len(token) <= TOKEN_MAX_LENGTH:
        return AccessMode.TOKEN
    return AccessMode.PREFIX


def resolve_search_field(raw: Any) -> SearchField:
    """Anything other than "sku" means name."""
    return SearchField.SKU if str(raw or "").strip().lower() == "sku" else SearchField.NAME


def clamp_page_size(raw: Any) -> int:
    """Clamp a caller page size to [1, MATRIX_MAX_PAGE_SIZE]; missing/invalid/zero uses the default."""
    try:
        size = int(raw)
    except (TypeError, ValueError):
        size = 0
    if size <= 0:
        size = settings.MATRIX_DEFAULT_PAGE_SIZE
    return max(1, min(size, settings.MATRIX_MAX_PAGE_SIZE))


def build_scan_spec(query_text: Optional[str], mismatch_only: bool = False, search_field: Any = SearchField.NAME) -> ScanSpec:
    """Build the ordered scan for the query's access mode."""
    mode = choose_mode(query_text)
    mismatch = {"has_mismatch": True} if mismatch_only else {}

    if mode is AccessMode.BY_KEY:
        return ScanSpec(mode=mode, order_by="gtin", where_equals=mismatch)

    if mode is AccessMode.EXACT_KEY:
        normalized = normalize_query(query_text)
        key = canonical_gtin(normalized) or normalized
        return ScanSpec(mode=mode, order_by="gtin", range_start=key, range_end=key)

    token = make_search_key(query_text)

    if mode is AccessMode.TOKEN:
        return ScanSpec(
            mode=mode,
            order_by="price_spread",
            descending=True,
            where_equals=mismatch,
            array_contains=("search_tokens", token),
        )

    column = resolve_search_field(search_field).key_column
    return ScanSpec(
        mode=mode,
        order_by=column,
        range_start=token,
        range_end=token + MAX_SENTINEL,
        where_equals=mismatch,
    )


def _clean_loc_key(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def build_missing_filter(query: MatrixQuery, known_locations: Collection[str]) -> Optional[MissingFilter]:
    """
    Validate the missing_only parameters.

    Raises:
        MatrixQueryValidationError: target missing or not a known loc_key
    """
    if not query.missing_only:
        return None

    target = _clean_loc_key(query.missing_target)
    require_present_in = _clean_loc_key(query.missing_require_present_in)

    if not target:
        raise MatrixQueryValidationError("missing_target is required when missing_only is set")
    if target not in known_locations:
        raise MatrixQueryValidationError(
            f"missing_target must be one of the known locations (loc_key). Got: {target}"
        )
    if require_present_in and require_present_in not in known_locations:
        raise MatrixQueryValidationError(
            f"missing_require_present_in must be one of the known locations (loc_key). Got: {require_present_in}"
        )

    return MissingFilter(target=target, require_present_in=require_present_in)


def plan_query(query: MatrixQuery, known_locations: Collection[str]) -> QueryPlan:
    """Validate the request and produce its scan plan."""
    missing_filter = build_missing_filter(query, known_locations)
    spec = build_scan_spec(query.query_text, query.mismatch_only, query.search_field)
    page_size = clamp_page_size(query.page_size)

    logger.debug(
        f"Matrix query planned: mode={spec.mode.value} order_by={spec.order_by} "
        f"page_size={page_size} missing_only={missing_filter is not None}"
    )
    return QueryPlan(spec=spec, page_size=page_size, missing_filter=missing_filter)

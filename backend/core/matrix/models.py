"""
Data models for the GTIN inventory matrix query engine.

Matrix and location documents come out of the store as dicts; they are
wrapped in dataclasses here so the planner, scanner and assembler all
agree on field names.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AccessMode(str, Enum):
    """Scan strategy chosen for a query. Fixed for every page of that query."""
    BY_KEY = "by_key"        # default listing, ordered by gtin
    EXACT_KEY = "exact_key"  # single canonical gtin
    TOKEN = "token"          # search_tokens membership, biggest spread first
    PREFIX = "prefix"        # name_key / sku_key prefix range


class SearchField(str, Enum):
    NAME = "name"
    SKU = "sku"

    @property
    def key_column(self) -> str:
        return "sku_key" if self is SearchField.SKU else "name_key"


@dataclass
class MatrixRecord:
    """One product (GTIN) with its price at every location that carries it."""
    gtin: str
    name: Optional[str] = None
    sku: Optional[str] = None
    name_key: str = ""
    sku_key: str = ""
    search_tokens: List[str] = field(default_factory=list)
    prices_by_location: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    has_mismatch: bool = False
    price_spread: float = 0
    category_name: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    priced_location_count: int = 0
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "MatrixRecord":
        prices = row.get("prices_by_location")
        tokens = row.get("search_tokens")
        return cls(
            gtin=str(row["gtin"]),
            name=row.get("name"),
            sku=row.get("sku"),
            name_key=row.get("name_key") or "",
            sku_key=row.get("sku_key") or "",
            search_tokens=list(tokens) if isinstance(tokens, list) else [],
            prices_by_location=prices if isinstance(prices, dict) else {},
            has_mismatch=bool(row.get("has_mismatch")),
            price_spread=row.get("price_spread") or 0,
            category_name=row.get("category_name"),
            min_price=row.get("min_price"),
            max_price=row.get("max_price"),
            priced_location_count=row.get("priced_location_count") or 0,
            updated_at=row.get("updated_at"),
        )


@dataclass
class LocationRecord:
    """A retail location (one column of the matrix)."""
    loc_key: str
    label: str
    merchant_id: Optional[str] = None
    merchant_name: Optional[str] = None


@dataclass
class LocationDirectory:
    """All known locations, sorted by label."""
    locations: List[str] = field(default_factory=list)
    meta: Dict[str, LocationRecord] = field(default_factory=dict)


@dataclass
class MatrixQuery:
    """A single matrix page request as received from the caller."""
    query_text: str = ""
    mismatch_only: bool = False
    missing_only: bool = False
    missing_target: Optional[str] = None
    missing_require_present_in: Optional[str] = None
    search_field: str = "name"
    page_size: Optional[int] = None
    cursor: Optional[str] = None


@dataclass(frozen=True)
class ScanPosition:
    """
    Resume point of an ordered scan.

    key is the value of the scan's order column on the last record; it is
    None for scans ordered by gtin alone.
    """
    gtin: str
    key: Any = None

    def as_start_after(self) -> Tuple[Any, ...]:
        if self.key is None:
            return (self.gtin,)
        return (self.key, self.gtin)


@dataclass
class ScanSpec:
    """Store-agnostic description of an ordered matrix scan."""
    mode: AccessMode
    order_by: str = "gtin"
    descending: bool = False
    range_start: Optional[Any] = None
    range_end: Optional[Any] = None
    where_equals: Dict[str, Any] = field(default_factory=dict)
    array_contains: Optional[Tuple[str, Any]] = None

    def position_of(self, record: MatrixRecord) -> ScanPosition:
        """Resume point just after record in this scan's order."""
        if self.order_by == "gtin":
            return ScanPosition(gtin=record.gtin)
        if self.order_by == "price_spread":
            return ScanPosition(gtin=record.gtin, key=float(record.price_spread or 0))
        return ScanPosition(gtin=record.gtin, key=str(getattr(record, self.order_by, "") or ""))


@dataclass
class MissingFilter:
    """Keep records priced somewhere but not at target (and, optionally, priced at require_present_in)."""
    target: str
    require_present_in: Optional[str] = None

    def matches(self, record: MatrixRecord) -> bool:
        prices = record.prices_by_location
        if not prices:
            return False
        if prices.get(self.target) is not None:
            return False
        if self.require_present_in and prices.get(self.require_present_in) is None:
            return False
        return True


@dataclass
class QueryPlan:
    spec: ScanSpec
    page_size: int
    missing_filter: Optional[MissingFilter] = None


@dataclass
class ScanResult:
    """Output of one scan: matched rows plus where the scan stopped."""
    rows: List[MatrixRecord] = field(default_factory=list)
    position: Optional[ScanPosition] = None
    exhausted: bool = True
    rounds: int = 0
    scanned: int = 0


@dataclass
class MatrixPage:
    rows: List[MatrixRecord]
    locations: List[str]
    locations_meta: Dict[str, LocationRecord]
    next_cursor: Optional[str] = None

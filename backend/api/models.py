"""
Pydantic request/response models for the API.
"""
from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional, Union


# ============== GTIN Inventory Matrix ==============

class PriceAtLocation(BaseModel):
    """
    Price and catalog linkage of one product at one location.

    Mirrored as stored: ids may be numeric and fields this model does not
    name are passed through.
    """
    model_config = ConfigDict(extra="allow")

    merchant_id: Optional[Union[str, int]] = None
    merchant_name: Optional[str] = None
    location_id: Optional[Union[str, int]] = None
    location_name: Optional[str] = None
    variation_id: Optional[Union[str, int]] = None
    item_id: Optional[Union[str, int]] = None
    price: Optional[Union[float, str]] = None
    currency: Optional[str] = None
    qty: Optional[Union[float, str]] = None
    state: Optional[str] = None
    calculated_at: Optional[str] = None
    updated_at: Optional[str] = None


class MatrixRow(BaseModel):
    """One GTIN row of the matrix."""
    gtin: str
    name: Optional[str] = None
    sku: Optional[str] = None
    name_key: str = ""
    sku_key: str = ""
    category_name: Optional[str] = None
    search_tokens: List[str] = []
    prices_by_location: Dict[str, Optional[PriceAtLocation]] = {}
    has_mismatch: bool = False
    price_spread: float = 0
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    priced_location_count: int = 0
    updated_at: Optional[str] = None


class LocationMeta(BaseModel):
    """Display metadata for a location column."""
    loc_key: str
    label: str
    merchant_id: Optional[str] = None
    merchant_name: Optional[str] = None


class LocationDirectoryResponse(BaseModel):
    """All known locations, in display order."""
    locations: List[str]
    locations_meta: Dict[str, LocationMeta]


class MatrixPageResponse(BaseModel):
    """One page of the matrix plus the cursor for the next one."""
    rows: List[MatrixRow]
    locations: List[str]
    locations_meta: Dict[str, LocationMeta]
    next_cursor: Optional[str] = None

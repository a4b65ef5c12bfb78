"""
Test configuration and fixtures for the matrix backend test suite.

Provides:
- In-memory SQLite test database (isolated per test)
- A clean location directory cache per test
- FastAPI TestClient fixture
- Factory functions for creating test data
"""
import json
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, List, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from backend.core.db.base import SCHEMA
from backend.core.gtin import compute_mismatch_metrics, make_search_key, make_search_tokens
from backend.core.matrix import clear_location_cache


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

def _create_test_db() -> sqlite3.Connection:
    """Create an in-memory SQLite database with the matrix schema."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA)
    return conn


@contextmanager
def _test_get_db(conn: sqlite3.Connection):
    """Replacement for get_db() that uses the shared test connection."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


@pytest.fixture()
def test_db():
    """Provide a fresh in-memory SQLite database for each test."""
    conn = _create_test_db()
    yield conn
    conn.close()


@pytest.fixture()
def patch_db(test_db):
    """
    Patch the get_db context manager across all db modules so that
    every database call uses the in-memory test database.
    """
    cm = lambda: _test_get_db(test_db)  # noqa: E731

    with (
        patch("backend.core.db.base.get_db", cm),
        patch("backend.core.db.matrix.get_db", cm),
        patch("backend.core.db.locations.get_db", cm),
    ):
        yield test_db


@pytest.fixture(autouse=True)
def fresh_location_cache():
    """The location directory is process-wide; never let it leak between tests."""
    clear_location_cache()
    yield
    clear_location_cache()


@pytest.fixture()
def client(patch_db):
    """
    Provide a FastAPI TestClient with the database patched.

    Skips schema creation on disk during lifespan startup.
    """
    from backend.api.main import app

    with patch("backend.api.main.init_db"):
        with TestClient(app) as c:
            yield c


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------

def price(
    amount: Optional[float],
    *,
    merchant_id: str = "MERCHANT_1",
    location_id: str = "LOC_1",
    variation_id: str = "VAR_1",
    item_id: str = "ITEM_1",
    currency: str = "USD",
) -> Dict[str, Any]:
    """Build one prices_by_location entry."""
    return {
        "merchant_id": merchant_id,
        "location_id": location_id,
        "variation_id": variation_id,
        "item_id": item_id,
        "price": amount,
        "currency": currency,
        "calculated_at": "2026-10-01T00:00:00Z",
    }


def create_matrix_record(
    db: sqlite3.Connection,
    *,
    gtin: str,
    name: str = "Test Item",
    sku: Optional[str] = None,
    prices: Optional[Dict[str, Dict[str, Any]]] = None,
    search_tokens: Optional[List[str]] = None,
    category_name: Optional[str] = None,
) -> str:
    """
    Insert a matrix record the way the build job would and return its gtin.

    name_key, sku_key, search_tokens and the mismatch fields are derived
    unless search_tokens is given explicitly.
    """
    prices = prices or {}
    metrics = compute_mismatch_metrics(prices)
    tokens = search_tokens if search_tokens is not None else make_search_tokens(name, sku)

    db.execute(
        """INSERT INTO gtin_inventory_matrix
           (gtin, name, sku, name_key, sku_key, category_name, search_tokens,
            prices_by_location, has_mismatch, price_spread, min_price, max_price,
            priced_location_count, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (gtin, name, sku, make_search_key(name), make_search_key(sku), category_name,
         json.dumps(tokens), json.dumps(prices),
         1 if metrics["has_mismatch"] else 0, metrics["price_spread"],
         metrics["min_price"], metrics["max_price"], metrics["priced_location_count"],
         "2026-10-01T00:00:00Z"),
    )
    db.commit()
    return gtin


def create_location(
    db: sqlite3.Connection,
    *,
    loc_key: str,
    location_name: Optional[str] = None,
    merchant_id: Optional[str] = None,
    merchant_name: Optional[str] = None,
) -> str:
    """Insert a location_index row and return its loc_key."""
    db.execute(
        """INSERT INTO location_index (loc_key, location_name, merchant_id, merchant_name)
           VALUES (?, ?, ?, ?)""",
        (loc_key, location_name, merchant_id, merchant_name),
    )
    db.commit()
    return loc_key

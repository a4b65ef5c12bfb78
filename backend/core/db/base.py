"""
Database base module - connection management and schema initialization.

The matrix store is a document-style table: scalar fields used for
ordering and filtering are real columns, nested data (prices_by_location,
search_tokens) is stored as JSON text and read with the JSON1 functions.
"""
import sqlite3
from pathlib import Path
from contextlib import contextmanager

from backend.core.config import settings

# Database location
DB_PATH = Path(settings.DB_PATH)

MATRIX_TABLE = "gtin_inventory_matrix"
LOCATION_TABLE = "location_index"

SCHEMA = f"""
    -- One document per canonical GTIN, rebuilt by the nightly matrix job
    CREATE TABLE IF NOT EXISTS {MATRIX_TABLE} (
        gtin TEXT PRIMARY KEY,
        name TEXT,
        sku TEXT,
        name_key TEXT NOT NULL DEFAULT '',
        sku_key TEXT NOT NULL DEFAULT '',
        category_name TEXT,
        search_tokens TEXT NOT NULL DEFAULT '[]',        -- JSON array
        prices_by_location TEXT NOT NULL DEFAULT '{{}}',  -- JSON object keyed by loc_key
        has_mismatch INTEGER NOT NULL DEFAULT 0,
        price_spread REAL NOT NULL DEFAULT 0,
        min_price REAL,
        max_price REAL,
        priced_location_count INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT
    );

    -- Known retail locations (columns of the matrix)
    CREATE TABLE IF NOT EXISTS {LOCATION_TABLE} (
        loc_key TEXT PRIMARY KEY,
        location_name TEXT,
        merchant_id TEXT,
        merchant_name TEXT
    );

    -- Indexes backing each access mode's ordered scan
    CREATE INDEX IF NOT EXISTS idx_matrix_name_key ON {MATRIX_TABLE}(name_key, gtin);
    CREATE INDEX IF NOT EXISTS idx_matrix_sku_key ON {MATRIX_TABLE}(sku_key, gtin);
    CREATE INDEX IF NOT EXISTS idx_matrix_spread ON {MATRIX_TABLE}(price_spread DESC, gtin);
    CREATE INDEX IF NOT EXISTS idx_matrix_mismatch ON {MATRIX_TABLE}(has_mismatch, gtin);
"""


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Initialize database tables."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        # WAL lets the query engine read while the matrix job writes
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        conn.executescript(SCHEMA)

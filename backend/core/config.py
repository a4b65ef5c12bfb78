"""
Centralized configuration for the matrix backend.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from functools import lru_cache


class Settings:
    """Application settings loaded from environment variables."""

    # CORS - comma-separated list of allowed origins
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:8080,http://localhost:5173,http://127.0.0.1:8080"
    ).split(",")

    # Database
    DB_PATH: str = os.environ.get("MATRIX_DB_PATH", "data/matrix.db")

    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Paging
    MATRIX_DEFAULT_PAGE_SIZE: int = int(os.environ.get("MATRIX_DEFAULT_PAGE_SIZE", "50"))
    MATRIX_MAX_PAGE_SIZE: int = int(os.environ.get("MATRIX_MAX_PAGE_SIZE", "250"))

    # "Missing at location" scan. Worst case per request is
    # MISSING_SCAN_HARD_CAP * MISSING_SCAN_MAX_BATCH records read.
    MISSING_SCAN_HARD_CAP: int = int(os.environ.get("MISSING_SCAN_HARD_CAP", "8"))
    MISSING_SCAN_FETCH_MULTIPLIER: int = int(os.environ.get("MISSING_SCAN_FETCH_MULTIPLIER", "4"))
    MISSING_SCAN_MAX_BATCH: int = int(os.environ.get("MISSING_SCAN_MAX_BATCH", "250"))

    # Location directory cache
    LOCATION_CACHE_TTL_SECONDS: float = float(os.environ.get("LOCATION_CACHE_TTL_SECONDS", "300"))

    # Per-request deadline for the scan loop
    MATRIX_QUERY_TIMEOUT_SECONDS: float = float(os.environ.get("MATRIX_QUERY_TIMEOUT_SECONDS", "20"))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()

"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .matrix import router as matrix_router

__all__ = [
    "matrix_router",
]

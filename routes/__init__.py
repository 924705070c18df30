"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.allocation import router as allocation_router
from routes.reservations import router as reservations_router

__all__ = [
    "allocation_router",
    "reservations_router",
]

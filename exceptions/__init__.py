"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    ValidationError,
    ConflictError,

    # Ingestion
    MissingColumnsError,
    BatchTooLargeError,

    # Allocation
    OverAllocationError,
    ReservationError,
)

__all__ = [
    # Base
    "AppError",
    "ValidationError",
    "ConflictError",

    # Ingestion
    "MissingColumnsError",
    "BatchTooLargeError",

    # Allocation
    "OverAllocationError",
    "ReservationError",
]

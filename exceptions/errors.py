"""
Custom exception classes for the application.

The allocation core never raises on malformed rows (they coerce to zero);
these errors cover structural problems and API boundary checks.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "MISSING_COLUMNS")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Request conflicts with current state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


# ===================
# INGESTION ERRORS
# ===================

class MissingColumnsError(ValidationError):
    """Tabular feed is missing required columns."""

    def __init__(self, feed: str, missing: list[str]):
        super().__init__(
            code="MISSING_COLUMNS",
            message=f"{feed} feed is missing columns: {', '.join(missing)}",
            details={"feed": feed, "missing": missing}
        )


class BatchTooLargeError(ValidationError):
    """Too many order lines in one request."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            code="BATCH_TOO_LARGE",
            message=f"Batch of {size} order lines exceeds limit of {limit}",
            details={"size": size, "limit": limit}
        )


# ===================
# ALLOCATION ERRORS
# ===================

class OverAllocationError(AppError):
    """Consumption would exceed on-hand stock at a location."""

    def __init__(self, canonical_key: str, location: str, requested: int, available: int):
        super().__init__(
            code="OVER_ALLOCATION",
            message=f"Cannot take {requested} of {canonical_key} at {location}: {available} available",
            status_code=500,
            details={
                "canonical_key": canonical_key,
                "location": location,
                "requested": requested,
                "available": available,
            }
        )


class ReservationError(ConflictError):
    """Shipment reservation adjustment cannot be satisfied."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="RESERVATION_FAILED",
            message=message,
            details=details
        )

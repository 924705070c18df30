"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, RecordSchema
from models.allocation import (
    OrderLine,
    CatalogEntry,
    StockRecord,
    PurchaseLedgerEntry,
    MatchField,
    MatchStage,
    BarcodeMatch,
    ResolutionMiss,
    LocationAssignment,
    AllocationResult,
    FeasibilityReport,
    AllocationPassResult,
    ReservationLine,
    AllocationPassRequest,
    AllocationPassResponse,
    IngestionIssueResponse,
    ExportRequest,
    FeasibilityResponse,
    LedgerRequest,
    NetPurchasesResponse,
    ReservationAdjustRequest,
    ReservationResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "RecordSchema",

    # Input records
    "OrderLine",
    "CatalogEntry",
    "StockRecord",
    "PurchaseLedgerEntry",

    # Resolution
    "MatchField",
    "MatchStage",
    "BarcodeMatch",
    "ResolutionMiss",

    # Results
    "LocationAssignment",
    "AllocationResult",
    "FeasibilityReport",
    "AllocationPassResult",
    "ReservationLine",

    # API
    "AllocationPassRequest",
    "AllocationPassResponse",
    "IngestionIssueResponse",
    "ExportRequest",
    "FeasibilityResponse",
    "LedgerRequest",
    "NetPurchasesResponse",
    "ReservationAdjustRequest",
    "ReservationResponse",
]

"""
Allocation schemas: the records one allocation pass consumes and the
results it hands to the table view and the export document.

Inputs (order lines, catalog, stock, purchase ledger) are validated once at
ingestion. Numeric cells that cannot be read become 0 instead of failing.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from models.base import BaseSchema, RecordSchema
from utils.coercion import coerce_date, coerce_quantity
from utils.text_utils import clean_text


# ===================
# INPUT RECORDS
# ===================

class OrderLine(RecordSchema):
    """One pending order line from the order feed."""

    id: str = Field(..., min_length=1, description="Order line identifier")
    canonical_key: Optional[str] = Field(
        None, description="Barcode, if already known"
    )
    raw_item_name: str = Field(default="", description="Item name as sold")
    raw_option_name: str = Field(default="", description="Option text as sold")
    raw_vendor_code: str = Field(default="", description="Seller's vendor code")
    quantity: int = Field(..., ge=1, description="Units ordered")
    due_date: Optional[date] = Field(None, description="Ship-by date; None sorts last")

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> str:
        return clean_text(v)

    @field_validator("canonical_key", mode="before")
    @classmethod
    def blank_key_is_none(cls, v: Any) -> Optional[str]:
        text = clean_text(v)
        return text or None

    @field_validator("raw_item_name", "raw_option_name", "raw_vendor_code", mode="before")
    @classmethod
    def clean_names(cls, v: Any) -> str:
        return clean_text(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def readable_date(cls, v: Any) -> Optional[date]:
        return coerce_date(v)

    @property
    def is_resolved(self) -> bool:
        return self.canonical_key is not None


class CatalogEntry(RecordSchema):
    """Known association between sold names and a barcode."""

    raw_item_name: str = ""
    raw_option_name: str = ""
    raw_vendor_code: str = ""
    canonical_key: str = Field(..., min_length=1)

    @field_validator(
        "raw_item_name", "raw_option_name", "raw_vendor_code", "canonical_key",
        mode="before",
    )
    @classmethod
    def clean_names(cls, v: Any) -> str:
        return clean_text(v)


class StockRecord(RecordSchema):
    """On-hand quantity of one barcode at one location (point-in-time)."""

    canonical_key: str = Field(..., min_length=1)
    location: str = Field(default="", description="Bin / shelf / warehouse code")
    on_hand_quantity: int = Field(default=0, ge=0)
    id: Optional[str] = Field(None, description="Source row id, if any")

    @field_validator("canonical_key", "location", mode="before")
    @classmethod
    def clean_names(cls, v: Any) -> str:
        return clean_text(v)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_text(cls, v: Any) -> Optional[str]:
        text = clean_text(v)
        return text or None

    @field_validator("on_hand_quantity", mode="before")
    @classmethod
    def readable_quantity(cls, v: Any) -> int:
        return coerce_quantity(v)

    @property
    def stock_ref(self) -> str:
        """Identity of the source row (row id, else location)."""
        return self.id or self.location


class PurchaseLedgerEntry(RecordSchema):
    """One ordering/cancellation event from the purchase ledger."""

    canonical_key: str = Field(..., min_length=1)
    ordered_quantity: int = Field(default=0, ge=0)
    cancelled_quantity: int = Field(default=0, ge=0)

    @field_validator("canonical_key", mode="before")
    @classmethod
    def clean_key(cls, v: Any) -> str:
        return clean_text(v)

    @field_validator("ordered_quantity", "cancelled_quantity", mode="before")
    @classmethod
    def readable_quantity(cls, v: Any) -> int:
        return coerce_quantity(v)


# ===================
# RESOLUTION
# ===================

class MatchField(str, Enum):
    """Which order field found the catalog entry."""
    ITEM_NAME = "item_name"
    VENDOR_CODE = "vendor_code"


class MatchStage(str, Enum):
    """Option spelling that matched."""
    EXACT = "exact"
    FIRST_TOKEN_SWAP = "first_token_swap"
    LAST_TOKEN_SWAP = "last_token_swap"


class BarcodeMatch(RecordSchema):
    """Successful resolution of one order line."""

    order_id: str
    canonical_key: str
    matched_on: MatchField
    stage: MatchStage


class ResolutionMiss(RecordSchema):
    """Order line with no barcode; reported to the operator, never fatal."""

    order_id: str
    raw_item_name: str = ""
    raw_option_name: str = ""
    raw_vendor_code: str = ""


# ===================
# RESULTS
# ===================

class LocationAssignment(RecordSchema):
    """Units drawn from one location for one order line."""

    location: str
    quantity: int = Field(..., ge=1)


class AllocationResult(RecordSchema):
    """Outcome for one order line."""

    order_id: str
    canonical_key: Optional[str] = None
    quantity: int = Field(..., ge=1, description="Units requested")
    is_shippable: bool = False
    assignments: List[LocationAssignment] = Field(default_factory=list)

    @property
    def allocated_quantity(self) -> int:
        return sum(a.quantity for a in self.assignments)


class FeasibilityReport(RecordSchema):
    """Which lines can ship in full today, and what is short."""

    shippable_ids: List[str] = Field(
        default_factory=list, description="Shippable order ids in priority order"
    )
    shortfall_per_key: Dict[str, int] = Field(
        default_factory=dict, description="Requested minus on-hand, positive only"
    )
    unresolved_ids: List[str] = Field(default_factory=list)

    @property
    def shippable_count(self) -> int:
        return len(self.shippable_ids)

    @property
    def unresolved_count(self) -> int:
        return len(self.unresolved_ids)

    def is_shippable(self, order_id: str) -> bool:
        return order_id in self.shippable_ids


class AllocationPassResult(RecordSchema):
    """
    Complete output of one allocation pass.

    The table view and the export document both render from this object;
    neither recomputes allocation.
    """

    generated_at: datetime
    results: List[AllocationResult] = Field(
        default_factory=list, description="One per order line, input order"
    )
    feasibility: FeasibilityReport
    matches: List[BarcodeMatch] = Field(default_factory=list)
    misses: List[ResolutionMiss] = Field(default_factory=list)
    net_purchases: Dict[str, int] = Field(
        default_factory=dict, description="Outstanding purchase quantity per barcode"
    )

    def result_for(self, order_id: str) -> Optional[AllocationResult]:
        for result in self.results:
            if result.order_id == order_id:
                return result
        return None


# ===================
# SHIPMENT RESERVATIONS
# ===================

class ReservationLine(RecordSchema):
    """Units of one stock row set aside for outbound shipment."""

    stock_ref: str
    canonical_key: str
    location: str = ""
    quantity: int = Field(..., ge=1)


# ===================
# API SCHEMAS
# ===================

class AllocationPassRequest(BaseSchema):
    """Raw feeds for one allocation pass (rows as exported by the feeds)."""

    orders: List[Dict[str, Any]] = Field(default_factory=list)
    catalog: List[Dict[str, Any]] = Field(default_factory=list)
    stock: List[Dict[str, Any]] = Field(default_factory=list)
    ledger: List[Dict[str, Any]] = Field(default_factory=list)


class IngestionIssueResponse(BaseSchema):
    """Row that was skipped during ingestion."""

    feed: str
    row: int
    field: str
    error: str


class AllocationPassResponse(BaseSchema):
    """Pass result plus the flattened rows the table view renders."""

    result: AllocationPassResult
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    issues: List[IngestionIssueResponse] = Field(default_factory=list)


class FeasibilityResponse(BaseSchema):
    """Summary widget payload."""

    shippable_count: int
    shippable_ids: List[str]
    shortfall_per_key: Dict[str, int]
    unresolved_count: int


class ExportRequest(BaseSchema):
    """Pass result to render, exactly as returned by the pass endpoint."""

    result: AllocationPassResult


class LedgerRequest(BaseSchema):
    ledger: List[Dict[str, Any]] = Field(default_factory=list)


class NetPurchasesResponse(BaseSchema):
    net_purchases: Dict[str, int]


class ReservationAdjustRequest(BaseSchema):
    """Adjust one barcode's outbound reservation."""

    canonical_key: str = Field(..., min_length=1)
    reserved: List[ReservationLine] = Field(default_factory=list)
    stock: List[Dict[str, Any]] = Field(default_factory=list)
    amount: int = Field(..., ge=0, description="Units to add, or the new total")


class ReservationResponse(BaseSchema):
    reserved: List[ReservationLine]
    total: int

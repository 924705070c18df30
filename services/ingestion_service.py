"""
Ingestion Service — raw feed rows to typed allocation records.

Order, catalog, stock and ledger feeds arrive as loosely-typed rows (API
JSON, spreadsheet exports read with pandas). Each row is validated once
here:
- numeric cells that cannot be read become 0
- unreadable due dates become None (sorted last)
- rows that cannot become a record at all are skipped and reported as
  IngestionIssue; the rest of the feed is kept

Column names follow the record fields; the feed names used by the
marketplace exports (barcode, item_name, option_name, stock, ...) are
accepted as aliases.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Iterable, List, Mapping, Tuple, TypeVar

import pandas as pd
import structlog
from pydantic import ValidationError as PydanticValidationError

from exceptions import MissingColumnsError
from models.allocation import CatalogEntry, OrderLine, PurchaseLedgerEntry, StockRecord
from utils.coercion import coerce_date, coerce_quantity

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# field → accepted column names, first present wins
ORDER_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "order_id"),
    "canonical_key": ("canonical_key", "barcode"),
    "raw_item_name": ("raw_item_name", "item_name"),
    "raw_option_name": ("raw_option_name", "option_name"),
    "raw_vendor_code": ("raw_vendor_code", "vendor_code"),
    "quantity": ("quantity", "qty"),
    "due_date": ("due_date", "ship_by"),
}
CATALOG_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "raw_item_name": ("raw_item_name", "item_name"),
    "raw_option_name": ("raw_option_name", "option_name"),
    "raw_vendor_code": ("raw_vendor_code", "vendor_code"),
    "canonical_key": ("canonical_key", "barcode"),
}
STOCK_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "id": ("id",),
    "canonical_key": ("canonical_key", "barcode"),
    "location": ("location",),
    "on_hand_quantity": ("on_hand_quantity", "stock", "quantity"),
}
LEDGER_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "canonical_key": ("canonical_key", "barcode"),
    "ordered_quantity": ("ordered_quantity", "ordered"),
    "cancelled_quantity": ("cancelled_quantity", "cancelled"),
}

REQUIRED_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "orders": ("id", "quantity"),
    "catalog": ("canonical_key",),
    "stock": ("canonical_key",),
    "ledger": ("canonical_key",),
}


@dataclass
class IngestionIssue:
    """Single row skipped during ingestion."""
    feed: str
    row: int
    field: str
    error: str

    def to_dict(self) -> dict:
        return {
            "feed": self.feed,
            "row": self.row,
            "field": self.field,
            "error": self.error,
        }


@dataclass
class IngestionResult(Generic[T]):
    """Typed records from one feed plus the rows that were skipped."""
    records: List[T] = field(default_factory=list)
    issues: List[IngestionIssue] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no rows were skipped."""
        return len(self.issues) == 0


def _pick(row: Mapping[str, Any], aliases: Tuple[str, ...]) -> Any:
    for name in aliases:
        if name in row:
            return row[name]
    return None


def _normalize(row: Mapping[str, Any], columns: Dict[str, Tuple[str, ...]]) -> Dict[str, Any]:
    return {name: _pick(row, aliases) for name, aliases in columns.items()}


def _first_error_field(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if errors and errors[0].get("loc"):
        return str(errors[0]["loc"][0])
    return "row"


def _ingest(
    feed: str,
    rows: Iterable[Mapping[str, Any]],
    columns: Dict[str, Tuple[str, ...]],
    build: Callable[[Dict[str, Any]], T],
) -> IngestionResult[T]:
    result: IngestionResult[T] = IngestionResult()

    for row_num, row in enumerate(rows, start=1):
        values = _normalize(row, columns)
        try:
            result.records.append(build(values))
        except PydanticValidationError as e:
            field_name = _first_error_field(e)
            result.issues.append(IngestionIssue(
                feed=feed,
                row=row_num,
                field=field_name,
                error=e.errors()[0].get("msg", str(e)),
            ))

    if result.issues:
        logger.warning(
            "ingestion_rows_skipped",
            feed=feed,
            kept=len(result.records),
            skipped=len(result.issues),
        )
    else:
        logger.debug("ingestion_complete", feed=feed, kept=len(result.records))

    return result


def _order_line(values: Dict[str, Any]) -> OrderLine:
    values["quantity"] = coerce_quantity(values["quantity"])
    values["due_date"] = coerce_date(values["due_date"])
    return OrderLine(**values)


def order_lines_from_rows(rows: Iterable[Mapping[str, Any]]) -> IngestionResult[OrderLine]:
    """
    Convert order feed rows to OrderLines.

    Rows without an id, or whose quantity reads as 0, are skipped.
    """
    return _ingest("orders", rows, ORDER_COLUMNS, _order_line)


def catalog_from_rows(rows: Iterable[Mapping[str, Any]]) -> IngestionResult[CatalogEntry]:
    """Convert catalog rows; rows without a barcode are skipped."""
    return _ingest("catalog", rows, CATALOG_COLUMNS, lambda v: CatalogEntry(**v))


def stock_from_rows(rows: Iterable[Mapping[str, Any]]) -> IngestionResult[StockRecord]:
    """Convert stock rows; unreadable quantities are 0, rows without a barcode are skipped."""
    return _ingest("stock", rows, STOCK_COLUMNS, lambda v: StockRecord(**v))


def ledger_from_rows(rows: Iterable[Mapping[str, Any]]) -> IngestionResult[PurchaseLedgerEntry]:
    """Convert purchase ledger rows; unreadable quantities are 0."""
    return _ingest("ledger", rows, LEDGER_COLUMNS, lambda v: PurchaseLedgerEntry(**v))


# ===================
# DATAFRAME FEEDS
# ===================

def frame_rows(df: pd.DataFrame, feed: str) -> List[Dict[str, Any]]:
    """
    Rows of a feed DataFrame as dicts, NaN cells as None.

    Raises:
        MissingColumnsError: If a required field has none of its column names
    """
    columns = {
        "orders": ORDER_COLUMNS,
        "catalog": CATALOG_COLUMNS,
        "stock": STOCK_COLUMNS,
        "ledger": LEDGER_COLUMNS,
    }[feed]
    present = set(str(c) for c in df.columns)
    missing = [
        name for name in REQUIRED_COLUMNS[feed]
        if not any(alias in present for alias in columns[name])
    ]
    if missing:
        logger.error("feed_columns_missing", feed=feed, missing=missing)
        raise MissingColumnsError(feed, missing)

    clean = df.astype(object).where(pd.notna(df), None)
    clean.columns = [str(c) for c in clean.columns]
    return clean.to_dict(orient="records")


def order_lines_from_frame(df: pd.DataFrame) -> IngestionResult[OrderLine]:
    return order_lines_from_rows(frame_rows(df, "orders"))


def catalog_from_frame(df: pd.DataFrame) -> IngestionResult[CatalogEntry]:
    return catalog_from_rows(frame_rows(df, "catalog"))


def stock_from_frame(df: pd.DataFrame) -> IngestionResult[StockRecord]:
    return stock_from_rows(frame_rows(df, "stock"))


def ledger_from_frame(df: pd.DataFrame) -> IngestionResult[PurchaseLedgerEntry]:
    return ledger_from_rows(frame_rows(df, "ledger"))


def all_issues(*results: IngestionResult) -> List[IngestionIssue]:
    """Issues from several feeds, in feed order."""
    issues: List[IngestionIssue] = []
    for result in results:
        issues.extend(result.issues)
    return issues

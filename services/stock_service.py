"""
Stock snapshot — per-barcode totals and per-location breakdown.

The snapshot is read-only. Allocation passes record what they take in an
AllocationState and never touch these quantities.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Union

import structlog

from models.allocation import StockRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LocationStock:
    """On-hand units of one barcode at one location."""
    location: str
    on_hand_quantity: int


class StockSnapshot:
    """
    Point-in-time stock grouped by barcode.

    Rows repeating the same (barcode, location) are summed. Location lists
    are ordered by on-hand descending; equal quantities keep the order in
    which the location first appeared.
    """

    def __init__(self, records: Iterable[StockRecord]):
        quantities: Dict[str, Dict[str, int]] = defaultdict(dict)
        for record in records:
            by_location = quantities[record.canonical_key]
            by_location[record.location] = (
                by_location.get(record.location, 0) + record.on_hand_quantity
            )

        self._locations: Dict[str, List[LocationStock]] = {
            key: sorted(
                (LocationStock(location, qty) for location, qty in by_location.items()),
                key=lambda stock: stock.on_hand_quantity,
                reverse=True,
            )
            for key, by_location in quantities.items()
        }
        self._on_hand: Dict[str, Dict[str, int]] = {
            key: dict(by_location) for key, by_location in quantities.items()
        }
        self._totals: Dict[str, int] = {
            key: sum(stock.on_hand_quantity for stock in locations)
            for key, locations in self._locations.items()
        }

    @classmethod
    def of(cls, stock: Union["StockSnapshot", Iterable[StockRecord]]) -> "StockSnapshot":
        """Accept either a snapshot or raw records."""
        if isinstance(stock, StockSnapshot):
            return stock
        return cls(stock)

    def locations(self, canonical_key: str) -> List[LocationStock]:
        """Locations holding the barcode, most stock first."""
        return list(self._locations.get(canonical_key, []))

    def on_hand(self, canonical_key: str, location: str) -> int:
        return self._on_hand.get(canonical_key, {}).get(location, 0)

    def total(self, canonical_key: str) -> int:
        return self._totals.get(canonical_key, 0)

    def totals(self) -> Mapping[str, int]:
        return dict(self._totals)


def stock_totals(records: Iterable[StockRecord]) -> Dict[str, int]:
    """Total on-hand units per barcode across all locations."""
    return dict(StockSnapshot(records).totals())

"""
Purchase Netting Service — outstanding purchase quantity per barcode.

net = max(0, sum(ordered) - sum(cancelled)) over every ledger entry for the
barcode. Cells that cannot be read as numbers count as 0; the aggregate
never fails because of one bad row.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

import structlog

from models.allocation import PurchaseLedgerEntry
from utils.coercion import coerce_quantity
from utils.text_utils import clean_text

logger = structlog.get_logger(__name__)

LedgerRow = Union[PurchaseLedgerEntry, Mapping[str, Any]]


def _entry_values(entry: LedgerRow) -> Tuple[str, int, int]:
    """Read (barcode, ordered, cancelled) from a typed entry or a raw row."""
    if isinstance(entry, PurchaseLedgerEntry):
        return entry.canonical_key, entry.ordered_quantity, entry.cancelled_quantity

    key = clean_text(entry.get("canonical_key", entry.get("barcode")))
    ordered = coerce_quantity(entry.get("ordered_quantity", entry.get("ordered")))
    cancelled = coerce_quantity(entry.get("cancelled_quantity", entry.get("cancelled")))
    return key, ordered, cancelled


class PurchaseNettingService:
    """Nets ordered against cancelled purchase quantities."""

    def totals(self, ledger: Iterable[LedgerRow]) -> Dict[str, Tuple[int, int]]:
        """
        Sum ordered and cancelled quantities per barcode.

        Returns:
            {barcode: (total_ordered, total_cancelled)}, rows without a
            barcode are ignored
        """
        ordered_by_key: Dict[str, int] = defaultdict(int)
        cancelled_by_key: Dict[str, int] = defaultdict(int)

        for entry in ledger:
            key, ordered, cancelled = _entry_values(entry)
            if not key:
                continue
            ordered_by_key[key] += ordered
            cancelled_by_key[key] += cancelled

        return {
            key: (ordered_by_key[key], cancelled_by_key[key])
            for key in ordered_by_key
        }

    def net_quantity(self, canonical_key: str, ledger: Iterable[LedgerRow]) -> int:
        """
        Outstanding purchase quantity for one barcode.

        Example:
            [{ordered: 10, cancelled: 3}, {ordered: 2, cancelled: 0}] → 9
        """
        ordered, cancelled = self.totals(
            entry for entry in ledger if _entry_values(entry)[0] == canonical_key
        ).get(canonical_key, (0, 0))
        return max(0, ordered - cancelled)

    def net_quantities(self, ledger: Iterable[LedgerRow]) -> Dict[str, int]:
        """Outstanding purchase quantity for every barcode in the ledger."""
        totals = self.totals(ledger)
        net = {
            key: max(0, ordered - cancelled)
            for key, (ordered, cancelled) in sorted(totals.items())
        }

        logger.debug(
            "purchase_ledger_netted",
            keys=len(net),
            outstanding=sum(net.values()),
        )

        return net


# Singleton
_purchase_netting_service: Optional[PurchaseNettingService] = None


def get_purchase_netting_service() -> PurchaseNettingService:
    """Get the singleton purchase netting service instance."""
    global _purchase_netting_service
    if _purchase_netting_service is None:
        _purchase_netting_service = PurchaseNettingService()
    return _purchase_netting_service

"""
Apportion Service — which locations each order line draws from.

Algorithm, per line in priority_order():
1. LIST the barcode's locations, most on-hand first (fewest locations
   touched per order)
2. WALK the list: available = on_hand - consumed; skip if <= 0;
   take min(available, still needed); record it in the AllocationState
3. STOP when the line is covered or locations run out

A line with no barcode, or no stock left, gets an empty list. Lines that
cannot be fully covered keep their partial assignments (display only).

The AllocationState is explicit and scoped to one pass. Anything that needs
to agree with an apportionment (the feasibility verdict, the export) must
read from the same state or from the result it produced, never from a
second, separately initialized state.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from exceptions import OverAllocationError
from models.allocation import LocationAssignment, OrderLine, StockRecord
from services.feasibility_service import priority_order
from services.stock_service import StockSnapshot

logger = structlog.get_logger(__name__)

StockLike = Union[StockSnapshot, Iterable[StockRecord]]


class AllocationState:
    """
    Units consumed per (barcode, location) during one pass.

    Invariant: consumed <= on_hand for every pair. consume() refuses
    anything that would break it.
    """

    def __init__(self, snapshot: StockSnapshot):
        self.snapshot = snapshot
        self._consumed: Dict[str, Dict[str, int]] = {}

    @classmethod
    def fresh(cls, stock: StockLike) -> "AllocationState":
        """New state with every counter at zero."""
        return cls(StockSnapshot.of(stock))

    def consumed(self, canonical_key: str, location: str) -> int:
        return self._consumed.get(canonical_key, {}).get(location, 0)

    def available(self, canonical_key: str, location: str) -> int:
        return self.snapshot.on_hand(canonical_key, location) - self.consumed(canonical_key, location)

    def available_total(self, canonical_key: str) -> int:
        return sum(
            max(0, stock.on_hand_quantity - self.consumed(canonical_key, stock.location))
            for stock in self.snapshot.locations(canonical_key)
        )

    def consume(self, canonical_key: str, location: str, quantity: int) -> None:
        available = self.available(canonical_key, location)
        if quantity <= 0 or quantity > available:
            raise OverAllocationError(canonical_key, location, quantity, available)
        by_location = self._consumed.setdefault(canonical_key, {})
        by_location[location] = by_location.get(location, 0) + quantity

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        """Copy of the consumed counters."""
        return {key: dict(by_location) for key, by_location in self._consumed.items()}


class ApportionService:
    """Splits order lines across stock locations."""

    def apportion_line(
        self,
        line: OrderLine,
        state: AllocationState,
        allow_partial: bool = True,
    ) -> List[LocationAssignment]:
        """
        Draw one line's units from the state's locations.

        Args:
            line: Order line
            state: Pass state; updated in place
            allow_partial: When False, take nothing unless the whole
                quantity is available

        Returns:
            Assignments in draw order (may be partial or empty)
        """
        key = line.canonical_key
        if key is None:
            return []

        if not allow_partial and state.available_total(key) < line.quantity:
            return []

        needed = line.quantity
        assignments: List[LocationAssignment] = []

        for stock in state.snapshot.locations(key):
            if needed == 0:
                break
            available = state.available(key, stock.location)
            if available <= 0:
                continue
            used = min(available, needed)
            state.consume(key, stock.location, used)
            assignments.append(LocationAssignment(location=stock.location, quantity=used))
            needed -= used

        return assignments

    def apportion(
        self,
        order_lines: Sequence[OrderLine],
        stock_by_location: StockLike,
        state: Optional[AllocationState] = None,
    ) -> List[Tuple[OrderLine, List[LocationAssignment]]]:
        """
        Apportion a batch in priority order, partial draws allowed.

        Args:
            order_lines: Order lines (any order; sorted here)
            stock_by_location: Stock records or a StockSnapshot
            state: State to draw from; a fresh one is created when omitted

        Returns:
            (line, assignments) pairs in priority order, one per input line
            (order ids may repeat)
        """
        if state is None:
            state = AllocationState.fresh(stock_by_location)

        result: List[Tuple[OrderLine, List[LocationAssignment]]] = [
            (line, self.apportion_line(line, state))
            for line in priority_order(order_lines)
        ]

        logger.debug(
            "batch_apportioned",
            lines=len(order_lines),
            with_assignments=sum(1 for _, assigned in result if assigned),
        )

        return result


# Singleton
_apportion_service: Optional[ApportionService] = None


def get_apportion_service() -> ApportionService:
    """Get the singleton apportion service instance."""
    global _apportion_service
    if _apportion_service is None:
        _apportion_service = ApportionService()
    return _apportion_service

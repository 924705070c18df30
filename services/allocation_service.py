"""
Allocation Service — one complete allocation pass over a fixed snapshot.

Both consumers (table view, export document) render the same
AllocationPassResult; neither recomputes allocation.

Algorithm:
1. RESOLVE barcodes for lines that lack one (misses are reported, not fatal)
2. ORDER lines with priority_order()
3. CREATE a fresh AllocationState for this pass
4. RESERVE in priority order: a line whose whole quantity is still
   available draws it and is shippable; otherwise it takes nothing
5. DISPLAY in the same order: non-shippable lines draw what is left
   (partial) from the same state
6. REPORT shippable ids, shortfall per barcode, unresolved lines
7. NET outstanding purchase quantities when a ledger is given

Step 4 makes the shippable verdict identical to
FeasibilityService.classify() over the snapshot totals; the verdict is
read off the apportionment itself, so the two can never disagree.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from models.allocation import (
    AllocationPassResult,
    AllocationResult,
    CatalogEntry,
    FeasibilityReport,
    LocationAssignment,
    OrderLine,
    PurchaseLedgerEntry,
    StockRecord,
)
from services.apportion_service import AllocationState, get_apportion_service
from services.barcode_resolver_service import get_barcode_resolver_service
from services.feasibility_service import (
    priority_order,
    priority_positions,
    shortfall_per_key,
)
from services.purchase_netting_service import get_purchase_netting_service
from services.stock_service import StockSnapshot

logger = structlog.get_logger(__name__)


class AllocationService:
    """Runs allocation passes."""

    def __init__(self):
        self.resolver = get_barcode_resolver_service()
        self.apportioner = get_apportion_service()
        self.netting = get_purchase_netting_service()

    def run_pass(
        self,
        orders: Sequence[OrderLine],
        catalog: Sequence[CatalogEntry],
        stock: Iterable[StockRecord],
        ledger: Optional[Iterable[PurchaseLedgerEntry]] = None,
    ) -> AllocationPassResult:
        """
        Run one allocation pass.

        Args:
            orders: Pending order lines (input order is kept in the result)
            catalog: Name → barcode associations
            stock: Stock snapshot, one record per (barcode, location)
            ledger: Purchase ledger, optional (informational figure only)

        Returns:
            AllocationPassResult with one AllocationResult per order line
        """
        logger.info("allocation_pass_started", orders=len(orders))

        resolution = self.resolver.resolve_batch(orders, catalog)
        lines = resolution.lines
        snapshot = StockSnapshot.of(stock)
        state = AllocationState(snapshot)
        # Lines are tracked by input position; order ids may repeat in a feed
        ordered = [
            pos for pos in priority_positions(lines) if lines[pos].is_resolved
        ]
        assignments: Dict[int, List[LocationAssignment]] = {}
        shippable: List[int] = []

        for pos in ordered:
            taken = self.apportioner.apportion_line(lines[pos], state, allow_partial=False)
            if taken:
                assignments[pos] = taken
                shippable.append(pos)

        for pos in ordered:
            if pos not in assignments:
                assignments[pos] = self.apportioner.apportion_line(lines[pos], state)

        shippable_set = set(shippable)
        results = [
            AllocationResult(
                order_id=line.id,
                canonical_key=line.canonical_key,
                quantity=line.quantity,
                is_shippable=pos in shippable_set,
                assignments=assignments.get(pos, []),
            )
            for pos, line in enumerate(lines)
        ]

        feasibility = FeasibilityReport(
            shippable_ids=[lines[pos].id for pos in shippable],
            shortfall_per_key=shortfall_per_key(lines, snapshot.totals()),
            unresolved_ids=[
                line.id for line in priority_order(lines) if not line.is_resolved
            ],
        )

        net_purchases = self.netting.net_quantities(ledger) if ledger is not None else {}

        logger.info(
            "allocation_pass_complete",
            orders=len(lines),
            shippable=feasibility.shippable_count,
            unresolved=feasibility.unresolved_count,
            short_keys=len(feasibility.shortfall_per_key),
            partial=sum(
                1 for r in results
                if not r.is_shippable and r.assignments
            ),
        )

        return AllocationPassResult(
            generated_at=datetime.now(),
            results=results,
            feasibility=feasibility,
            matches=resolution.matches,
            misses=resolution.misses,
            net_purchases=net_purchases,
        )


# Singleton
_allocation_service: Optional[AllocationService] = None


def get_allocation_service() -> AllocationService:
    """Get the singleton allocation service instance."""
    global _allocation_service
    if _allocation_service is None:
        _allocation_service = AllocationService()
    return _allocation_service

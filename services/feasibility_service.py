"""
Feasibility Service — which order lines can ship in full today.

Policy: earliest-due orders get first claim on scarce stock, and partial
shipments are never created automatically.

Algorithm:
1. ORDER lines by due date ascending; undated lines last; ties keep input
   order (stable sort)
2. SKIP lines without a barcode (never shippable)
3. For each line: remaining = on_hand[barcode] - used[barcode]
   - remaining >= quantity → shippable, used[barcode] += quantity
   - otherwise → not shippable, nothing reserved
4. SHORTFALL per barcode = total requested - on hand (positive only)

priority_order() is the single ordering function for an allocation pass.
The location apportioner sorts with it too.
"""

from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from models.allocation import FeasibilityReport, OrderLine
from utils.coercion import coerce_quantity

logger = structlog.get_logger(__name__)


def _due_key(line: OrderLine) -> Tuple[bool, date]:
    return (line.due_date is None, line.due_date or date.min)


def priority_positions(lines: Sequence[OrderLine]) -> List[int]:
    """Input positions in allocation priority: due date ascending, undated last, stable."""
    return sorted(range(len(lines)), key=lambda i: _due_key(lines[i]))


def priority_order(lines: Sequence[OrderLine]) -> List[OrderLine]:
    """Lines in allocation priority."""
    return [lines[i] for i in priority_positions(lines)]


def shortfall_per_key(
    lines: Sequence[OrderLine],
    stock_totals: Mapping[str, Any],
) -> Dict[str, int]:
    """
    Requested minus on-hand per barcode, for reporting.

    Only barcodes that are actually short appear. Unresolved lines are not
    counted.
    """
    requested: Dict[str, int] = defaultdict(int)
    for line in lines:
        if line.canonical_key is not None:
            requested[line.canonical_key] += line.quantity

    shortfall = {}
    for key in sorted(requested):
        short = requested[key] - coerce_quantity(stock_totals.get(key))
        if short > 0:
            shortfall[key] = short
    return shortfall


class FeasibilityService:
    """Classifies order lines as shippable or not from per-barcode totals."""

    def classify(
        self,
        order_lines: Sequence[OrderLine],
        stock_totals: Mapping[str, Any],
    ) -> FeasibilityReport:
        """
        Greedy, date-priority, whole-order-only classification.

        Args:
            order_lines: Resolved (or partly resolved) order lines
            stock_totals: On-hand units per barcode; unreadable values count as 0

        Returns:
            FeasibilityReport with shippable ids in priority order
        """
        used: Dict[str, int] = defaultdict(int)
        shippable: List[str] = []
        unresolved: List[str] = []

        for line in priority_order(order_lines):
            key = line.canonical_key
            if key is None:
                unresolved.append(line.id)
                continue

            remaining = coerce_quantity(stock_totals.get(key)) - used[key]
            if remaining >= line.quantity:
                shippable.append(line.id)
                used[key] += line.quantity

        report = FeasibilityReport(
            shippable_ids=shippable,
            shortfall_per_key=shortfall_per_key(order_lines, stock_totals),
            unresolved_ids=unresolved,
        )

        logger.info(
            "feasibility_classified",
            lines=len(order_lines),
            shippable=report.shippable_count,
            unresolved=report.unresolved_count,
            short_keys=len(report.shortfall_per_key),
        )

        return report


# Singleton
_feasibility_service: Optional[FeasibilityService] = None


def get_feasibility_service() -> FeasibilityService:
    """Get the singleton feasibility service instance."""
    global _feasibility_service
    if _feasibility_service is None:
        _feasibility_service = FeasibilityService()
    return _feasibility_service

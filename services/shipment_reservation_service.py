"""
Shipment Reservation Service — adjust units set aside for outbound shipment.

A reservation is an ordered list of ReservationLines, each drawn from one
stock row of a single barcode. Adjustments:

- increase: draw more from stock rows not already in the reservation
- decrease: shrink to a target, trimming the most recent lines first (LIFO)
- replace: rebuild from scratch in stock-row order
- update: pick the right adjustment for a new total

All operations return a new list; nothing is mutated. Failures raise
ReservationError with the amount that could have been satisfied.
"""

from typing import List, Optional, Sequence

import structlog

from exceptions import ReservationError
from models.allocation import ReservationLine, StockRecord

logger = structlog.get_logger(__name__)


def reserved_total(reserved: Sequence[ReservationLine]) -> int:
    return sum(line.quantity for line in reserved)


class ShipmentReservationService:
    """Pure reservation adjustments for one barcode."""

    def _draw(
        self,
        canonical_key: str,
        rows: Sequence[StockRecord],
        amount: int,
    ) -> List[ReservationLine]:
        """Take amount units from rows in order; raise if rows run out."""
        remaining = amount
        drawn: List[ReservationLine] = []

        for row in rows:
            if remaining <= 0:
                break
            if row.on_hand_quantity <= 0:
                continue
            take = min(remaining, row.on_hand_quantity)
            drawn.append(ReservationLine(
                stock_ref=row.stock_ref,
                canonical_key=canonical_key,
                location=row.location,
                quantity=take,
            ))
            remaining -= take

        if remaining > 0:
            achievable = amount - remaining
            raise ReservationError(
                message=f"Insufficient stock: only {achievable} of {amount} available",
                details={
                    "canonical_key": canonical_key,
                    "requested": amount,
                    "achievable": achievable,
                },
            )

        return drawn

    def increase(
        self,
        canonical_key: str,
        reserved: Sequence[ReservationLine],
        stock: Sequence[StockRecord],
        amount: int,
    ) -> List[ReservationLine]:
        """
        Reserve amount more units.

        Stock rows already referenced by the reservation are not reused.

        Raises:
            ReservationError: No unreserved rows, or not enough units in them
        """
        if amount <= 0:
            return list(reserved)

        taken_refs = {line.stock_ref for line in reserved}
        free_rows = [
            row for row in stock
            if row.canonical_key == canonical_key and row.stock_ref not in taken_refs
        ]
        if not free_rows:
            raise ReservationError(
                message="No unreserved stock available",
                details={"canonical_key": canonical_key, "requested": amount},
            )

        drawn = self._draw(canonical_key, free_rows, amount)

        logger.info(
            "reservation_increased",
            canonical_key=canonical_key,
            amount=amount,
            rows=len(drawn),
        )

        return list(reserved) + drawn

    def decrease(
        self,
        reserved: Sequence[ReservationLine],
        target: int,
    ) -> List[ReservationLine]:
        """
        Shrink the reservation to target units, newest lines first.

        Lines trimmed to zero are dropped; at most one line is shortened.

        Raises:
            ReservationError: Empty reservation, or target not below current total
        """
        if not reserved:
            raise ReservationError(message="No reservation to decrease")

        current = reserved_total(reserved)
        if target >= current:
            raise ReservationError(
                message="Target must be below the reserved total",
                details={"current": current, "target": target},
            )

        to_remove = current - max(target, 0)
        kept = list(reserved)

        while to_remove > 0 and kept:
            last = kept[-1]
            if last.quantity <= to_remove:
                kept.pop()
                to_remove -= last.quantity
            else:
                kept[-1] = last.model_copy(update={"quantity": last.quantity - to_remove})
                to_remove = 0

        logger.info(
            "reservation_decreased",
            current=current,
            target=target,
            rows=len(kept),
        )

        return kept

    def replace(
        self,
        canonical_key: str,
        stock: Sequence[StockRecord],
        target: int,
    ) -> List[ReservationLine]:
        """
        Rebuild the reservation with exactly target units.

        Raises:
            ReservationError: No stock for the barcode, or not enough of it
        """
        if target <= 0:
            return []

        rows = [row for row in stock if row.canonical_key == canonical_key]
        if not rows:
            raise ReservationError(
                message="No stock for this barcode",
                details={"canonical_key": canonical_key, "requested": target},
            )

        drawn = self._draw(canonical_key, rows, target)

        logger.info(
            "reservation_replaced",
            canonical_key=canonical_key,
            target=target,
            rows=len(drawn),
        )

        return drawn

    def update(
        self,
        canonical_key: str,
        reserved: Sequence[ReservationLine],
        stock: Sequence[StockRecord],
        new_amount: int,
    ) -> List[ReservationLine]:
        """Set the reservation to new_amount units (unchanged, cleared, or rebuilt)."""
        if new_amount == reserved_total(reserved):
            return list(reserved)
        if new_amount <= 0:
            return []
        return self.replace(canonical_key, stock, new_amount)


# Singleton
_shipment_reservation_service: Optional[ShipmentReservationService] = None


def get_shipment_reservation_service() -> ShipmentReservationService:
    """Get the singleton shipment reservation service instance."""
    global _shipment_reservation_service
    if _shipment_reservation_service is None:
        _shipment_reservation_service = ShipmentReservationService()
    return _shipment_reservation_service

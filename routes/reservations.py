"""
Shipment reservation API routes.

Stateless: the caller posts the current reservation and the barcode's stock
rows, and gets the adjusted reservation back.
"""

from fastapi import APIRouter
import structlog

from models.allocation import ReservationAdjustRequest, ReservationResponse
from routes.allocation import handle_error
from services.ingestion_service import stock_from_rows
from services.shipment_reservation_service import (
    get_shipment_reservation_service,
    reserved_total,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


def _response(reserved) -> ReservationResponse:
    return ReservationResponse(reserved=reserved, total=reserved_total(reserved))


@router.post("/increase", response_model=ReservationResponse)
async def increase_reservation(request: ReservationAdjustRequest):
    """Reserve `amount` more units from unreserved stock rows."""
    try:
        stock = stock_from_rows(request.stock).records
        reserved = get_shipment_reservation_service().increase(
            request.canonical_key, request.reserved, stock, request.amount
        )
        return _response(reserved)
    except Exception as e:
        return handle_error(e)


@router.post("/decrease", response_model=ReservationResponse)
async def decrease_reservation(request: ReservationAdjustRequest):
    """Shrink the reservation to `amount` units (newest lines trimmed first)."""
    try:
        reserved = get_shipment_reservation_service().decrease(
            request.reserved, request.amount
        )
        return _response(reserved)
    except Exception as e:
        return handle_error(e)


@router.post("/update", response_model=ReservationResponse)
async def update_reservation(request: ReservationAdjustRequest):
    """Set the reservation to exactly `amount` units."""
    try:
        stock = stock_from_rows(request.stock).records
        reserved = get_shipment_reservation_service().update(
            request.canonical_key, request.reserved, stock, request.amount
        )
        return _response(reserved)
    except Exception as e:
        return handle_error(e)

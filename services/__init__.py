"""
Business logic services.

Each service handles one domain area.
"""

from services.barcode_resolver_service import (
    BarcodeResolverService,
    get_barcode_resolver_service,
    CatalogIndex,
    ResolutionReport,
)
from services.purchase_netting_service import PurchaseNettingService, get_purchase_netting_service
from services.stock_service import StockSnapshot, LocationStock, stock_totals
from services.feasibility_service import (
    FeasibilityService,
    get_feasibility_service,
    priority_order,
    priority_positions,
    shortfall_per_key,
)
from services.apportion_service import ApportionService, get_apportion_service, AllocationState
from services.allocation_service import AllocationService, get_allocation_service
from services.shipment_reservation_service import (
    ShipmentReservationService,
    get_shipment_reservation_service,
    reserved_total,
)
from services.export_service import ExportService, get_export_service

__all__ = [
    "BarcodeResolverService",
    "get_barcode_resolver_service",
    "CatalogIndex",
    "ResolutionReport",
    "PurchaseNettingService",
    "get_purchase_netting_service",
    "StockSnapshot",
    "LocationStock",
    "stock_totals",
    "FeasibilityService",
    "get_feasibility_service",
    "priority_order",
    "priority_positions",
    "shortfall_per_key",
    "ApportionService",
    "get_apportion_service",
    "AllocationState",
    "AllocationService",
    "get_allocation_service",
    "ShipmentReservationService",
    "get_shipment_reservation_service",
    "reserved_total",
    "ExportService",
    "get_export_service",
]

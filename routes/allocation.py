"""
Allocation API routes.

Feeds are posted as raw rows (as exported by the order, catalog, stock and
ledger sources). Rows are validated once on the way in; skipped rows are
returned as issues alongside the result.
"""

from typing import List, Tuple

from fastapi import APIRouter
from fastapi.responses import JSONResponse, StreamingResponse
import structlog

from config import settings
from exceptions import AppError, BatchTooLargeError
from models.allocation import (
    AllocationPassRequest,
    AllocationPassResponse,
    AllocationPassResult,
    ExportRequest,
    FeasibilityResponse,
    IngestionIssueResponse,
    LedgerRequest,
    NetPurchasesResponse,
)
from services.allocation_service import get_allocation_service
from services.export_service import (
    build_allocation_rows,
    export_filename,
    get_export_service,
)
from services.ingestion_service import (
    IngestionIssue,
    all_issues,
    catalog_from_rows,
    ledger_from_rows,
    order_lines_from_rows,
    stock_from_rows,
)
from services.purchase_netting_service import get_purchase_netting_service

logger = structlog.get_logger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# HELPERS
# ===================

def _run_pass(request: AllocationPassRequest) -> Tuple[AllocationPassResult, List[IngestionIssue]]:
    """Ingest the posted feeds and run one allocation pass."""
    if len(request.orders) > settings.max_batch_lines:
        raise BatchTooLargeError(len(request.orders), settings.max_batch_lines)

    orders = order_lines_from_rows(request.orders)
    catalog = catalog_from_rows(request.catalog)
    stock = stock_from_rows(request.stock)
    ledger = ledger_from_rows(request.ledger)

    result = get_allocation_service().run_pass(
        orders.records,
        catalog.records,
        stock.records,
        ledger.records,
    )
    return result, all_issues(orders, catalog, stock, ledger)


# ===================
# ROUTES
# ===================

@router.post("/pass", response_model=AllocationPassResponse)
async def run_allocation_pass(request: AllocationPassRequest):
    """
    Run one allocation pass.

    Returns the per-line results plus the flattened rows the table view
    renders. Post the returned result to the export endpoint to get the
    same rows as a workbook.
    """
    try:
        result, issues = _run_pass(request)
        return AllocationPassResponse(
            result=result,
            rows=build_allocation_rows(result),
            issues=[IngestionIssueResponse(**issue.to_dict()) for issue in issues],
        )
    except Exception as e:
        return handle_error(e)


@router.post("/feasibility", response_model=FeasibilityResponse)
async def get_feasibility(request: AllocationPassRequest):
    """Shippable count and shortfall per barcode (summary widgets)."""
    try:
        result, _ = _run_pass(request)
        feasibility = result.feasibility
        return FeasibilityResponse(
            shippable_count=feasibility.shippable_count,
            shippable_ids=feasibility.shippable_ids,
            shortfall_per_key=feasibility.shortfall_per_key,
            unresolved_count=feasibility.unresolved_count,
        )
    except Exception as e:
        return handle_error(e)


@router.post("/export")
async def export_allocation(request: ExportRequest):
    """
    Download the allocation workbook (.xlsx) for a pass result.

    Renders the posted result as is; allocation is not run again.
    """
    try:
        result = request.result
        output = get_export_service().generate_allocation_excel(result)
        filename = export_filename(result)
        return StreamingResponse(
            output,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except Exception as e:
        return handle_error(e)


@router.post("/purchases/net", response_model=NetPurchasesResponse)
async def net_purchases(request: LedgerRequest):
    """Outstanding purchase quantity per barcode."""
    try:
        ledger = ledger_from_rows(request.ledger)
        net = get_purchase_netting_service().net_quantities(ledger.records)
        return NetPurchasesResponse(net_purchases=net)
    except Exception as e:
        return handle_error(e)

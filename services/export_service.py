"""
Export service — allocation table rows and the allocation Excel document.

Both the table view (build_allocation_rows) and the exported workbook render
from one AllocationPassResult. Nothing here re-runs allocation, so the
screen and the document always show the same bins and quantities.
"""

from collections import defaultdict
from io import BytesIO
from typing import Dict, List, Optional, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font, Border, Side, PatternFill
import structlog

from config import settings
from models.allocation import AllocationPassResult

logger = structlog.get_logger(__name__)

ALLOCATION_COLUMNS = [
    ("order_id", "Order", 18),
    ("canonical_key", "Barcode", 20),
    ("requested", "Requested", 12),
    ("status", "Status", 14),
    ("location", "Location", 16),
    ("allocated", "Allocated", 12),
]

PICKING_COLUMNS = [
    ("location", "Location", 16),
    ("canonical_key", "Barcode", 20),
    ("quantity", "Quantity", 12),
]

STATUS_SHIPPABLE = "SHIPPABLE"
STATUS_PARTIAL = "PARTIAL"
STATUS_SHORT = "SHORT"
STATUS_UNRESOLVED = "UNRESOLVED"


def line_status(is_shippable: bool, canonical_key: Optional[str], allocated: int) -> str:
    """Status label shown in the table and the document."""
    if canonical_key is None:
        return STATUS_UNRESOLVED
    if is_shippable:
        return STATUS_SHIPPABLE
    if allocated > 0:
        return STATUS_PARTIAL
    return STATUS_SHORT


def build_allocation_rows(pass_result: AllocationPassResult) -> List[dict]:
    """
    Flatten a pass result to one row per (order line, location).

    Lines without assignments still get one row (location "", allocated 0).
    Rows follow the order lines' input order.
    """
    rows = []
    for result in pass_result.results:
        status = line_status(
            result.is_shippable, result.canonical_key, result.allocated_quantity
        )
        base = {
            "order_id": result.order_id,
            "canonical_key": result.canonical_key or "",
            "requested": result.quantity,
            "status": status,
        }
        if not result.assignments:
            rows.append({**base, "location": "", "allocated": 0})
            continue
        for assignment in result.assignments:
            rows.append({
                **base,
                "location": assignment.location,
                "allocated": assignment.quantity,
            })
    return rows


def build_picking_rows(pass_result: AllocationPassResult) -> List[dict]:
    """
    Units to pick per (location, barcode) for shippable lines only.

    Sorted by location, then barcode.
    """
    totals: Dict[Tuple[str, str], int] = defaultdict(int)
    for result in pass_result.results:
        if not result.is_shippable:
            continue
        for assignment in result.assignments:
            totals[(assignment.location, result.canonical_key)] += assignment.quantity

    return [
        {"location": location, "canonical_key": key, "quantity": quantity}
        for (location, key), quantity in sorted(totals.items())
    ]


def export_filename(pass_result: AllocationPassResult) -> str:
    """e.g. allocation_20240105_093000.xlsx"""
    stamp = pass_result.generated_at.strftime("%Y%m%d_%H%M%S")
    return f"{settings.export_filename_prefix}_{stamp}.xlsx"


class ExportService:
    """Service for generating allocation export files."""

    def generate_allocation_excel(
        self,
        pass_result: AllocationPassResult,
    ) -> BytesIO:
        """
        Generate the allocation workbook.

        Creates:
        - Allocation sheet: one row per (order line, location)
        - Picking sheet: shippable units per location and barcode
        - Summary sheet: counts, shortfalls, unresolved lines

        Args:
            pass_result: Result of one allocation pass

        Returns:
            BytesIO containing the Excel file
        """
        rows = build_allocation_rows(pass_result)
        picking = build_picking_rows(pass_result)
        feasibility = pass_result.feasibility

        logger.info(
            "generating_allocation_excel",
            lines=len(pass_result.results),
            rows=len(rows),
            shippable=feasibility.shippable_count,
        )

        wb = Workbook()

        # Styles
        bold_font = Font(bold=True)
        title_font = Font(bold=True, size=14)
        thin_border = Border(
            bottom=Side(style="thin", color="000000")
        )
        header_fill = PatternFill(start_color="E0E8FF", end_color="E0E8FF", fill_type="solid")
        short_fill = PatternFill(start_color="FFE0E0", end_color="FFE0E0", fill_type="solid")
        partial_fill = PatternFill(start_color="FFF0E0", end_color="FFF0E0", fill_type="solid")

        # ===== ALLOCATION SHEET =====
        ws = wb.active
        ws.title = settings.export_sheet_title

        for col, (_, header, width) in enumerate(ALLOCATION_COLUMNS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = bold_font
            cell.fill = header_fill
            cell.border = thin_border
            ws.column_dimensions[cell.column_letter].width = width

        for row_num, row in enumerate(rows, start=2):
            for col, (key, _, _) in enumerate(ALLOCATION_COLUMNS, start=1):
                cell = ws.cell(row=row_num, column=col, value=row[key])
                if row["status"] == STATUS_PARTIAL:
                    cell.fill = partial_fill
                elif row["status"] in (STATUS_SHORT, STATUS_UNRESOLVED):
                    cell.fill = short_fill

        ws.freeze_panes = "A2"

        # ===== PICKING SHEET =====
        ws_pick = wb.create_sheet("Picking")

        for col, (_, header, width) in enumerate(PICKING_COLUMNS, start=1):
            cell = ws_pick.cell(row=1, column=col, value=header)
            cell.font = bold_font
            cell.fill = header_fill
            cell.border = thin_border
            ws_pick.column_dimensions[cell.column_letter].width = width

        for row_num, row in enumerate(picking, start=2):
            for col, (key, _, _) in enumerate(PICKING_COLUMNS, start=1):
                ws_pick.cell(row=row_num, column=col, value=row[key])

        # ===== SUMMARY SHEET =====
        ws_summary = wb.create_sheet("Summary")
        ws_summary.column_dimensions["A"].width = 30
        ws_summary.column_dimensions["B"].width = 20

        row = 1
        ws_summary[f"A{row}"] = "ALLOCATION SUMMARY"
        ws_summary[f"A{row}"].font = title_font
        row += 2

        ws_summary[f"A{row}"] = "Generated:"
        ws_summary[f"B{row}"] = pass_result.generated_at.strftime("%Y-%m-%d %H:%M")
        row += 1
        ws_summary[f"A{row}"] = "Order lines:"
        ws_summary[f"B{row}"] = len(pass_result.results)
        row += 1
        ws_summary[f"A{row}"] = "Shippable:"
        ws_summary[f"B{row}"] = feasibility.shippable_count
        row += 1
        ws_summary[f"A{row}"] = "Unresolved:"
        ws_summary[f"B{row}"] = feasibility.unresolved_count
        row += 2

        ws_summary[f"A{row}"] = "SHORTFALL"
        ws_summary[f"A{row}"].font = bold_font
        ws_summary[f"A{row}"].fill = header_fill
        ws_summary[f"B{row}"].fill = header_fill
        row += 1
        for key, short in feasibility.shortfall_per_key.items():
            ws_summary[f"A{row}"] = key
            ws_summary[f"B{row}"] = short
            row += 1
        row += 1

        if pass_result.misses:
            ws_summary[f"A{row}"] = "UNRESOLVED LINES"
            ws_summary[f"A{row}"].font = bold_font
            ws_summary[f"A{row}"].fill = short_fill
            ws_summary[f"B{row}"].fill = short_fill
            row += 1
            for miss in pass_result.misses:
                ws_summary[f"A{row}"] = miss.order_id
                ws_summary[f"B{row}"] = f"{miss.raw_item_name} / {miss.raw_option_name}"
                row += 1

        logger.info(
            "allocation_excel_generated",
            rows=len(rows),
            picking_rows=len(picking),
            short_keys=len(feasibility.shortfall_per_key),
        )

        # Save to BytesIO
        output = BytesIO()
        wb.save(output)
        output.seek(0)

        return output


# Singleton instance
_export_service: Optional[ExportService] = None


def get_export_service() -> ExportService:
    """Get or create ExportService instance."""
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service

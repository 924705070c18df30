"""
Tests for export_service — allocation rows and Excel generation.
"""

from datetime import datetime

import pytest
from openpyxl import load_workbook

from config import settings
from services.allocation_service import AllocationService
from services.export_service import (
    STATUS_PARTIAL,
    STATUS_SHIPPABLE,
    STATUS_SHORT,
    STATUS_UNRESOLVED,
    ExportService,
    build_allocation_rows,
    build_picking_rows,
    export_filename,
    get_export_service,
    line_status,
)
from tests.factories import OrderLineFactory, StockRecordFactory


@pytest.fixture
def pass_result():
    """Line 1 shippable from two bins, line 2 partial, line 3 short, line 4 unresolved."""
    orders = [
        OrderLineFactory.create(id="1", canonical_key="B1", quantity=8, due_date="2024-01-01"),
        OrderLineFactory.create(id="2", canonical_key="B1", quantity=5, due_date="2024-01-02"),
        OrderLineFactory.create(id="3", canonical_key="B2", quantity=1),
        OrderLineFactory.create(id="4", raw_item_name="Socks", raw_option_name="White"),
    ]
    stock = [
        StockRecordFactory.create(canonical_key="B1", location="A", on_hand_quantity=6),
        StockRecordFactory.create(canonical_key="B1", location="B", on_hand_quantity=4),
    ]
    return AllocationService().run_pass(orders, [], stock)


class TestLineStatus:

    def test_statuses(self):
        assert line_status(True, "B1", 3) == STATUS_SHIPPABLE
        assert line_status(False, "B1", 2) == STATUS_PARTIAL
        assert line_status(False, "B1", 0) == STATUS_SHORT
        assert line_status(False, None, 0) == STATUS_UNRESOLVED


class TestBuildRows:

    def test_one_row_per_assignment(self, pass_result):
        rows = build_allocation_rows(pass_result)

        assert [(r["order_id"], r["location"], r["allocated"], r["status"]) for r in rows] == [
            ("1", "A", 6, STATUS_SHIPPABLE),
            ("1", "B", 2, STATUS_SHIPPABLE),
            ("2", "B", 2, STATUS_PARTIAL),
            ("3", "", 0, STATUS_SHORT),
            ("4", "", 0, STATUS_UNRESOLVED),
        ]

    def test_rows_match_pass_result(self, pass_result):
        rows = build_allocation_rows(pass_result)

        for result in pass_result.results:
            allocated = sum(r["allocated"] for r in rows if r["order_id"] == result.order_id)
            assert allocated == result.allocated_quantity

    def test_picking_rows_shippable_only(self, pass_result):
        assert build_picking_rows(pass_result) == [
            {"location": "A", "canonical_key": "B1", "quantity": 6},
            {"location": "B", "canonical_key": "B1", "quantity": 2},
        ]

    def test_filename(self, pass_result):
        stamped = pass_result.model_copy(update={"generated_at": datetime(2024, 1, 5, 9, 30)})

        assert export_filename(stamped) == f"{settings.export_filename_prefix}_20240105_093000.xlsx"


class TestGenerateAllocationExcel:

    def test_sheets(self, pass_result):
        output = ExportService().generate_allocation_excel(pass_result)

        wb = load_workbook(output)
        assert wb.sheetnames == [settings.export_sheet_title, "Picking", "Summary"]

    def test_allocation_sheet_matches_rows(self, pass_result):
        output = ExportService().generate_allocation_excel(pass_result)

        ws = load_workbook(output)[settings.export_sheet_title]
        assert [c.value for c in ws[1]] == [
            "Order", "Barcode", "Requested", "Status", "Location", "Allocated"
        ]
        sheet_rows = [
            (row[0], row[4] or "", row[5])
            for row in ws.iter_rows(min_row=2, values_only=True)
        ]
        expected = [
            (r["order_id"], r["location"], r["allocated"])
            for r in build_allocation_rows(pass_result)
        ]
        assert sheet_rows == expected

    def test_summary(self, pass_result):
        output = ExportService().generate_allocation_excel(pass_result)

        ws = load_workbook(output)["Summary"]
        labels = {ws.cell(row=r, column=1).value: ws.cell(row=r, column=2).value for r in range(1, ws.max_row + 1)}
        assert ws["A1"].value == "ALLOCATION SUMMARY"
        assert labels["Order lines:"] == 4
        assert labels["Shippable:"] == 1
        assert labels["Unresolved:"] == 1
        assert labels["B1"] == 3
        assert labels["B2"] == 1
        assert labels["4"] == "Socks / White"

    def test_empty_pass(self):
        result = AllocationService().run_pass([], [], [])

        output = ExportService().generate_allocation_excel(result)

        ws = load_workbook(output)[settings.export_sheet_title]
        assert ws.max_row == 1


def test_singleton(reset_services):
    assert get_export_service() is get_export_service()

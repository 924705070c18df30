"""
Unit tests for PurchaseNettingService.
"""

import pytest

from services.purchase_netting_service import (
    PurchaseNettingService,
    get_purchase_netting_service,
)
from tests.factories import LedgerEntryFactory


@pytest.fixture
def service():
    return PurchaseNettingService()


class TestNetQuantity:

    def test_sums_ordered_minus_cancelled(self, service):
        ledger = [
            LedgerEntryFactory.create(canonical_key="B1", ordered_quantity=10, cancelled_quantity=3),
            LedgerEntryFactory.create(canonical_key="B1", ordered_quantity=2, cancelled_quantity=0),
        ]

        assert service.net_quantity("B1", ledger) == 9

    def test_other_keys_ignored(self, service):
        ledger = [
            LedgerEntryFactory.create(canonical_key="B1", ordered_quantity=4),
            LedgerEntryFactory.create(canonical_key="B2", ordered_quantity=100),
        ]

        assert service.net_quantity("B1", ledger) == 4

    def test_floors_at_zero(self, service):
        ledger = [LedgerEntryFactory.create(canonical_key="B1", ordered_quantity=2, cancelled_quantity=5)]

        assert service.net_quantity("B1", ledger) == 0

    def test_unknown_key_is_zero(self, service):
        assert service.net_quantity("NOPE", []) == 0

    def test_unreadable_cells_count_as_zero(self, service):
        ledger = [
            {"canonical_key": "B1", "ordered_quantity": "abc", "cancelled_quantity": None},
            {"canonical_key": "B1", "ordered_quantity": "6", "cancelled_quantity": "n/a"},
        ]

        assert service.net_quantity("B1", ledger) == 6

    def test_raw_rows_with_feed_column_names(self, service):
        ledger = [{"barcode": "B1", "ordered": "1,000", "cancelled": 250}]

        assert service.net_quantity("B1", ledger) == 750


class TestNetQuantities:

    def test_every_key_sorted(self, service):
        ledger = [
            LedgerEntryFactory.create(canonical_key="B2", ordered_quantity=5, cancelled_quantity=1),
            LedgerEntryFactory.create(canonical_key="B1", ordered_quantity=3, cancelled_quantity=3),
        ]

        net = service.net_quantities(ledger)

        assert list(net) == ["B1", "B2"]
        assert net == {"B1": 0, "B2": 4}

    def test_rows_without_key_ignored(self, service):
        ledger = [{"canonical_key": "", "ordered_quantity": 10}]

        assert service.net_quantities(ledger) == {}

    def test_totals(self, service):
        ledger = [
            LedgerEntryFactory.create(canonical_key="B1", ordered_quantity=10, cancelled_quantity=3),
            LedgerEntryFactory.create(canonical_key="B1", ordered_quantity=2),
        ]

        assert service.totals(ledger) == {"B1": (12, 3)}


def test_singleton():
    assert get_purchase_netting_service() is get_purchase_netting_service()

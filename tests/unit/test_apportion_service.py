"""
Unit tests for ApportionService and AllocationState.

Tests cover location order, partial display draws, the no-double-allocation
invariant and determinism across fresh states.
"""

import pytest

from exceptions import OverAllocationError
from models.allocation import LocationAssignment
from services.apportion_service import (
    AllocationState,
    ApportionService,
    get_apportion_service,
)
from services.stock_service import StockSnapshot
from tests.factories import OrderLineFactory, StockRecordFactory


@pytest.fixture
def service():
    return ApportionService()


def _line(id, key="B1", quantity=1, due=None):
    return OrderLineFactory.create(id=id, canonical_key=key, quantity=quantity, due_date=due)


def _stock(*rows):
    return [
        StockRecordFactory.create(canonical_key=key, location=location, on_hand_quantity=qty)
        for key, location, qty in rows
    ]


# ===================
# STOCK SNAPSHOT
# ===================

class TestStockSnapshot:

    def test_locations_most_stock_first(self):
        snapshot = StockSnapshot(_stock(("B1", "A", 2), ("B1", "B", 9), ("B1", "C", 5)))

        assert [s.location for s in snapshot.locations("B1")] == ["B", "C", "A"]

    def test_equal_quantities_keep_first_appearance(self):
        snapshot = StockSnapshot(_stock(("B1", "Z", 4), ("B1", "A", 4)))

        assert [s.location for s in snapshot.locations("B1")] == ["Z", "A"]

    def test_duplicate_location_rows_summed(self):
        snapshot = StockSnapshot(_stock(("B1", "A", 2), ("B1", "A", 3)))

        assert snapshot.on_hand("B1", "A") == 5
        assert snapshot.total("B1") == 5

    def test_on_hand_by_location(self):
        snapshot = StockSnapshot(_stock(("B1", "A", 2), ("B1", "B", 9), ("B2", "A", 4)))

        assert snapshot.on_hand("B1", "A") == 2
        assert snapshot.on_hand("B1", "B") == 9
        assert snapshot.on_hand("B2", "A") == 4
        assert snapshot.on_hand("B2", "B") == 0

    def test_unknown_key(self):
        snapshot = StockSnapshot([])

        assert snapshot.locations("B1") == []
        assert snapshot.total("B1") == 0
        assert snapshot.on_hand("B1", "A") == 0


# ===================
# ALLOCATION STATE
# ===================

class TestAllocationState:

    def test_consume_tracks_units(self):
        state = AllocationState.fresh(_stock(("B1", "A", 5)))

        state.consume("B1", "A", 3)

        assert state.consumed("B1", "A") == 3
        assert state.available("B1", "A") == 2
        assert state.as_dict() == {"B1": {"A": 3}}

    def test_consume_beyond_on_hand_raises(self):
        state = AllocationState.fresh(_stock(("B1", "A", 5)))
        state.consume("B1", "A", 4)

        with pytest.raises(OverAllocationError) as exc_info:
            state.consume("B1", "A", 2)

        assert exc_info.value.details["available"] == 1
        assert state.consumed("B1", "A") == 4

    def test_consume_zero_raises(self):
        state = AllocationState.fresh(_stock(("B1", "A", 5)))

        with pytest.raises(OverAllocationError):
            state.consume("B1", "A", 0)

    def test_available_total(self):
        state = AllocationState.fresh(_stock(("B1", "A", 5), ("B1", "B", 2)))
        state.consume("B1", "A", 5)

        assert state.available_total("B1") == 2

    def test_fresh_accepts_snapshot(self):
        snapshot = StockSnapshot(_stock(("B1", "A", 5)))

        assert AllocationState.fresh(snapshot).snapshot is snapshot


# ===================
# APPORTION
# ===================

class TestApportion:

    def test_partial_display_draw(self, service):
        lines = [
            _line("1", quantity=5, due="2024-01-01"),
            _line("2", quantity=5, due="2024-01-02"),
        ]

        result = service.apportion(lines, _stock(("B1", "A", 7)))

        assert result[0][1] == [LocationAssignment(location="A", quantity=5)]
        assert result[1][1] == [LocationAssignment(location="A", quantity=2)]

    def test_largest_location_first(self, service):
        result = service.apportion(
            [_line("1", quantity=8)],
            _stock(("B1", "A", 3), ("B1", "B", 6)),
        )

        assert result[0][1] == [
            LocationAssignment(location="B", quantity=6),
            LocationAssignment(location="A", quantity=2),
        ]

    def test_single_location_when_it_covers(self, service):
        result = service.apportion(
            [_line("1", quantity=4)],
            _stock(("B1", "A", 3), ("B1", "B", 6)),
        )

        assert result[0][1] == [LocationAssignment(location="B", quantity=4)]

    def test_exhausted_stock_gives_empty_list(self, service):
        lines = [_line("1", quantity=3), _line("2", quantity=1)]

        result = service.apportion(lines, _stock(("B1", "A", 3)))

        assert result[1][1] == []

    def test_unresolved_line_gives_empty_list(self, service):
        result = service.apportion([_line("u", key=None)], _stock(("B1", "A", 3)))

        assert result[0][1] == []

    def test_lines_in_priority_order(self, service):
        lines = [_line("undated"), _line("dated", due="2024-01-01")]

        result = service.apportion(lines, _stock(("B1", "A", 5)))

        assert [line.id for line, _ in result] == ["dated", "undated"]

    def test_repeated_ids_keep_every_line(self, service):
        stock = _stock(("B1", "A", 10))
        state = AllocationState.fresh(stock)
        lines = [_line("X", quantity=3), _line("X", quantity=3)]

        result = service.apportion(lines, stock, state=state)

        assert len(result) == 2
        assigned = sum(a.quantity for _, assignments in result for a in assignments)
        assert assigned == state.consumed("B1", "A") == 6

    def test_never_exceeds_on_hand(self, service):
        stock = _stock(("B1", "A", 4), ("B1", "B", 3), ("B2", "A", 2))
        lines = [
            _line(str(i), key=key, quantity=qty)
            for i, (key, qty) in enumerate([("B1", 3), ("B1", 3), ("B2", 5), ("B1", 3)])
        ]
        state = AllocationState.fresh(stock)

        service.apportion(lines, stock, state=state)

        snapshot = StockSnapshot(stock)
        for key, by_location in state.as_dict().items():
            for location, used in by_location.items():
                assert used <= snapshot.on_hand(key, location)

    def test_deterministic_with_fresh_states(self, service):
        stock = _stock(("B1", "A", 4), ("B1", "B", 4))
        lines = OrderLineFactory.create_batch(4, canonical_key="B1", quantity=3)

        assert service.apportion(lines, stock) == service.apportion(lines, stock)

    def test_shared_state_carries_consumption(self, service):
        stock = _stock(("B1", "A", 5))
        state = AllocationState.fresh(stock)

        service.apportion([_line("1", quantity=4)], stock, state=state)
        result = service.apportion([_line("2", quantity=4)], stock, state=state)

        assert result[0][1] == [LocationAssignment(location="A", quantity=1)]


class TestApportionLine:

    def test_whole_or_nothing(self, service):
        state = AllocationState.fresh(_stock(("B1", "A", 2)))

        assigned = service.apportion_line(_line("1", quantity=3), state, allow_partial=False)

        assert assigned == []
        assert state.consumed("B1", "A") == 0

    def test_whole_draw_across_locations(self, service):
        state = AllocationState.fresh(_stock(("B1", "A", 2), ("B1", "B", 2)))

        assigned = service.apportion_line(_line("1", quantity=3), state, allow_partial=False)

        assert sum(a.quantity for a in assigned) == 3


def test_singleton():
    assert get_apportion_service() is get_apportion_service()

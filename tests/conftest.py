"""
Shared test fixtures.

Feeds are built with the factories in tests/factories.py.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest

from tests.factories import (
    CatalogEntryFactory,
    OrderLineFactory,
    StockRecordFactory,
)


# ===================
# SAMPLE FEEDS
# ===================

@pytest.fixture
def sample_catalog() -> list:
    """Catalog with one shirt option spelled "Blue L" and a vendor-coded cap."""
    return [
        CatalogEntryFactory.create(
            raw_item_name="Shirt", raw_option_name="Blue L", canonical_key="B1"
        ),
        CatalogEntryFactory.create(
            raw_item_name="Shirt", raw_option_name="Red M", canonical_key="B2"
        ),
        CatalogEntryFactory.create(
            raw_vendor_code="V-CAP", raw_option_name="Free", canonical_key="B3"
        ),
    ]


@pytest.fixture
def sample_stock() -> list:
    """B1 split over two bins, B2 in one."""
    return [
        StockRecordFactory.create(canonical_key="B1", location="A", on_hand_quantity=7),
        StockRecordFactory.create(canonical_key="B1", location="B", on_hand_quantity=3),
        StockRecordFactory.create(canonical_key="B2", location="A", on_hand_quantity=2),
    ]


@pytest.fixture
def sample_orders() -> list:
    return [
        OrderLineFactory.create(id="1", canonical_key="B1", quantity=5, due_date="2024-01-01"),
        OrderLineFactory.create(id="2", canonical_key="B1", quantity=5, due_date="2024-01-02"),
    ]


# ===================
# SINGLETON RESET
# ===================

@pytest.fixture
def reset_services():
    """Drop cached service singletons before and after a test."""
    import services.allocation_service as allocation_module
    import services.export_service as export_module

    allocation_module._allocation_service = None
    export_module._export_service = None
    yield
    allocation_module._allocation_service = None
    export_module._export_service = None


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.post("/api/allocation/pass", json={...})
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)

"""
Test suite for Fulfillment Allocation.

Run all tests: pytest
Run with coverage: pytest --cov=. --cov-report=html
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_apportion_service.py -v
"""

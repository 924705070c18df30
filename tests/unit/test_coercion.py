"""
Tests for coercion — quantity and date cells from loosely-typed feeds.
"""

from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from utils.coercion import coerce_date, coerce_quantity


class TestCoerceQuantity:

    @pytest.mark.parametrize("value,expected", [
        (7, 7),
        ("7", 7),
        (" 3 ", 3),
        ("1,200", 1200),
        (2.9, 2),
        ("2.9", 2),
        (Decimal("4.0"), 4),
    ])
    def test_readable_values(self, value, expected):
        assert coerce_quantity(value) == expected

    @pytest.mark.parametrize("value", [
        None, "", "abc", "n/a", float("nan"), float("inf"), "NaN", object(), [],
    ])
    def test_unreadable_values_are_zero(self, value):
        assert coerce_quantity(value) == 0

    def test_negative_floors_at_zero(self):
        assert coerce_quantity(-4) == 0
        assert coerce_quantity("-4") == 0

    def test_bool_is_not_a_quantity(self):
        assert coerce_quantity(True) == 0

    def test_numpy_scalar(self):
        series = pd.Series([5], dtype="int64")
        assert coerce_quantity(series.iloc[0]) == 5


class TestCoerceDate:

    def test_date_passthrough(self):
        assert coerce_date(date(2024, 1, 5)) == date(2024, 1, 5)

    def test_datetime_to_date(self):
        assert coerce_date(datetime(2024, 1, 5, 10, 30)) == date(2024, 1, 5)

    def test_pandas_timestamp(self):
        assert coerce_date(pd.Timestamp("2024-01-05 08:00")) == date(2024, 1, 5)

    @pytest.mark.parametrize("text", [
        "2024-01-05",
        "2024-01-05T10:00:00",
        "20240105",
        "2024/01/05",
        "2024.01.05",
        " 2024-01-05 ",
    ])
    def test_text_formats(self, text):
        assert coerce_date(text) == date(2024, 1, 5)

    @pytest.mark.parametrize("value", [
        None, "", "soon", "2024-13-45", float("nan"), pd.NaT, 20240105,
    ])
    def test_unreadable_is_none(self, value):
        assert coerce_date(value) is None

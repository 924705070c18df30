"""
Numeric and date coercion for loosely-typed feed cells.

Order, stock and ledger rows arrive from spreadsheets and marketplace
exports. A cell that cannot be read as a number counts as zero; a cell that
cannot be read as a date counts as "no due date".
"""

import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

DATE_FORMATS = ("%Y%m%d", "%Y/%m/%d", "%Y.%m.%d")


def coerce_quantity(value: Any) -> int:
    """
    Read a non-negative whole quantity from a cell.

    Examples:
        7 → 7
        "1,200" → 1200
        " 3 " → 3
        2.9 → 2 (truncated)
        -4 → 0
        "abc", None, NaN → 0

    Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0

    if isinstance(value, int):
        return max(value, 0)

    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0
        try:
            number = Decimal(text)
        except InvalidOperation:
            return 0
        if not number.is_finite():
            return 0
        return max(int(number), 0)

    if isinstance(value, Decimal):
        if not value.is_finite():
            return 0
        return max(int(value), 0)

    # float, numpy scalars, anything else float() understands
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return max(int(number), 0)


def coerce_date(value: Any) -> Optional[date]:
    """
    Read a due date from a cell.

    Accepts date/datetime objects (including pandas Timestamps), ISO
    strings ("2024-01-05", "2024-01-05T10:00:00") and compact forms
    ("20240105", "2024/01/05", "2024.01.05").

    Returns None for empty or unreadable cells.
    """
    if value is None:
        return None

    # NaN / NaT compare unequal to themselves
    if value != value:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None

"""
Text utilities for order and catalog names.

Used by barcode resolution to build the alternative option spellings that
marketplaces produce ("Blue L" vs "L Blue").
"""

from typing import Any


def clean_text(value: Any) -> str:
    """
    Clean a raw name cell for matching.

    - None and NaN become ""
    - Non-strings are converted with str()
    - Leading/trailing whitespace is stripped

    Case and inner spacing are preserved (matching is case-sensitive).
    """
    if value is None:
        return ""

    # NaN from pandas cells
    if isinstance(value, float) and value != value:
        return ""

    return str(value).strip()


def swap_first_token(text: str) -> str:
    """
    Move the first word to the end.

    - "Blue L (66-77)" → "L (66-77) Blue"
    - "L Blue" → "Blue L"
    - "Free" → "Free" (single word unchanged)
    """
    parts = text.split(None, 1)
    if len(parts) < 2:
        return text
    first, rest = parts
    return f"{rest.strip()} {first}"


def swap_last_token(text: str) -> str:
    """
    Move the last word to the front.

    - "Blue L (66-77)" → "(66-77) Blue L"
    - "L Blue" → "Blue L"
    """
    parts = text.rsplit(None, 1)
    if len(parts) < 2:
        return text
    rest, last = parts
    return f"{last} {rest.strip()}"

"""Tolerant number parsing for broker export cells.

IBKR exports mix plain numbers ("-100"), grouped numbers ("1,234.5"),
currency-prefixed values ("USD 12.50", "€3.20") and accounting negatives
("(45.10)"). Everything that cannot be read becomes 0.0 so a single bad
cell never aborts an import.
"""

from __future__ import annotations

import math
import re
from typing import Any

import pandas as pd

_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}\s+", re.IGNORECASE)
_STRIP_CHARS = ("$", "€", "£", "¥", ",", " ", " ")


def to_number(value: Any) -> float:
    """Parse a cell into a float. Empty, missing or unreadable -> 0.0."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        result = float(value)
        return result if math.isfinite(result) else 0.0
    try:
        if pd.isna(value):
            return 0.0
    except (TypeError, ValueError):
        pass

    s = str(value).strip()
    if not s:
        return 0.0

    # Strip currency code prefix (e.g., "USD 158.50", "EUR 42.00")
    s = _CURRENCY_CODE_RE.sub("", s)

    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1].strip()
    if s.startswith("-"):
        negative = not negative
        s = s[1:].strip()

    for char in _STRIP_CHARS:
        s = s.replace(char, "")

    # "-$5" or "$-5" both end up here with the sign already consumed
    if s.startswith("-"):
        negative = not negative
        s = s[1:]

    try:
        result = float(s)
    except (ValueError, TypeError):
        return 0.0
    if not math.isfinite(result):
        return 0.0
    return -result if negative else result

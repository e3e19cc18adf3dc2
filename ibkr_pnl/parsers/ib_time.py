"""Parsing for IBKR's two-part "date, time" timestamps.

IBKR writes execution times as ``2025-08-18, 09:34:59`` (date and time
separated by a comma). Failures return ``pd.NaT``; callers drop those rows.
"""

from __future__ import annotations

from typing import Any

import pandas as pd


def parse_ib_time(value: Any) -> pd.Timestamp:
    """Parse ``"<date>, <time>"`` into a naive Timestamp, or ``pd.NaT``."""
    if value is None:
        return pd.NaT
    text = str(value)
    if "," not in text:
        return pd.NaT

    date_part, time_part = text.split(",", 1)
    date_part = date_part.strip()
    time_part = time_part.strip()
    if not date_part or not time_part:
        return pd.NaT

    ts = pd.to_datetime(f"{date_part}T{time_part}", format="ISO8601", errors="coerce")
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def is_valid_instant(ts: Any) -> bool:
    """True if ``ts`` is a usable timestamp (not None / NaT)."""
    return ts is not None and not pd.isna(ts)

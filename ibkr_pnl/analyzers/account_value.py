"""Account value line from an activity statement's NAV sections.

Statements only report the closing NAV, so the line is a two-point sketch:
95% of the latest NAV thirty days before ``now``, then the NAV at ``now``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Sequence, Union

import pandas as pd

from ..parsers.numbers import to_number
from .pnl_series import SeriesPoint

logger = logging.getLogger(__name__)

# (section, discriminator, label, value column)
NAV_ROW_SIGNATURES: tuple[tuple[str, str, str, int], ...] = (
    ("Veränderung des NAV", "Data", "Endwert", 3),
    ("Nettovermögenswert", "Data", "Gesamt", 6),
    ("Change in NAV", "Data", "Ending Value", 3),
    ("Net Asset Value", "Data", "Total", 6),
)

SKETCH_LOOKBACK = pd.Timedelta(days=30)
SKETCH_START_RATIO = 0.95


def _cell(row: Sequence[Any], idx: int) -> str:
    if idx < len(row) and row[idx] is not None:
        return str(row[idx]).strip()
    return ""


def nav_values(rows: Sequence[Sequence[Any]]) -> list[float]:
    """Every NAV figure found in the statement, in file order."""
    values: list[float] = []
    for row in rows:
        if not row:
            continue
        head = (_cell(row, 0), _cell(row, 1), _cell(row, 2))
        for section, discriminator, label, value_idx in NAV_ROW_SIGNATURES:
            if head == (section, discriminator, label):
                values.append(to_number(_cell(row, value_idx)))
                break
    return values


def account_series(
    rows: Sequence[Sequence[Any]],
    now: Union[datetime, pd.Timestamp],
) -> list[SeriesPoint]:
    values = nav_values(rows)
    latest = values[-1] if values else 0.0
    if not values:
        logger.info("No NAV rows found; account value defaults to 0")

    anchor = pd.Timestamp(now)
    if anchor.tzinfo is not None:
        anchor = anchor.tz_convert(None)
    return [
        SeriesPoint(timestamp=anchor - SKETCH_LOOKBACK, value=max(0.0, latest * SKETCH_START_RATIO)),
        SeriesPoint(timestamp=anchor, value=latest),
    ]

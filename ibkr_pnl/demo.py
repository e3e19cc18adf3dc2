"""
Synthetic Flex execution export for demos and smoke runs.

Produces the same header an IBKR Flex query writes
(DateTime, Symbol, Quantity, IBCommission, FifoPnlRealized, Buy/Sell), so the
rows go through the regular execution-schema path.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import List, Optional

import pandas as pd

HEADER = ["DateTime", "Symbol", "Quantity", "IBCommission", "FifoPnlRealized", "Buy/Sell"]

DEMO_SYMBOLS = ["AAPL", "AMZN", "NVDA", "TSLA", "NET", "GCT", "JD", "COIN", "BTC"]

ACTIVE_DAY_PROBABILITY = 0.4
COMMISSION_RATE = 0.002


def _format_time(dt: pd.Timestamp) -> str:
    """Format datetime the way IBKR does: YYYY-MM-DD, HH:MM:SS"""
    return dt.strftime("%Y-%m-%d, %H:%M:%S")


def generate_demo_rows(
    days: int = 90,
    now: Optional[datetime] = None,
    seed: Optional[int] = None,
) -> List[List[str]]:
    """Build a header plus realized fills covering the last ``days`` days."""
    rng = random.Random(seed)
    anchor = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    rows: List[List[str]] = [list(HEADER)]

    for d in range(days, -1, -1):
        day = (anchor - pd.Timedelta(days=d)).normalize()
        if rng.random() > ACTIVE_DAY_PROBABILITY:
            continue
        sessions = 1 + rng.randrange(2)
        for _ in range(sessions):
            fills = 1 + rng.randrange(3)
            symbol = rng.choice(DEMO_SYMBOLS)
            base = day + pd.Timedelta(hours=8 + rng.randrange(8))
            session_pnl = (rng.random() - 0.3) * 1500  # bias positive
            for f in range(fills):
                t = base + pd.Timedelta(minutes=f * (3 + rng.randrange(5)))
                part = session_pnl / fills + (rng.random() - 0.5) * 50
                commission = max(0.0, round(abs(part) * COMMISSION_RATE, 2))
                side = "SELL" if part >= 0 else "BUY"
                qty = -100 if side == "SELL" else 100
                rows.append([
                    _format_time(t), symbol, str(qty), str(commission),
                    str(round(part, 2)), side,
                ])
    return rows

"""
Session clustering: group a symbol's fills into trading sessions.

A session is a burst of fills on one symbol where no two consecutive fills
are further apart than the gap threshold. Produces per-session totals
(realized, fees, net, fills) and a Long/Short direction tag.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence, Union

import pandas as pd

from ..config import DEFAULT_SESSION_GAP_MINUTES
from ..parsers.ib_trades import BUY, TradeRecord

logger = logging.getLogger(__name__)

LONG = "Long"
SHORT = "Short"

DEFAULT_GAP = pd.Timedelta(minutes=DEFAULT_SESSION_GAP_MINUTES)

GapLike = Union[timedelta, pd.Timedelta, int, float]


@dataclass(frozen=True)
class Session:
    """A contiguous burst of activity on one symbol."""

    symbol: str
    start: pd.Timestamp
    end: pd.Timestamp
    direction: str  # "Long" | "Short", fixed by the opening fill
    realized: float
    fees: float
    trades: tuple[TradeRecord, ...]

    @property
    def duration(self) -> pd.Timedelta:
        return self.end - self.start

    @property
    def net(self) -> float:
        return self.realized - self.fees

    @property
    def fills(self) -> int:
        return len(self.trades)


class _OpenSession:
    """Running totals of the session currently being swept."""

    def __init__(self, trade: TradeRecord):
        self.symbol = trade.symbol
        self.start = trade.timestamp
        self.direction = LONG if trade.side == BUY else SHORT
        self.end = trade.timestamp
        self.realized = 0.0
        self.fees = 0.0
        self.trades: list[TradeRecord] = []
        self.add(trade)

    def add(self, trade: TradeRecord) -> None:
        self.trades.append(trade)
        self.end = trade.timestamp
        self.realized += trade.realized_pnl
        self.fees += trade.fees

    def close(self) -> Session:
        return Session(
            symbol=self.symbol,
            start=self.start,
            end=self.end,
            direction=self.direction,
            realized=self.realized,
            fees=self.fees,
            trades=tuple(self.trades),
        )


def to_gap(gap_threshold: Optional[GapLike]) -> pd.Timedelta:
    """Normalize a gap given as timedelta or minutes."""
    if gap_threshold is None:
        return DEFAULT_GAP
    if isinstance(gap_threshold, (int, float)) and not isinstance(gap_threshold, bool):
        if not math.isfinite(gap_threshold):
            raise ValueError(f"gap_threshold must be finite, got {gap_threshold!r}")
        gap = pd.Timedelta(minutes=gap_threshold)
    else:
        gap = pd.Timedelta(gap_threshold)
    if pd.isna(gap):
        raise ValueError(f"gap_threshold must be a duration, got {gap_threshold!r}")
    if gap < pd.Timedelta(0):
        raise ValueError(f"gap_threshold must not be negative, got {gap_threshold!r}")
    return gap


# ---------------------------------------------------------------------------
# Main clustering
# ---------------------------------------------------------------------------

def cluster(
    trades: Sequence[TradeRecord],
    gap_threshold: Optional[GapLike] = None,
) -> list[Session]:
    """
    Cluster trades into per-symbol sessions.

    A fill joins the open session when ``fill.timestamp - session.end`` is at
    most ``gap_threshold`` (default 15 minutes); otherwise it opens a new one.
    Symbols appear in first-seen order, sessions of a symbol chronologically.
    """
    gap = to_gap(gap_threshold)

    by_symbol: dict[str, list[TradeRecord]] = {}
    for trade in trades:
        by_symbol.setdefault(trade.symbol, []).append(trade)

    sessions: list[Session] = []
    for symbol, symbol_trades in by_symbol.items():
        ordered = sorted(symbol_trades, key=lambda t: t.timestamp)
        current: Optional[_OpenSession] = None
        for trade in ordered:
            if current is None:
                current = _OpenSession(trade)
                continue
            if trade.timestamp - current.end <= gap:
                current.add(trade)
            else:
                sessions.append(current.close())
                current = _OpenSession(trade)
        if current is not None:
            sessions.append(current.close())

    logger.debug(
        "Clustered %d trades into %d sessions across %d symbols (gap=%s)",
        len(trades), len(sessions), len(by_symbol), gap,
    )
    return sessions


# ---------------------------------------------------------------------------
# Listing order
# ---------------------------------------------------------------------------

_SORT_KEYS = {
    "end": lambda s: s.end,
    "start": lambda s: s.start,
    "realized": lambda s: s.realized,
    "net": lambda s: s.net,
    "fees": lambda s: s.fees,
    "fills": lambda s: s.fills,
    "duration": lambda s: s.duration,
    "symbol": lambda s: s.symbol,
    "direction": lambda s: s.direction,
}


def sort_sessions(
    sessions: Sequence[Session],
    key: str = "end",
    descending: bool = True,
) -> list[Session]:
    """Sessions ordered for display. Default: most recent first."""
    if key not in _SORT_KEYS:
        raise ValueError(f"Unknown session sort key {key!r}; expected one of {sorted(_SORT_KEYS)}")
    return sorted(sessions, key=_SORT_KEYS[key], reverse=descending)

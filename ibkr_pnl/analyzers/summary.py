"""Headline totals over a set of realized trades."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ..parsers.ib_trades import TradeRecord


@dataclass(frozen=True)
class RealizedSummary:
    total_profit: float = 0.0  # sum of winning fills
    total_loss: float = 0.0  # absolute sum of losing fills
    total_fees: float = 0.0
    trade_count: int = 0
    symbols: list[str] = field(default_factory=list)

    @property
    def net_realized(self) -> float:
        return self.total_profit - self.total_loss


def summarize(trades: Sequence[TradeRecord]) -> RealizedSummary:
    profit = 0.0
    loss = 0.0
    fees = 0.0
    for trade in trades:
        if trade.realized_pnl >= 0:
            profit += trade.realized_pnl
        else:
            loss += -trade.realized_pnl
        fees += trade.fees
    return RealizedSummary(
        total_profit=profit,
        total_loss=loss,
        total_fees=fees,
        trade_count=len(trades),
        symbols=sorted({t.symbol for t in trades}),
    )

"""
Interactive Brokers trade export parser.

IBKR exports have quirks:
- Flex queries write one header row, then one row per execution
- Activity statements have no global header; the trades sit in a tagged
  section with Data / SubTotal / Total rows mixed together
- Only rows carrying the "C" (closed) code book realized PnL
- Timestamps are "date, time" with a comma in the middle
- Numbers may carry grouping commas or currency prefixes

Both layouts end up as TradeRecord objects sorted by execution time.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import pandas as pd

from .format_detector import (
    STATEMENT_CLOSED_CODE,
    STATEMENT_COLUMNS,
    STATEMENT_DATA,
    ExecutionColumns,
    Schema,
    SchemaMatch,
    resolve_schema,
)
from .ib_time import is_valid_instant, parse_ib_time
from .numbers import to_number

logger = logging.getLogger(__name__)

BUY = "BUY"
SELL = "SELL"

_SIDE_MAP: dict[str, str] = {
    "BUY": BUY,
    "B": BUY,
    "BOT": BUY,
    "KAUF": BUY,
    "SELL": SELL,
    "S": SELL,
    "SLD": SELL,
    "VERKAUF": SELL,
}


@dataclass(frozen=True)
class TradeRecord:
    """One realized fill from an IBKR export."""

    timestamp: pd.Timestamp
    symbol: str
    quantity: float  # negative for SELL, positive for BUY
    fees: float
    realized_pnl: float
    side: str  # "BUY" | "SELL"
    price: float = 0.0
    proceeds: float = 0.0
    cost_basis: float = 0.0
    currency: str = ""
    asset_class: str = ""
    source_schema: str = ""

    @property
    def net(self) -> float:
        return self.realized_pnl - self.fees


def normalize_side(raw: Any) -> Optional[str]:
    """Map a Buy/Sell cell to BUY or SELL. None if unreadable."""
    if raw is None:
        return None
    v = str(raw).strip().upper()
    if v in _SIDE_MAP:
        return _SIDE_MAP[v]
    # Compound values such as "BUY (Ca.)" or "SELL;O"
    if "BUY" in v:
        return BUY
    if "SELL" in v:
        return SELL
    return None


def side_from_quantity(quantity: float) -> str:
    return SELL if quantity < 0 else BUY


def signed_quantity(quantity: float, side: str) -> float:
    return -abs(quantity) if side == SELL else abs(quantity)


def derive_realized(proceeds: float, fees: float, cost_basis: float) -> float:
    """Realized PnL for exports that only carry the cash legs."""
    return proceeds - fees - cost_basis


# ---------------------------------------------------------------------------
# Row loading
# ---------------------------------------------------------------------------

def rows_from_string(content: str) -> list[list[str]]:
    """Split CSV text into rows, dropping fully blank lines."""
    reader = csv.reader(io.StringIO(content))
    return [row for row in reader if any(cell.strip() for cell in row)]


def load_rows(path: str | Path) -> list[list[str]]:
    """Read a CSV export from disk into a row table."""
    path = Path(path)
    content = path.read_text(encoding="utf-8-sig")  # handle BOM
    return rows_from_string(content)


# ---------------------------------------------------------------------------
# Main parser
# ---------------------------------------------------------------------------

class IBTradeParser:
    """
    Turn an IBKR row table into realized TradeRecords.

    Usage:
        parser = IBTradeParser()
        trades = parser.parse_csv("path/to/export.csv")
    """

    def __init__(self) -> None:
        self.trades: list[TradeRecord] = []
        self.schema: Optional[Schema] = None
        self.skipped_rows: int = 0
        self.total_rows: int = 0

    def parse_csv(self, path: str | Path) -> list[TradeRecord]:
        """Parse an IBKR CSV export file."""
        return self.parse_rows(load_rows(path))

    def parse_string(self, content: str) -> list[TradeRecord]:
        """Parse CSV content from a string (useful for testing)."""
        return self.parse_rows(rows_from_string(content))

    def parse_rows(self, rows: Sequence[Sequence[Any]]) -> list[TradeRecord]:
        self.trades = []
        self.schema = None
        self.skipped_rows = 0
        self.total_rows = 0

        if not rows:
            return []

        match = resolve_schema(rows)
        if match is None:
            return []
        self.schema = match.schema

        if match.schema == Schema.EXECUTION:
            trades = self._parse_execution_rows(rows, match.columns)
        else:
            trades = self._parse_statement_rows(rows, match)

        # Stable sort keeps source order for identical timestamps
        trades.sort(key=lambda t: t.timestamp)
        self.trades = trades

        logger.info(
            "[IB Parser] %s: %d trades from %d rows (%d skipped)",
            match.schema.value, len(trades), self.total_rows, self.skipped_rows,
        )
        return self.trades

    # -- Flex execution export ------------------------------------------------

    def _parse_execution_rows(
        self,
        rows: Sequence[Sequence[Any]],
        columns: ExecutionColumns,
    ) -> list[TradeRecord]:
        trades: list[TradeRecord] = []
        for line_no, row in enumerate(rows[1:], start=2):
            if not row or not any(str(c).strip() for c in row if c is not None):
                continue
            self.total_rows += 1
            trade = self._parse_execution_row(row, columns)
            if trade is None:
                self.skipped_rows += 1
                logger.debug("[IB Parser] Dropped execution row %d: %r", line_no, row)
                continue
            trades.append(trade)
        return trades

    @staticmethod
    def _parse_execution_row(
        row: Sequence[Any],
        columns: ExecutionColumns,
    ) -> Optional[TradeRecord]:
        def get(idx: Optional[int]) -> Any:
            if idx is not None and idx < len(row):
                return row[idx]
            return None

        timestamp = parse_ib_time(get(columns.timestamp))
        if not is_valid_instant(timestamp):
            return None

        symbol = str(get(columns.symbol) or "").strip()
        if not symbol:
            return None

        quantity = to_number(get(columns.quantity))
        fees = abs(to_number(get(columns.fees)))
        proceeds = to_number(get(columns.proceeds))
        cost_basis = to_number(get(columns.cost_basis))

        if columns.realized is not None:
            realized = to_number(get(columns.realized))
        elif any(i is not None for i in (columns.proceeds, columns.fees, columns.cost_basis)):
            realized = derive_realized(proceeds, fees, cost_basis)
        else:
            realized = 0.0

        side = normalize_side(get(columns.side)) or side_from_quantity(quantity)

        return TradeRecord(
            timestamp=timestamp,
            symbol=symbol,
            quantity=signed_quantity(quantity, side),
            fees=fees,
            realized_pnl=realized,
            side=side,
            price=to_number(get(columns.price)),
            proceeds=proceeds,
            cost_basis=cost_basis,
            currency=str(get(columns.currency) or "").strip(),
            asset_class=str(get(columns.asset_class) or "").strip(),
            source_schema=Schema.EXECUTION.value,
        )

    # -- Activity statement -------------------------------------------------------

    def _parse_statement_rows(
        self,
        rows: Sequence[Sequence[Any]],
        match: SchemaMatch,
    ) -> list[TradeRecord]:
        cols = STATEMENT_COLUMNS
        marker = match.marker
        trades: list[TradeRecord] = []

        for line_no in range(match.section_start + 1, len(rows)):
            row = rows[line_no]
            section = str(row[0]).strip() if row and row[0] is not None else ""
            if not section:
                continue
            if section != marker:
                break

            if _statement_cell(row, cols.discriminator) != STATEMENT_DATA:
                continue
            if STATEMENT_CLOSED_CODE not in _statement_cell(row, cols.code):
                continue

            self.total_rows += 1
            trade = self._parse_statement_row(row)
            if trade is None:
                self.skipped_rows += 1
                logger.debug("[IB Parser] Dropped statement row %d: %r", line_no + 1, row)
                continue
            trades.append(trade)
        return trades

    @staticmethod
    def _parse_statement_row(row: Sequence[Any]) -> Optional[TradeRecord]:
        cols = STATEMENT_COLUMNS

        timestamp = parse_ib_time(_statement_cell(row, cols.timestamp))
        if not is_valid_instant(timestamp):
            return None

        symbol = _statement_cell(row, cols.symbol)
        if not symbol:
            return None

        quantity = to_number(_statement_cell(row, cols.quantity))
        fees = abs(to_number(_statement_cell(row, cols.fees)))
        proceeds = to_number(_statement_cell(row, cols.proceeds))
        cost_basis = to_number(_statement_cell(row, cols.cost_basis))

        realized_cell = _statement_cell(row, cols.realized)
        if realized_cell:
            realized = to_number(realized_cell)
        else:
            realized = derive_realized(proceeds, fees, cost_basis)

        side = side_from_quantity(quantity)

        return TradeRecord(
            timestamp=timestamp,
            symbol=symbol,
            quantity=signed_quantity(quantity, side),
            fees=fees,
            realized_pnl=realized,
            side=side,
            price=to_number(_statement_cell(row, cols.price)),
            proceeds=proceeds,
            cost_basis=cost_basis,
            currency=_statement_cell(row, cols.currency),
            asset_class=_statement_cell(row, cols.asset_class),
            source_schema=Schema.STATEMENT.value,
        )


def _statement_cell(row: Sequence[Any], idx: int) -> str:
    if idx < len(row) and row[idx] is not None:
        return str(row[idx]).strip()
    return ""


def reconstruct(rows: Sequence[Sequence[Any]]) -> list[TradeRecord]:
    """Realized trades from a raw row table, sorted by timestamp."""
    return IBTradeParser().parse_rows(rows)

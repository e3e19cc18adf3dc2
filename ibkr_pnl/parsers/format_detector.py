"""Format detection for IBKR trade exports.

Two layouts come out of the same platform:

1. Flex "execution" exports: first row is a header (DateTime, Symbol,
   Quantity, IBCommission, FifoPnlRealized, Buy/Sell, ...).
2. Activity statements: no usable header, every row is tagged with its
   section name in column 0 and a discriminator (Header/Data/SubTotal/Total)
   in column 1. Trades live in the German "Transaktionen" section at
   fixed column offsets.

Header lookup goes through EXECUTION_FIELDS, a fixed list of logical fields
each with a ranked list of accepted spellings, resolved once per file.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)


class Schema(str, enum.Enum):
    EXECUTION = "execution"
    STATEMENT = "statement"


# ---------------------------------------------------------------------------
# Execution schema descriptor
# ---------------------------------------------------------------------------

EXECUTION_FIELDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("timestamp", ("DateTime", "Date/Time", "TradeDate", "Date")),
    ("symbol", ("Symbol", "Ticker", "UnderlyingSymbol")),
    ("quantity", ("Quantity", "Qty")),
    ("fees", ("IBCommission", "IB Commission", "Commission", "Comm/Fee", "Fees")),
    ("realized", ("FifoPnlRealized", "Realized P/L", "RealizedPnl", "Realized PnL")),
    ("proceeds", ("Proceeds", "NetCash")),
    ("cost_basis", ("CostBasis", "Cost Basis", "Basis")),
    ("side", ("Buy/Sell", "Side", "Action")),
    ("price", ("TradePrice", "T. Price", "Price")),
    ("currency", ("CurrencyPrimary", "Currency")),
    ("asset_class", ("AssetClass", "Asset Category")),
)

# Fields that must resolve before a header counts as an execution export
_REQUIRED_FIELDS = ("timestamp", "symbol", "quantity")
# Fees alone cannot produce a realized figure
_PNL_SOURCE_FIELDS = ("proceeds", "cost_basis")


@dataclass(frozen=True)
class ExecutionColumns:
    """Column indices for an execution-schema header. None = column absent."""

    timestamp: Optional[int] = None
    symbol: Optional[int] = None
    quantity: Optional[int] = None
    fees: Optional[int] = None
    realized: Optional[int] = None
    proceeds: Optional[int] = None
    cost_basis: Optional[int] = None
    side: Optional[int] = None
    price: Optional[int] = None
    currency: Optional[int] = None
    asset_class: Optional[int] = None

    @property
    def has_required(self) -> bool:
        return all(getattr(self, name) is not None for name in _REQUIRED_FIELDS)

    @property
    def has_pnl_source(self) -> bool:
        """True if realized PnL can be read or derived from this header."""
        if self.realized is not None:
            return True
        return any(getattr(self, name) is not None for name in _PNL_SOURCE_FIELDS)


# ---------------------------------------------------------------------------
# Statement schema descriptor
# ---------------------------------------------------------------------------

STATEMENT_SECTION_MARKERS: tuple[str, ...] = ("Transaktionen",)
STATEMENT_DATA = "Data"
STATEMENT_CLOSED_CODE = "C"


@dataclass(frozen=True)
class StatementColumns:
    """Fixed offsets of the trades section in an activity statement."""

    discriminator: int = 1
    asset_class: int = 2
    currency: int = 3
    symbol: int = 4
    timestamp: int = 5
    quantity: int = 6
    price: int = 7
    proceeds: int = 8
    fees: int = 9
    cost_basis: int = 10
    realized: int = 11
    code: int = 13


STATEMENT_COLUMNS = StatementColumns()


@dataclass(frozen=True)
class SchemaMatch:
    schema: Schema
    columns: Optional[ExecutionColumns] = None
    section_start: Optional[int] = None
    marker: Optional[str] = None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _cell(row: Sequence[Any], idx: int) -> str:
    if idx < len(row) and row[idx] is not None:
        return str(row[idx])
    return ""


def _find_column_index(headers: Sequence[str], aliases: Sequence[str]) -> Optional[int]:
    """Index of the first alias found in ``headers``.

    Aliases are tried in rank order; each is matched exactly first, then
    ignoring case and surrounding whitespace.
    """
    folded = [h.strip().lower() for h in headers]
    for alias in aliases:
        if alias in headers:
            return list(headers).index(alias)
        alias_lower = alias.lower()
        if alias_lower in folded:
            return folded.index(alias_lower)
    return None


def resolve_execution_columns(header: Sequence[Any]) -> ExecutionColumns:
    """Map every logical execution field to its column index in ``header``."""
    headers = [_cell(header, i) for i in range(len(header))]
    return ExecutionColumns(**{
        name: _find_column_index(headers, aliases)
        for name, aliases in EXECUTION_FIELDS
    })


def find_section_start(rows: Sequence[Sequence[Any]], marker: str) -> Optional[int]:
    """Index of the first row whose column 0 starts with ``marker``."""
    for i, row in enumerate(rows):
        if row and _cell(row, 0).startswith(marker):
            return i
    return None


def resolve_schema(rows: Sequence[Sequence[Any]]) -> Optional[SchemaMatch]:
    """Classify a raw row table. Returns None when no schema applies."""
    if not rows:
        return None

    header = rows[0] or []
    columns = resolve_execution_columns(header)
    if columns.has_required and columns.has_pnl_source:
        logger.info(
            "[Format] Execution export detected (realized column %s)",
            "present" if columns.realized is not None else "derived",
        )
        return SchemaMatch(schema=Schema.EXECUTION, columns=columns)

    for marker in STATEMENT_SECTION_MARKERS:
        start = find_section_start(rows, marker)
        if start is not None:
            logger.info("[Format] Activity statement detected (section %r at row %d)", marker, start)
            return SchemaMatch(schema=Schema.STATEMENT, section_start=start, marker=marker)

    logger.info("[Format] No known IBKR layout in %d rows", len(rows))
    return None

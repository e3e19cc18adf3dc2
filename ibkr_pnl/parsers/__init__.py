from .ib_trades import IBTradeParser, TradeRecord, reconstruct, load_rows, rows_from_string
from .format_detector import Schema, SchemaMatch, ExecutionColumns, resolve_schema
from .ib_time import parse_ib_time, is_valid_instant
from .numbers import to_number

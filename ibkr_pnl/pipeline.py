"""Main pipeline: raw IBKR rows in -> trades, sessions and chart series out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence, Union

import pandas as pd

from .analyzers.account_value import account_series
from .analyzers.pnl_series import (
    Grain, RangeKey, SeriesPoint, build_from_points, cumulate, headline_value,
)
from .analyzers.sessions import GapLike, Session, cluster
from .analyzers.summary import RealizedSummary, summarize
from .config import PipelineConfig
from .parsers.format_detector import Schema
from .parsers.ib_trades import IBTradeParser, TradeRecord

logger = logging.getLogger(__name__)

MODE_PNL = "pnl"
MODE_ACCOUNT = "account"
MODES = (MODE_PNL, MODE_ACCOUNT)


@dataclass
class PipelineResult:
    trades: list[TradeRecord] = field(default_factory=list)
    sessions: list[Session] = field(default_factory=list)
    series: list[SeriesPoint] = field(default_factory=list)
    grain: Grain = Grain.DAY
    summary: RealizedSummary = field(default_factory=RealizedSummary)
    schema: Optional[Schema] = None
    mode: str = MODE_PNL
    range_key: RangeKey = RangeKey.ALL

    @property
    def headline(self) -> float:
        return headline_value(self.series)

    @property
    def is_empty(self) -> bool:
        return not self.trades


def build_views(
    rows: Sequence[Sequence[Any]],
    mode: str = MODE_PNL,
    range_key: Union[RangeKey, str, None] = None,
    gap_threshold: Optional[GapLike] = None,
    now: Union[datetime, pd.Timestamp, None] = None,
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """Run detection, reconstruction, clustering and series building once.

    Args:
        rows: Raw CSV row table (first row may be a header).
        mode: "pnl" for cumulative realized PnL, "account" for the NAV line.
        range_key: 24h | 1w | 1m | all. Defaults to the configured range.
        gap_threshold: Session gap as timedelta or minutes. Defaults to config.
        now: Anchor for the range filter. Defaults to the local wall clock.
        config: Settings; read from the environment when omitted.

    Returns:
        PipelineResult. Unrecognized input yields empty trades/sessions.
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode {mode!r}; expected one of {MODES}")
    cfg = config or PipelineConfig.from_env()
    key = RangeKey(range_key or cfg.default_range)
    gap = gap_threshold if gap_threshold is not None else cfg.session_gap
    anchor = pd.Timestamp.now() if now is None else pd.Timestamp(now)

    parser = IBTradeParser()
    trades = parser.parse_rows(rows or [])
    sessions = cluster(trades, gap)

    if mode == MODE_PNL:
        base = cumulate(trades)
    else:
        base = account_series(rows or [], anchor)
    series, grain = build_from_points(base, key, anchor)

    logger.info(
        "Pipeline: %d trades, %d sessions, %d %s points (%s, range=%s)",
        len(trades), len(sessions), len(series), grain.value, mode, key.value,
    )
    return PipelineResult(
        trades=trades,
        sessions=sessions,
        series=series,
        grain=grain,
        summary=summarize(trades),
        schema=parser.schema,
        mode=mode,
        range_key=key,
    )

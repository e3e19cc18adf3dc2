"""Cumulative PnL series: cumulate, range-filter and resample for charting."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence, Union

import pandas as pd

from ..parsers.ib_trades import TradeRecord

logger = logging.getLogger(__name__)


class RangeKey(str, enum.Enum):
    DAY = "24h"
    WEEK = "1w"
    MONTH = "1m"
    ALL = "all"


class Grain(str, enum.Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# Lookback per range; ALL has no lower bound
RANGE_LOOKBACK: dict[RangeKey, pd.Timedelta] = {
    RangeKey.DAY: pd.Timedelta(hours=24),
    RangeKey.WEEK: pd.Timedelta(days=7),
    RangeKey.MONTH: pd.Timedelta(days=30),
}

WEEKLY_SPAN_THRESHOLD = pd.Timedelta(days=90)


@dataclass(frozen=True)
class SeriesPoint:
    timestamp: pd.Timestamp
    value: float


def _to_naive(ts: Union[datetime, pd.Timestamp, str]) -> pd.Timestamp:
    ts = pd.Timestamp(ts)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def cumulate(trades: Sequence[TradeRecord]) -> list[SeriesPoint]:
    """Running sum of realized PnL, one point per trade."""
    ordered = sorted(trades, key=lambda t: t.timestamp)
    points: list[SeriesPoint] = []
    total = 0.0
    for trade in ordered:
        total += trade.realized_pnl
        points.append(SeriesPoint(timestamp=trade.timestamp, value=total))
    return points


def range_start(range_key: Union[RangeKey, str], now: Union[datetime, pd.Timestamp]) -> pd.Timestamp | None:
    """Lower timestamp bound for a range, or None for "all"."""
    key = RangeKey(range_key)
    if key == RangeKey.ALL:
        return None
    return _to_naive(now) - RANGE_LOOKBACK[key]


def filter_range(
    points: Sequence[SeriesPoint],
    range_key: Union[RangeKey, str],
    now: Union[datetime, pd.Timestamp],
) -> list[SeriesPoint]:
    """Keep points at or after the range's lower bound, anchored at ``now``."""
    start = range_start(range_key, now)
    if start is None:
        return list(points)
    return [p for p in points if p.timestamp >= start]


def choose_grain(range_key: Union[RangeKey, str], span: pd.Timedelta) -> Grain:
    """Hourly for 24h, weekly beyond 90 days of data, daily otherwise."""
    if RangeKey(range_key) == RangeKey.DAY:
        return Grain.HOUR
    if span > WEEKLY_SPAN_THRESHOLD:
        return Grain.WEEK
    return Grain.DAY


def series_span(points: Sequence[SeriesPoint]) -> pd.Timedelta:
    if not points:
        return pd.Timedelta(0)
    return points[-1].timestamp - points[0].timestamp


def bucket_starts(timestamps: pd.Series, grain: Union[Grain, str]) -> pd.Series:
    """Start instant of the bucket containing each timestamp."""
    grain = Grain(grain)
    if grain == Grain.HOUR:
        return timestamps.dt.floor("h")
    if grain == Grain.DAY:
        return timestamps.dt.normalize()
    if grain == Grain.WEEK:
        # Monday-aligned weeks
        days = timestamps.dt.normalize()
        return days - pd.to_timedelta(days.dt.weekday, unit="D")
    return timestamps.dt.to_period("M").dt.start_time


def resample(points: Sequence[SeriesPoint], grain: Union[Grain, str]) -> list[SeriesPoint]:
    """One point per bucket carrying the chronologically last value."""
    grain = Grain(grain)
    if not points:
        return []

    df = pd.DataFrame({
        "timestamp": pd.to_datetime([p.timestamp for p in points]),
        "value": [float(p.value) for p in points],
    })
    # Stable sort: equal timestamps keep input order, so the later one wins
    df = df.sort_values("timestamp", kind="mergesort")
    df["bucket"] = bucket_starts(df["timestamp"], grain)

    last = df.groupby("bucket", sort=True)["value"].last()
    return [
        SeriesPoint(timestamp=pd.Timestamp(bucket), value=float(value))
        for bucket, value in last.items()
    ]


def build_series(
    trades: Sequence[TradeRecord],
    range_key: Union[RangeKey, str],
    now: Union[datetime, pd.Timestamp],
) -> tuple[list[SeriesPoint], Grain]:
    """Cumulative PnL for ``range_key`` at the matching display grain."""
    return build_from_points(cumulate(trades), range_key, now)


def build_from_points(
    points: Sequence[SeriesPoint],
    range_key: Union[RangeKey, str],
    now: Union[datetime, pd.Timestamp],
) -> tuple[list[SeriesPoint], Grain]:
    in_range = filter_range(points, range_key, now)
    grain = choose_grain(range_key, series_span(in_range))
    resampled = resample(in_range, grain)
    logger.debug(
        "Series %s: %d points -> %d in range -> %d %s buckets",
        RangeKey(range_key).value, len(points), len(in_range), len(resampled), grain.value,
    )
    return resampled, grain


def headline_value(series: Sequence[SeriesPoint]) -> float:
    """Last value of a series, 0.0 when empty."""
    return series[-1].value if series else 0.0

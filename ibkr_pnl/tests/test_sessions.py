"""Session clustering tests — partition, sums, gap contract, direction."""

from __future__ import annotations

import dataclasses
import random
from datetime import timedelta

import pandas as pd
import pytest

from ibkr_pnl.analyzers.sessions import LONG, SHORT, cluster, sort_sessions, to_gap
from ibkr_pnl.parsers.ib_trades import TradeRecord

T0 = pd.Timestamp("2025-01-01 10:00:00")


def _trade(minutes: float, symbol: str = "AAA", realized: float = 0.0, fees: float = 0.0, side: str = "BUY") -> TradeRecord:
    qty = -1.0 if side == "SELL" else 1.0
    return TradeRecord(
        timestamp=T0 + pd.Timedelta(minutes=minutes),
        symbol=symbol,
        quantity=qty,
        fees=fees,
        realized_pnl=realized,
        side=side,
    )


def _random_trades(seed: int, n: int = 60) -> list[TradeRecord]:
    rng = random.Random(seed)
    trades = []
    for _ in range(n):
        trades.append(_trade(
            minutes=rng.randrange(0, 600),
            symbol=rng.choice(["AAA", "BBB", "CCC"]),
            realized=round(rng.uniform(-100, 100), 2),
            fees=round(rng.uniform(0, 2), 2),
            side=rng.choice(["BUY", "SELL"]),
        ))
    return trades


class TestCluster:
    def test_concrete_scenario(self):
        trades = [
            _trade(0, realized=50, fees=1, side="BUY"),
            _trade(5, realized=-20, fees=1, side="SELL"),
        ]
        (session,) = cluster(trades)
        assert session.realized == 30
        assert session.fees == 2
        assert session.net == 28
        assert session.fills == 2
        assert session.direction == LONG
        assert session.start == T0
        assert session.end == T0 + pd.Timedelta(minutes=5)
        assert session.duration == pd.Timedelta(minutes=5)

    def test_gap_exactly_at_threshold_is_included(self):
        sessions = cluster([_trade(0), _trade(15)])
        assert len(sessions) == 1

    def test_gap_over_threshold_splits(self):
        sessions = cluster([_trade(0), _trade(15.01)])
        assert [s.fills for s in sessions] == [1, 1]

    def test_gap_measured_from_last_fill(self):
        # 0 -> 10 -> 20 -> 30: each step is within 15 minutes
        sessions = cluster([_trade(m) for m in (0, 10, 20, 30)])
        assert len(sessions) == 1
        assert sessions[0].duration == pd.Timedelta(minutes=30)

    def test_custom_threshold(self):
        trades = [_trade(0), _trade(20), _trade(45)]
        assert len(cluster(trades, timedelta(minutes=30))) == 1
        assert len(cluster(trades, 20)) == 2
        assert len(cluster(trades, 5)) == 3

    def test_symbols_never_share_a_session(self):
        sessions = cluster([_trade(0, "AAA"), _trade(1, "BBB"), _trade(2, "AAA")])
        assert [(s.symbol, s.fills) for s in sessions] == [("AAA", 2), ("BBB", 1)]

    def test_unsorted_input_is_ordered_within_session(self):
        (session,) = cluster([_trade(10), _trade(0), _trade(5)])
        assert [t.timestamp for t in session.trades] == sorted(t.timestamp for t in session.trades)
        assert session.start == T0

    def test_direction_frozen_at_open(self):
        trades = [_trade(0, side="SELL"), _trade(1, side="BUY"), _trade(2, side="BUY")]
        (session,) = cluster(trades)
        assert session.direction == SHORT

    def test_empty(self):
        assert cluster([]) == []

    def test_negative_gap_rejected(self):
        with pytest.raises(ValueError):
            cluster([_trade(0)], -1)

    @pytest.mark.parametrize("gap", [float("nan"), float("inf"), pd.NaT])
    def test_undefined_gap_rejected(self, gap):
        with pytest.raises(ValueError):
            cluster([_trade(0), _trade(1)], gap)

    def test_sessions_are_immutable(self):
        (session,) = cluster([_trade(0, realized=5), _trade(1, realized=3)])
        assert isinstance(session.trades, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            session.realized = 0.0
        assert not hasattr(session, "_add")


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_partition_sum_and_gap_properties(seed):
    trades = _random_trades(seed)
    gap = pd.Timedelta(minutes=15)
    sessions = cluster(trades, gap)

    for symbol in {t.symbol for t in trades}:
        own = [t for t in trades if t.symbol == symbol]
        mine = [s for s in sessions if s.symbol == symbol]

        # Partition: every trade exactly once
        members = [t for s in mine for t in s.trades]
        assert sorted(map(id, members)) == sorted(map(id, own))

        # Sum conservation
        assert sum(s.realized for s in mine) == pytest.approx(sum(t.realized_pnl for t in own))
        assert sum(s.fees for s in mine) == pytest.approx(sum(t.fees for t in own))

        # Gap contract inside and between sessions
        for s in mine:
            assert s.fills >= 1
            assert s.start <= s.end
            for a, b in zip(s.trades, s.trades[1:]):
                assert b.timestamp - a.timestamp <= gap
        for prev, nxt in zip(mine, mine[1:]):
            assert nxt.start - prev.end > gap


def test_sort_sessions_most_recent_first():
    sessions = cluster([_trade(0, "AAA"), _trade(100, "BBB", realized=5), _trade(50, "CCC", realized=-5)])
    assert [s.symbol for s in sort_sessions(sessions)] == ["BBB", "CCC", "AAA"]
    assert [s.symbol for s in sort_sessions(sessions, key="realized", descending=False)] == ["CCC", "AAA", "BBB"]
    with pytest.raises(ValueError):
        sort_sessions(sessions, key="nope")


def test_to_gap_accepts_minutes_and_timedeltas():
    assert to_gap(None) == pd.Timedelta(minutes=15)
    assert to_gap(30) == pd.Timedelta(minutes=30)
    assert to_gap(timedelta(seconds=90)) == pd.Timedelta(seconds=90)

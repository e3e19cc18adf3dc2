#!/usr/bin/env python3
"""
CLI entry point for the IBKR PnL pipeline.

Usage:
  ibkr-pnl export.csv                       # all-time cumulative PnL
  ibkr-pnl export.csv --range 1w            # last week, daily buckets
  ibkr-pnl statement.csv --mode account     # NAV line from a statement
  ibkr-pnl --demo --gap-minutes 30          # synthetic data
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .config import LOG_FORMAT, RANGE_KEYS, PipelineConfig
from .demo import generate_demo_rows
from .parsers.ib_trades import load_rows
from .pipeline import MODES, PipelineResult, build_views
from .analyzers.sessions import sort_sessions


def fmt_money(amount: float) -> str:
    """Format an amount with sign."""
    if amount < 0:
        return f"-{abs(amount):,.2f}"
    return f"{amount:,.2f}"


def fmt_duration(delta: pd.Timedelta) -> str:
    minutes = int(delta.total_seconds() // 60)
    if minutes <= 0:
        return "-"
    d, rem = divmod(minutes, 60 * 24)
    h, m = divmod(rem, 60)
    if d > 0:
        return f"{d}d {h}h {m}m"
    if h > 0:
        return f"{h}h {m}m"
    return f"{m}m"


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Realized PnL sessions and cumulative series from IBKR CSV exports."
    )
    parser.add_argument(
        "csv", nargs="?", type=str, default=None,
        help="IBKR Flex execution export or activity statement CSV",
    )
    parser.add_argument(
        "--demo", action="store_true",
        help="Use generated demo trades instead of a CSV",
    )
    parser.add_argument(
        "--mode", choices=MODES, default="pnl",
        help="pnl (cumulative realized PnL) or account (NAV line)",
    )
    parser.add_argument(
        "--range", dest="range_key", choices=RANGE_KEYS, default=None,
        help="Chart range (default: IBKR_PNL_DEFAULT_RANGE or all)",
    )
    parser.add_argument(
        "--gap-minutes", type=float, default=None,
        help="Max minutes between fills of one session (default: 15)",
    )
    parser.add_argument(
        "--now", type=str, default=None,
        help="Anchor instant for the range filter, ISO format (default: now)",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for --demo",
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Logging level (default: IBKR_PNL_LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    config = PipelineConfig.from_env()

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format=LOG_FORMAT,
    )

    now = pd.Timestamp(args.now) if args.now else None

    if args.demo:
        rows = generate_demo_rows(now=now, seed=args.seed)
        source = "demo data"
    elif args.csv:
        path = Path(args.csv)
        if not path.exists():
            print(f"ERROR: File not found: {path}", file=sys.stderr)
            return 1
        rows = load_rows(path)
        source = path.name
    else:
        print("ERROR: pass a CSV path or --demo", file=sys.stderr)
        return 2

    result = build_views(
        rows,
        mode=args.mode,
        range_key=args.range_key,
        gap_threshold=args.gap_minutes,
        now=now,
        config=config,
    )
    print_report(result, source)
    return 0


def print_report(result: PipelineResult, source: str) -> None:
    print("=" * 70)
    print(f"  IBKR PnL - {source}")
    print("=" * 70)

    if result.is_empty and result.mode == "pnl":
        print("\n  No trades recognized.")
        return

    summary = result.summary
    label = "PnL" if result.mode == "pnl" else "Account"
    print(f"\n{'SUMMARY':=^70}")
    print(f"  Schema:                 {result.schema.value if result.schema else 'none'}")
    headline = f"{label} ({result.range_key.value}):"
    print(f"  {headline:<24}{fmt_money(result.headline)}")
    print(f"  Total profit realized:  {fmt_money(summary.total_profit)}")
    print(f"  Total loss realized:    {fmt_money(summary.total_loss)}")
    print(f"  Fees:                   {fmt_money(summary.total_fees)}")
    print(f"  Fills / symbols:        {summary.trade_count} / {len(summary.symbols)}")

    if result.sessions:
        print(f"\n{'SESSIONS (most recent first)':=^70}")
        print(f"  {'End':<17} {'Symbol':<8} {'Dir':<6} {'Duration':>10} {'Realized':>12} {'Net':>12} {'Fills':>5}")
        print(f"  {'-' * 74}")
        for s in sort_sessions(result.sessions, key="end", descending=True):
            print(
                f"  {s.end.strftime('%Y-%m-%d %H:%M'):<17} "
                f"{s.symbol:<8} "
                f"{s.direction:<6} "
                f"{fmt_duration(s.duration):>10} "
                f"{fmt_money(s.realized):>12} "
                f"{fmt_money(s.net):>12} "
                f"{s.fills:>5}"
            )

    print(f"\n{f'SERIES ({result.grain.value})':=^70}")
    pattern = "%Y-%m-%d %H:%M" if result.grain.value == "hour" else "%Y-%m-%d"
    for p in result.series:
        print(f"  {p.timestamp.strftime(pattern):<17} {fmt_money(p.value):>14}")


if __name__ == "__main__":
    sys.exit(main())

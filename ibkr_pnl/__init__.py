"""Realized PnL sessions and cumulative series from Interactive Brokers exports."""

__version__ = "0.1.0"

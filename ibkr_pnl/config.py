"""Runtime configuration for the PnL pipeline.

Reads settings from environment:
    IBKR_PNL_SESSION_GAP_MINUTES  – max minutes between fills of one session (default 15)
    IBKR_PNL_DEFAULT_RANGE        – chart range when none is given: 24h | 1w | 1m | all
    IBKR_PNL_LOG_LEVEL            – logging level name for the CLI (default INFO)

Malformed values are logged and replaced by the defaults so the pipeline
still runs with a broken environment.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from datetime import timedelta

logger = logging.getLogger(__name__)

DEFAULT_SESSION_GAP_MINUTES = 15.0
DEFAULT_RANGE = "all"
DEFAULT_LOG_LEVEL = "INFO"

RANGE_KEYS = ("24h", "1w", "1m", "all")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


@dataclass(frozen=True)
class PipelineConfig:
    session_gap_minutes: float = DEFAULT_SESSION_GAP_MINUTES
    default_range: str = DEFAULT_RANGE
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def session_gap(self) -> timedelta:
        return timedelta(minutes=self.session_gap_minutes)

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build a config from IBKR_PNL_* environment variables."""
        gap = DEFAULT_SESSION_GAP_MINUTES
        raw_gap = os.environ.get("IBKR_PNL_SESSION_GAP_MINUTES")
        if raw_gap:
            try:
                gap = float(raw_gap)
                if not math.isfinite(gap) or gap < 0:
                    raise ValueError(raw_gap)
            except (ValueError, TypeError):
                logger.warning(
                    "Invalid IBKR_PNL_SESSION_GAP_MINUTES=%r, using %s",
                    raw_gap, DEFAULT_SESSION_GAP_MINUTES,
                )
                gap = DEFAULT_SESSION_GAP_MINUTES

        range_key = os.environ.get("IBKR_PNL_DEFAULT_RANGE", DEFAULT_RANGE).strip().lower()
        if range_key not in RANGE_KEYS:
            logger.warning(
                "Invalid IBKR_PNL_DEFAULT_RANGE=%r, using %s", range_key, DEFAULT_RANGE,
            )
            range_key = DEFAULT_RANGE

        level = os.environ.get("IBKR_PNL_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            logger.warning(
                "Invalid IBKR_PNL_LOG_LEVEL=%r, using %s", level, DEFAULT_LOG_LEVEL,
            )
            level = DEFAULT_LOG_LEVEL

        return cls(session_gap_minutes=gap, default_range=range_key, log_level=level)

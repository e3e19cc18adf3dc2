from .sessions import Session, cluster, sort_sessions
from .pnl_series import SeriesPoint, RangeKey, Grain, cumulate, filter_range, resample, choose_grain, build_series
from .account_value import account_series
from .summary import RealizedSummary, summarize

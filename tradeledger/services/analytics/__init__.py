"""Performance aggregation over journaled trades.

Pure functions: no I/O, no hidden state, inputs are never mutated. Every
aggregate has a defined zero value, so empty or partially-filled trade lists
never raise.
"""

from tradeledger.services.analytics.breakdown import (
    DAY_NAMES,
    Bucket,
    Distribution,
    PeriodStats,
    compute_distribution,
    daily_breakdown,
    filter_by_calendar_day,
    filter_by_month,
    local_date,
    monthly_breakdown,
)
from tradeledger.services.analytics.goals import (
    GoalProgressReport,
    TargetProgress,
    compute_streaks_and_goal_progress,
)
from tradeledger.services.analytics.metrics import (
    RiskMetrics,
    TradeSummary,
    closed_trades,
    compute_profit_loss,
    compute_risk_metrics,
    compute_summary,
)

__all__ = [
    "DAY_NAMES",
    "Bucket",
    "Distribution",
    "GoalProgressReport",
    "PeriodStats",
    "RiskMetrics",
    "TargetProgress",
    "TradeSummary",
    "closed_trades",
    "compute_distribution",
    "compute_profit_loss",
    "compute_risk_metrics",
    "compute_streaks_and_goal_progress",
    "compute_summary",
    "daily_breakdown",
    "filter_by_calendar_day",
    "filter_by_month",
    "local_date",
    "monthly_breakdown",
]

"""Daily win/lose streaks and progress against a monthly goal."""

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import tzinfo

from tradeledger.services.analytics.breakdown import local_date
from tradeledger.services.analytics.metrics import closed_trades

NOT_SET = "not_set"
IN_PROGRESS = "in_progress"
ACHIEVED = "achieved"
WITHIN_LIMIT = "within_limit"
EXCEEDED = "exceeded"


@dataclass
class TargetProgress:
    """One goal target. progress is a clamped percentage, 0 when the target is not set."""

    target: float | None
    actual: float
    progress: float
    status: str


@dataclass
class GoalProgressReport:
    total_trades: int = 0
    closed_trades: int = 0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    max_trades_in_day: int = 0
    profitable_days: int = 0
    losing_days: int = 0
    current_win_streak: int = 0
    longest_win_streak: int = 0
    current_lose_streak: int = 0
    longest_lose_streak: int = 0
    targets: dict[str, TargetProgress] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


def _clamped_progress(actual: float, target: float) -> float:
    return min(100.0, max(0.0, actual / target * 100))


def _target_progress(actual: float, target: float | None) -> TargetProgress:
    # A zero target is treated like an unset one
    if not target:
        return TargetProgress(target=target, actual=actual, progress=0.0, status=NOT_SET)
    progress = _clamped_progress(actual, target)
    return TargetProgress(
        target=target,
        actual=actual,
        progress=progress,
        status=ACHIEVED if progress >= 100 else IN_PROGRESS,
    )


def _trade_cap_progress(actual: int, cap: int | None) -> TargetProgress:
    if not cap:
        return TargetProgress(target=cap, actual=actual, progress=0.0, status=NOT_SET)
    return TargetProgress(
        target=cap,
        actual=actual,
        progress=_clamped_progress(actual, cap),
        status=EXCEEDED if actual > cap else WITHIN_LIMIT,
    )


def compute_streaks_and_goal_progress(
    trades: Sequence, goal=None, tz: tzinfo | None = None
) -> GoalProgressReport:
    """Streaks over trading days plus progress toward goal (which may be None).

    Callers usually pass one month of trades (see filter_by_month). A day is
    profitable when its closed P&L is above zero and losing when below; flat
    days are skipped and leave both streak counters as they were.
    """
    report = GoalProgressReport(total_trades=len(trades))

    trades_per_day: dict = {}
    for t in trades:
        day = local_date(t.trade_date, tz)
        trades_per_day[day] = trades_per_day.get(day, 0) + 1
    report.max_trades_in_day = max([0, *trades_per_day.values()])

    closed = closed_trades(trades)
    report.closed_trades = len(closed)
    report.total_pnl = sum(t.profit_loss for t in closed)
    wins = sum(1 for t in closed if t.profit_loss > 0)
    report.win_rate = wins / len(closed) * 100 if closed else 0.0

    day_pnl: dict = {}
    for t in closed:
        day = local_date(t.trade_date, tz)
        day_pnl[day] = day_pnl.get(day, 0.0) + t.profit_loss

    for day in sorted(day_pnl):
        pnl = day_pnl[day]
        if pnl > 0:
            report.profitable_days += 1
            report.current_win_streak += 1
            report.current_lose_streak = 0
            report.longest_win_streak = max(report.longest_win_streak, report.current_win_streak)
        elif pnl < 0:
            report.losing_days += 1
            report.current_lose_streak += 1
            report.current_win_streak = 0
            report.longest_lose_streak = max(report.longest_lose_streak, report.current_lose_streak)

    report.targets = {
        "pnl": _target_progress(report.total_pnl, getattr(goal, "target_pnl", None)),
        "win_rate": _target_progress(report.win_rate, getattr(goal, "target_win_rate", None)),
        "max_trades_per_day": _trade_cap_progress(
            report.max_trades_in_day, getattr(goal, "max_trades_per_day", None)
        ),
    }
    return report

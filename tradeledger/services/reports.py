"""Plain-text message templates: passcodes, weekly reports, goal alerts."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from tradeledger.services.analytics import GoalProgressReport, closed_trades, compute_summary

GOAL_LABELS = {"pnl": "P&L", "win_rate": "Win Rate"}


@dataclass
class TradeHighlight:
    symbol: str
    pnl: float


@dataclass
class WeeklyReport:
    name: str
    week_start: date
    week_end: date
    total_trades: int
    closed_trades: int
    win_rate: float
    total_pnl: float
    profitable_trades: int
    losing_trades: int
    best_trade: TradeHighlight | None
    worst_trade: TradeHighlight | None


@dataclass
class GoalAlert:
    name: str
    goal_type: str  # key of GOAL_LABELS
    current: float
    target: float
    percentage: int


def format_amount(amount: float, symbol: str) -> str:
    sign = "+" if amount >= 0 else "-"
    return f"{sign}{symbol}{abs(amount):,.2f}"


def build_weekly_report(name: str, trades: Sequence, week_start: date, week_end: date) -> WeeklyReport:
    """Summarize one week of trades. Best/worst come from closed trades only."""
    summary = compute_summary(trades)
    closed = closed_trades(trades)
    best = max(closed, key=lambda t: t.profit_loss, default=None)
    worst = min(closed, key=lambda t: t.profit_loss, default=None)

    return WeeklyReport(
        name=name,
        week_start=week_start,
        week_end=week_end,
        total_trades=summary.total_trades,
        closed_trades=summary.closed_trades,
        win_rate=summary.win_rate,
        total_pnl=summary.total_pnl,
        profitable_trades=summary.profitable_trades,
        losing_trades=summary.losing_trades,
        best_trade=TradeHighlight(best.symbol, best.profit_loss) if best else None,
        worst_trade=TradeHighlight(worst.symbol, worst.profit_loss) if worst else None,
    )


def newly_achieved_targets(before: GoalProgressReport, after: GoalProgressReport) -> list[str]:
    """Goal targets that moved to achieved between two reports."""
    crossed = []
    for key in GOAL_LABELS:
        old, new = before.targets.get(key), after.targets.get(key)
        if new is not None and new.status == "achieved" and (old is None or old.status != "achieved"):
            crossed.append(key)
    return crossed


def render_otp_message(code: str, ttl_seconds: int) -> tuple[str, str]:
    minutes = ttl_seconds // 60
    subject = "Your TradeLedger verification code"
    body = (
        f"Your TradeLedger verification code is {code}.\n"
        f"It expires in {minutes} minutes. If you did not try to sign in, ignore this message."
    )
    return subject, body


def render_weekly_report(report: WeeklyReport, currency: str) -> tuple[str, str]:
    subject = f"Your Weekly Trading Report - {report.week_start:%d %b} to {report.week_end:%d %b %Y}"
    lines = [
        f"Hello {report.name},",
        "",
        f"Here is your trading performance for {report.week_start:%d %b} - {report.week_end:%d %b %Y}.",
        "",
        f"Total P&L:         {format_amount(report.total_pnl, currency)}",
        f"Total trades:      {report.total_trades}",
        f"Closed trades:     {report.closed_trades}",
        f"Win rate:          {report.win_rate:.1f}%",
        f"Profitable trades: {report.profitable_trades}",
        f"Losing trades:     {report.losing_trades}",
    ]
    if report.best_trade:
        lines.append(
            f"Best trade:        {report.best_trade.symbol} "
            f"{format_amount(report.best_trade.pnl, currency)}"
        )
    if report.worst_trade:
        lines.append(
            f"Worst trade:       {report.worst_trade.symbol} "
            f"{format_amount(report.worst_trade.pnl, currency)}"
        )
    return subject, "\n".join(lines)


def render_goal_alert(alert: GoalAlert, currency: str) -> tuple[str, str]:
    label = GOAL_LABELS.get(alert.goal_type, alert.goal_type)
    if alert.goal_type == "win_rate":
        current, target = f"{alert.current:.1f}%", f"{alert.target:g}%"
    else:
        current, target = format_amount(alert.current, currency), format_amount(alert.target, currency)

    subject = f"Goal Alert: You've reached {alert.percentage}% of your {label} target!"
    closing = (
        "You've achieved your goal! Time to set a new target."
        if alert.percentage >= 100
        else "Keep going, you're doing great!"
    )
    body = "\n".join(
        [
            f"Hello {alert.name},",
            "",
            f"You've reached {alert.percentage}% of your {label} target.",
            f"Current: {current}",
            f"Target:  {target}",
            "",
            closing,
        ]
    )
    return subject, body


def build_goal_alerts(name: str, before: GoalProgressReport, after: GoalProgressReport) -> list[GoalAlert]:
    """One alert per target that became achieved between the two reports."""
    alerts = []
    for key in newly_achieved_targets(before, after):
        target = after.targets[key]
        alerts.append(
            GoalAlert(
                name=name,
                goal_type=key,
                current=target.actual,
                target=target.target,
                percentage=int(target.progress),
            )
        )
    return alerts

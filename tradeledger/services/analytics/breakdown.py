"""Calendar filters and per-bucket breakdowns (day, month, symbol, side, weekday).

Calendar grouping uses the trade's local date: when a timezone is given,
aware timestamps are converted into it first. Two trades at different times
on the same local day always land in the same bucket.
"""

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, tzinfo

from tradeledger.services.analytics.metrics import CLOSED, closed_trades

# Sunday-first, matching the journal calendar
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass
class Bucket:
    count: int = 0
    pnl: float = 0.0


@dataclass
class PeriodStats:
    """Activity for one calendar day or month."""

    trades: int = 0
    pnl: float = 0.0
    win_rate: float = 0.0


@dataclass
class Distribution:
    """Closed trades grouped by symbol, side and weekday."""

    by_symbol: dict[str, Bucket] = field(default_factory=dict)
    by_type: dict[str, Bucket] = field(
        default_factory=lambda: {"BUY": Bucket(), "SELL": Bucket()}
    )
    by_day_of_week: dict[str, Bucket] = field(
        default_factory=lambda: {name: Bucket() for name in DAY_NAMES}
    )

    def to_dict(self) -> dict:
        return asdict(self)


def local_date(value: datetime | date, tz: tzinfo | None = None) -> date:
    """Calendar date of a trade timestamp, in tz when it is given and the timestamp is aware."""
    if isinstance(value, datetime):
        if tz is not None and value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def filter_by_calendar_day(trades: Sequence, day: date, tz: tzinfo | None = None) -> list:
    """Trades whose local calendar date equals day."""
    if isinstance(day, datetime):
        day = local_date(day, tz)
    return [t for t in trades if local_date(t.trade_date, tz) == day]


def filter_by_month(trades: Sequence, month: int, year: int, tz: tzinfo | None = None) -> list:
    """Trades whose local calendar month and year match."""
    result = []
    for t in trades:
        d = local_date(t.trade_date, tz)
        if d.month == month and d.year == year:
            result.append(t)
    return result


def compute_distribution(trades: Sequence, tz: tzinfo | None = None) -> Distribution:
    """Count and P&L per symbol, per trade type and per weekday over closed trades."""
    dist = Distribution()

    for t in closed_trades(trades):
        bucket = dist.by_symbol.setdefault(t.symbol, Bucket())
        bucket.count += 1
        bucket.pnl += t.profit_loss

        side = dist.by_type.get(t.trade_type)
        if side is not None:
            side.count += 1
            side.pnl += t.profit_loss

        # date.weekday() is Monday=0; shift to Sunday=0
        weekday = DAY_NAMES[(local_date(t.trade_date, tz).weekday() + 1) % 7]
        dist.by_day_of_week[weekday].count += 1
        dist.by_day_of_week[weekday].pnl += t.profit_loss

    return dist


def _period_stats(trades: Sequence) -> PeriodStats:
    """Trade count and P&L over all trades; win rate over the closed ones."""
    closed = [t for t in trades if t.status == CLOSED]
    profitable = sum(1 for t in closed if t.profit_loss is not None and t.profit_loss > 0)
    return PeriodStats(
        trades=len(trades),
        pnl=sum(t.profit_loss for t in trades if t.profit_loss is not None),
        win_rate=profitable / len(closed) * 100 if closed else 0.0,
    )


def daily_breakdown(
    trades: Sequence, year: int, month: int, tz: tzinfo | None = None
) -> dict[date, PeriodStats]:
    """Per-day stats for the days of one month that have trades."""
    by_day: dict[date, list] = {}
    for t in filter_by_month(trades, month, year, tz):
        by_day.setdefault(local_date(t.trade_date, tz), []).append(t)

    return {day: _period_stats(day_trades) for day, day_trades in sorted(by_day.items())}


def monthly_breakdown(trades: Sequence, year: int, tz: tzinfo | None = None) -> dict[int, PeriodStats]:
    """Per-month stats for one year. All twelve months are present."""
    by_month: dict[int, list] = {month: [] for month in range(1, 13)}
    for t in trades:
        d = local_date(t.trade_date, tz)
        if d.year == year:
            by_month[d.month].append(t)

    return {month: _period_stats(month_trades) for month, month_trades in by_month.items()}

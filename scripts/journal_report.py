"""CLI for journal reports and maintenance.

Usage:
    python scripts/journal_report.py --email me@example.com            # Overall stats
    python scripts/journal_report.py --email me@example.com --month 2026-03
    python scripts/journal_report.py --email me@example.com --weekly   # Preview last week's email
    python scripts/journal_report.py --purge-otp                       # Drop stale passcodes
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def _fmt_factor(value: float) -> str:
    return "Infinity" if value == float("inf") else f"{value:.2f}"


async def show_stats(email: str, month: str | None) -> int:
    """Print summary, risk and (for a month) goal progress for one user."""
    from tradeledger.config import settings
    from tradeledger.database import async_session, engine
    from tradeledger.services.analytics import (
        compute_risk_metrics,
        compute_streaks_and_goal_progress,
        compute_summary,
        filter_by_month,
    )
    from tradeledger.services.reports import format_amount
    from tradeledger.services.store.goals import get_goal
    from tradeledger.services.store.trades import list_trades
    from tradeledger.services.store.users import find_user_by_email

    tz = settings.display_tzinfo
    cur = settings.currency_symbol
    try:
        async with async_session() as session:
            user = await find_user_by_email(session, email)
            if user is None:
                print(f"No user with email {email}")
                return 1
            trades = await list_trades(session, user.id, newest_first=False)
            goal = None
            if month:
                year_num, month_num = (int(part) for part in month.split("-"))
                trades = filter_by_month(trades, month_num, year_num, tz)
                goal = await get_goal(session, user.id, month_num, year_num)
    finally:
        await engine.dispose()

    summary = compute_summary(trades)
    risk = compute_risk_metrics(trades)

    print(f"\n=== {user.name} ({month or 'all time'}) ===")
    print(f"  Trades:         {summary.total_trades} ({summary.open_trades} open)")
    print(f"  Total P&L:      {format_amount(summary.total_pnl, cur)}")
    print(f"  Win rate:       {summary.win_rate:.1f}%")
    print(f"  Profit factor:  {_fmt_factor(summary.profit_factor)}")
    print(f"  Avg R:R:        {risk.avg_risk_reward:.2f}")
    print(f"  Max drawdown:   {format_amount(-risk.max_drawdown, cur)}")
    print(f"  Sharpe:         {risk.sharpe_ratio:.2f}")

    if month:
        report = compute_streaks_and_goal_progress(trades, goal, tz)
        print(f"  Win streak:     {report.current_win_streak} (best {report.longest_win_streak})")
        print(f"  Lose streak:    {report.current_lose_streak} (worst {report.longest_lose_streak})")
        for key, target in report.targets.items():
            print(f"  Goal {key:<18} {target.status} ({target.progress:.0f}%)")
    print()
    return 0


async def preview_weekly(email: str) -> int:
    """Render last week's report email without sending it."""
    from datetime import time

    from tradeledger.config import settings
    from tradeledger.database import async_session, engine
    from tradeledger.services.reports import build_weekly_report, render_weekly_report
    from tradeledger.services.store.trades import list_trades
    from tradeledger.services.store.users import find_user_by_email
    from tradeledger.tasks.report_tasks import previous_week

    tz = settings.display_tzinfo
    week_start, week_end = previous_week(datetime.now(timezone.utc).astimezone(tz).date())
    try:
        async with async_session() as session:
            user = await find_user_by_email(session, email)
            if user is None:
                print(f"No user with email {email}")
                return 1
            trades = await list_trades(
                session,
                user.id,
                start=datetime.combine(week_start, time.min, tzinfo=tz),
                end=datetime.combine(week_end, time.max, tzinfo=tz),
            )
    finally:
        await engine.dispose()

    report = build_weekly_report(user.name, trades, week_start, week_end)
    subject, body = render_weekly_report(report, settings.currency_symbol)
    print(f"\nSubject: {subject}\n\n{body}\n")
    return 0


async def purge_otp() -> int:
    from tradeledger.tasks.report_tasks import _purge_otp_challenges_async

    result = await _purge_otp_challenges_async()
    print(f"\nRemoved {result['removed']} stale passcode challenge(s)\n")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="TradeLedger journal reports")
    parser.add_argument("--email", type=str, help="User to report on")
    parser.add_argument("--month", type=str, help="Restrict to one month, YYYY-MM")
    parser.add_argument("--weekly", action="store_true", help="Preview last week's report email")
    parser.add_argument("--purge-otp", action="store_true", help="Delete stale passcode challenges")
    args = parser.parse_args()

    if args.purge_otp:
        sys.exit(asyncio.run(purge_otp()))
    elif args.email and args.weekly:
        sys.exit(asyncio.run(preview_weekly(args.email)))
    elif args.email:
        sys.exit(asyncio.run(show_stats(args.email, args.month)))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Analytics routes: summary, risk, distribution, goal progress and calendar views.

All calendar grouping happens in the configured display timezone.
"""

import math
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.api.auth import require_user
from tradeledger.config import settings
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.analytics import (
    compute_distribution,
    compute_risk_metrics,
    compute_streaks_and_goal_progress,
    compute_summary,
    daily_breakdown,
    filter_by_month,
    monthly_breakdown,
)
from tradeledger.services.store.goals import get_goal
from tradeledger.services.store.trades import list_trades

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _json_safe(payload: dict) -> dict:
    """JSON has no infinity; profit factor without losses is sent as "Infinity"."""
    return {
        key: "Infinity" if isinstance(value, float) and math.isinf(value) else value
        for key, value in payload.items()
    }


def _current_month() -> tuple[int, int]:
    now = datetime.now(timezone.utc).astimezone(settings.display_tzinfo)
    return now.month, now.year


@router.get("/summary")
async def summary(
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=1970),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Headline stats, optionally for a date range or a single month."""
    trades = await list_trades(db, user.id, start=start_date, end=end_date)
    if month is not None or year is not None:
        if month is None or year is None:
            raise HTTPException(status_code=400, detail="month and year must be given together")
        trades = filter_by_month(trades, month, year, settings.display_tzinfo)
    return {"summary": _json_safe(compute_summary(trades).to_dict())}


@router.get("/risk")
async def risk(user: User = Depends(require_user), db: AsyncSession = Depends(get_db)):
    # Drawdown needs trades in chronological order
    trades = await list_trades(db, user.id, newest_first=False)
    return {"risk": _json_safe(compute_risk_metrics(trades).to_dict())}


@router.get("/distribution")
async def distribution(user: User = Depends(require_user), db: AsyncSession = Depends(get_db)):
    trades = await list_trades(db, user.id)
    return {"distribution": compute_distribution(trades, settings.display_tzinfo).to_dict()}


@router.get("/goal-progress")
async def goal_progress(
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=1970),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Streaks and target progress for a month (the current one by default)."""
    current_month, current_year = _current_month()
    month = month or current_month
    year = year or current_year
    tz = settings.display_tzinfo

    goal = await get_goal(db, user.id, month, year)
    trades = filter_by_month(await list_trades(db, user.id, newest_first=False), month, year, tz)
    report = compute_streaks_and_goal_progress(trades, goal, tz)
    return {
        "month": month,
        "year": year,
        "goal": goal.to_dict() if goal else None,
        "progress": report.to_dict(),
    }


@router.get("/calendar")
async def calendar(
    view: Literal["daily", "monthly"] = Query("daily"),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=1970),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Per-day stats for a month, or per-month stats for a year."""
    current_month, current_year = _current_month()
    year = year or current_year
    tz = settings.display_tzinfo
    trades = await list_trades(db, user.id, newest_first=False)

    if view == "monthly":
        months = monthly_breakdown(trades, year, tz)
        return {
            "view": view,
            "year": year,
            "months": {str(m): vars(stats) for m, stats in months.items()},
        }

    month = month or current_month
    days = daily_breakdown(trades, year, month, tz)
    return {
        "view": view,
        "year": year,
        "month": month,
        "days": {day.isoformat(): vars(stats) for day, stats in days.items()},
    }

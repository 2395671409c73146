"""Trade API routes: journal CRUD and starring."""

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.api.auth import get_delivery, require_user
from tradeledger.config import settings
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.analytics import (
    GoalProgressReport,
    compute_streaks_and_goal_progress,
    filter_by_month,
    local_date,
)
from tradeledger.services.delivery import DeliveryService
from tradeledger.services.reports import GoalAlert, build_goal_alerts
from tradeledger.services.store.goals import get_goal
from tradeledger.services.store.notifications import get_notification_settings
from tradeledger.services.store.trades import (
    TradeValidationError,
    create_trade,
    delete_trade,
    get_trade,
    list_trades,
    toggle_star,
    update_trade,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/trades", tags=["trades"])


class TradeCreate(BaseModel):
    """Request body for logging a trade."""

    symbol: str = Field(..., min_length=1, max_length=20, pattern=r"^[A-Za-z0-9.\-_/:]+$")
    trade_type: Literal["BUY", "SELL"]
    instrument_type: str = Field("STOCK", max_length=20)
    entry_price: float = Field(..., gt=0)
    exit_price: float | None = Field(None, gt=0)
    quantity: float = Field(..., gt=0)
    stop_loss: float | None = Field(None, gt=0)
    take_profit: float | None = Field(None, gt=0)
    notes: str | None = Field(None, max_length=5000)
    trade_date: datetime
    status: Literal["OPEN", "CLOSED"] | None = None


class TradeUpdate(BaseModel):
    """Partial update. Omitted fields keep their stored values."""

    symbol: str | None = Field(None, min_length=1, max_length=20, pattern=r"^[A-Za-z0-9.\-_/:]+$")
    trade_type: Literal["BUY", "SELL"] | None = None
    instrument_type: str | None = Field(None, max_length=20)
    entry_price: float | None = Field(None, gt=0)
    exit_price: float | None = Field(None, gt=0)
    quantity: float | None = Field(None, gt=0)
    stop_loss: float | None = Field(None, gt=0)
    take_profit: float | None = Field(None, gt=0)
    notes: str | None = Field(None, max_length=5000)
    trade_date: datetime | None = None
    status: Literal["OPEN", "CLOSED"] | None = None


class StarRequest(BaseModel):
    is_starred: bool | None = None  # omitted = toggle


async def _month_progress(db: AsyncSession, user_id: int, when: datetime) -> GoalProgressReport | None:
    """Goal progress for the month containing when, or None without a goal."""
    tz = settings.display_tzinfo
    day = local_date(when, tz)
    goal = await get_goal(db, user_id, day.month, day.year)
    if goal is None:
        return None
    trades = await list_trades(db, user_id, newest_first=False)
    return compute_streaks_and_goal_progress(filter_by_month(trades, day.month, day.year, tz), goal, tz)


async def _send_goal_alerts(delivery: DeliveryService, email: str, alerts: list[GoalAlert]) -> None:
    for alert in alerts:
        await delivery.send_goal_alert(email, alert)


async def _queue_goal_alerts(
    db: AsyncSession,
    user: User,
    when: datetime,
    before: GoalProgressReport | None,
    background: BackgroundTasks,
    delivery: DeliveryService,
) -> None:
    if before is None:
        return
    prefs = await get_notification_settings(db, user.id)
    if not prefs.goal_alerts:
        return
    after = await _month_progress(db, user.id, when)
    alerts = build_goal_alerts(user.name, before, after) if after else []
    if alerts:
        logger.info("User %d reached %d goal target(s)", user.id, len(alerts))
        background.add_task(_send_goal_alerts, delivery, user.email, alerts)


@router.get("/")
async def list_user_trades(
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    status: Literal["OPEN", "CLOSED"] | None = Query(None),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's trades, newest first."""
    trades = await list_trades(db, user.id, start=start_date, end=end_date, status=status)
    return {"trades": [t.to_dict() for t in trades]}


@router.post("/", status_code=201)
async def log_trade(
    req: TradeCreate,
    background: BackgroundTasks,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    delivery: DeliveryService = Depends(get_delivery),
):
    before = await _month_progress(db, user.id, req.trade_date)
    try:
        trade = await create_trade(db, user.id, req.model_dump())
    except TradeValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("User %d logged trade %d (%s %s)", user.id, trade.id, trade.trade_type, trade.symbol)
    await _queue_goal_alerts(db, user, trade.trade_date, before, background, delivery)
    return {"trade": trade.to_dict()}


@router.get("/{trade_id}")
async def get_user_trade(
    trade_id: int, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    trade = await get_trade(db, user.id, trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found")
    return {"trade": trade.to_dict()}


@router.put("/{trade_id}")
async def edit_trade(
    trade_id: int,
    req: TradeUpdate,
    background: BackgroundTasks,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    delivery: DeliveryService = Depends(get_delivery),
):
    """Update a trade. Supplying an exit price closes it and computes P&L."""
    existing = await get_trade(db, user.id, trade_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Trade not found")

    before = await _month_progress(db, user.id, req.trade_date or existing.trade_date)
    try:
        trade = await update_trade(db, user.id, trade_id, req.model_dump(exclude_unset=True))
    except TradeValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    await _queue_goal_alerts(db, user, trade.trade_date, before, background, delivery)
    return {"trade": trade.to_dict()}


@router.patch("/{trade_id}")
async def star_trade(
    trade_id: int,
    req: StarRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    trade = await toggle_star(db, user.id, trade_id, req.is_starred)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found")
    return {"trade": trade.to_dict()}


@router.delete("/{trade_id}")
async def remove_trade(
    trade_id: int, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    if not await delete_trade(db, user.id, trade_id):
        raise HTTPException(status_code=404, detail="Trade not found")
    return {"message": "Trade deleted successfully"}

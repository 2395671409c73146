"""Trade persistence. P&L and status are always written together with the prices."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models.trade import Trade
from tradeledger.services.analytics import compute_profit_loss
from tradeledger.services.store import as_utc

EDITABLE_FIELDS = (
    "symbol",
    "trade_type",
    "instrument_type",
    "entry_price",
    "exit_price",
    "quantity",
    "stop_loss",
    "take_profit",
    "notes",
    "trade_date",
    "status",
)


class TradeValidationError(ValueError):
    """Field combination that would break the closed-trade invariant."""


def _apply_fields(trade: Trade, fields: dict) -> None:
    """Set editable fields, then derive status and profit_loss from the exit price.

    An exit price closes the trade. Without one the trade stays open and has
    no P&L.
    """
    requested_status = fields.get("status")
    for name in EDITABLE_FIELDS:
        if name in fields and name != "status":
            setattr(trade, name, fields[name])

    trade.symbol = trade.symbol.strip().upper()
    trade.trade_type = trade.trade_type.upper()
    if trade.instrument_type is None:
        trade.instrument_type = "STOCK"

    if trade.exit_price is None:
        if requested_status == "CLOSED":
            raise TradeValidationError("A closed trade needs an exit price")
        trade.status = "OPEN"
        trade.profit_loss = None
    else:
        if requested_status == "OPEN":
            raise TradeValidationError("A trade with an exit price is closed")
        trade.status = "CLOSED"
        trade.profit_loss = compute_profit_loss(
            trade.trade_type, trade.entry_price, trade.exit_price, trade.quantity
        )


def _normalize(trade: Trade | None) -> Trade | None:
    if trade is not None:
        trade.trade_date = as_utc(trade.trade_date)
    return trade


async def list_trades(
    session: AsyncSession,
    user_id: int,
    start: datetime | None = None,
    end: datetime | None = None,
    status: str | None = None,
    newest_first: bool = True,
) -> list[Trade]:
    """User's trades, optionally bounded by trade_date and filtered by status."""
    stmt = select(Trade).where(Trade.user_id == user_id)
    if start is not None:
        stmt = stmt.where(Trade.trade_date >= start)
    if end is not None:
        stmt = stmt.where(Trade.trade_date <= end)
    if status:
        stmt = stmt.where(Trade.status == status.upper())

    if newest_first:
        stmt = stmt.order_by(Trade.trade_date.desc(), Trade.id.desc())
    else:
        stmt = stmt.order_by(Trade.trade_date.asc(), Trade.id.asc())

    result = await session.execute(stmt)
    return [_normalize(t) for t in result.scalars().all()]


async def get_trade(session: AsyncSession, user_id: int, trade_id: int) -> Trade | None:
    result = await session.execute(
        select(Trade).where(Trade.id == trade_id, Trade.user_id == user_id)
    )
    return _normalize(result.scalar_one_or_none())


async def create_trade(session: AsyncSession, user_id: int, fields: dict) -> Trade:
    trade = Trade(user_id=user_id, is_starred=False, instrument_type="STOCK")
    _apply_fields(trade, fields)
    session.add(trade)
    await session.commit()
    await session.refresh(trade)
    return _normalize(trade)


async def update_trade(
    session: AsyncSession, user_id: int, trade_id: int, fields: dict
) -> Trade | None:
    """Partial update. Returns None when the trade does not belong to the user."""
    trade = await get_trade(session, user_id, trade_id)
    if trade is None:
        return None
    _apply_fields(trade, fields)
    await session.commit()
    await session.refresh(trade)
    return _normalize(trade)


async def delete_trade(session: AsyncSession, user_id: int, trade_id: int) -> bool:
    trade = await get_trade(session, user_id, trade_id)
    if trade is None:
        return False
    await session.delete(trade)
    await session.commit()
    return True


async def toggle_star(
    session: AsyncSession, user_id: int, trade_id: int, starred: bool | None = None
) -> Trade | None:
    """Flip is_starred, or set it when starred is given."""
    trade = await get_trade(session, user_id, trade_id)
    if trade is None:
        return None
    trade.is_starred = (not trade.is_starred) if starred is None else starred
    await session.commit()
    await session.refresh(trade)
    return _normalize(trade)

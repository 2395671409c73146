"""Mistake log and trading-rule checklist persistence."""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models.journal import Mistake, TradingRule


async def list_mistakes(session: AsyncSession, user_id: int) -> list[Mistake]:
    """Most frequent first."""
    result = await session.execute(
        select(Mistake)
        .where(Mistake.user_id == user_id)
        .order_by(Mistake.frequency.desc(), Mistake.id.asc())
    )
    return list(result.scalars().all())


async def create_mistake(
    session: AsyncSession,
    user_id: int,
    title: str,
    category: str | None = None,
    description: str | None = None,
) -> Mistake:
    mistake = Mistake(
        user_id=user_id, title=title, category=category, description=description, frequency=1
    )
    session.add(mistake)
    await session.commit()
    await session.refresh(mistake)
    return mistake


async def increment_mistake_frequency(
    session: AsyncSession, user_id: int, mistake_id: int
) -> Mistake | None:
    result = await session.execute(
        update(Mistake)
        .where(Mistake.id == mistake_id, Mistake.user_id == user_id)
        .values(frequency=Mistake.frequency + 1)
    )
    await session.commit()
    if result.rowcount == 0:
        return None
    mistake = await session.get(Mistake, mistake_id)
    await session.refresh(mistake)
    return mistake


async def delete_mistake(session: AsyncSession, user_id: int, mistake_id: int) -> bool:
    mistake = await session.get(Mistake, mistake_id)
    if mistake is None or mistake.user_id != user_id:
        return False
    await session.delete(mistake)
    await session.commit()
    return True


async def list_rules(session: AsyncSession, user_id: int, active_only: bool = False) -> list[TradingRule]:
    stmt = select(TradingRule).where(TradingRule.user_id == user_id)
    if active_only:
        stmt = stmt.where(TradingRule.is_active.is_(True))
    result = await session.execute(stmt.order_by(TradingRule.order.asc(), TradingRule.id.asc()))
    return list(result.scalars().all())


async def create_rule(session: AsyncSession, user_id: int, rule: str) -> TradingRule:
    """Append a rule to the end of the user's checklist."""
    result = await session.execute(
        select(func.max(TradingRule.order)).where(TradingRule.user_id == user_id)
    )
    last = result.scalar_one_or_none()
    record = TradingRule(
        user_id=user_id, rule=rule, order=0 if last is None else last + 1, is_active=True
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record


async def toggle_rule_active(
    session: AsyncSession, user_id: int, rule_id: int
) -> TradingRule | None:
    record = await session.get(TradingRule, rule_id)
    if record is None or record.user_id != user_id:
        return None
    record.is_active = not record.is_active
    await session.commit()
    await session.refresh(record)
    return record


async def delete_rule(session: AsyncSession, user_id: int, rule_id: int) -> bool:
    record = await session.get(TradingRule, rule_id)
    if record is None or record.user_id != user_id:
        return False
    await session.delete(record)
    await session.commit()
    return True

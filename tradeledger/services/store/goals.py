"""Monthly goal persistence."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models.goal import Goal


async def get_goal(session: AsyncSession, user_id: int, month: int, year: int) -> Goal | None:
    result = await session.execute(
        select(Goal).where(Goal.user_id == user_id, Goal.month == month, Goal.year == year)
    )
    return result.scalar_one_or_none()


async def list_goals(session: AsyncSession, user_id: int) -> list[Goal]:
    result = await session.execute(
        select(Goal).where(Goal.user_id == user_id).order_by(Goal.year.desc(), Goal.month.desc())
    )
    return list(result.scalars().all())


def _apply_targets(goal: Goal, target_pnl, target_win_rate, max_trades_per_day) -> None:
    goal.target_pnl = target_pnl
    goal.target_win_rate = target_win_rate
    goal.max_trades_per_day = max_trades_per_day


async def upsert_goal(
    session: AsyncSession,
    user_id: int,
    month: int,
    year: int,
    target_pnl: float | None = None,
    target_win_rate: float | None = None,
    max_trades_per_day: int | None = None,
) -> Goal:
    """Create or replace the targets for (user, month, year)."""
    goal = await get_goal(session, user_id, month, year)
    if goal is None:
        goal = Goal(user_id=user_id, month=month, year=year)
        session.add(goal)
    _apply_targets(goal, target_pnl, target_win_rate, max_trades_per_day)
    try:
        await session.commit()
    except IntegrityError:
        # Another request inserted the same month first; update its row instead
        await session.rollback()
        goal = await get_goal(session, user_id, month, year)
        if goal is None:
            raise
        _apply_targets(goal, target_pnl, target_win_rate, max_trades_per_day)
        await session.commit()
    await session.refresh(goal)
    return goal

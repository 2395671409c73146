"""Monthly goal routes."""

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.api.auth import require_user
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.store.goals import list_goals, upsert_goal

router = APIRouter(prefix="/api/goals", tags=["goals"])


class GoalRequest(BaseModel):
    """Targets for one month. Omitted or zero targets count as not set."""

    target_pnl: float | None = None
    target_win_rate: float | None = Field(None, ge=0, le=100)
    max_trades_per_day: int | None = Field(None, ge=0)


@router.get("/")
async def get_goals(user: User = Depends(require_user), db: AsyncSession = Depends(get_db)):
    goals = await list_goals(db, user.id)
    return {"goals": [g.to_dict() for g in goals]}


@router.put("/{year}/{month}")
async def set_goal(
    req: GoalRequest,
    year: int = Path(..., ge=1970, le=9999),
    month: int = Path(..., ge=1, le=12),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Create or replace the goal for year/month."""
    goal = await upsert_goal(
        db,
        user.id,
        month,
        year,
        target_pnl=req.target_pnl,
        target_win_rate=req.target_win_rate,
        max_trades_per_day=req.max_trades_per_day,
    )
    return {"goal": goal.to_dict()}

"""Notification preference routes."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.api.auth import require_user
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.store.notifications import (
    get_notification_settings,
    update_notification_settings,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationRequest(BaseModel):
    """Omitted flags keep their current value."""

    weekly_reports: bool | None = None
    goal_alerts: bool | None = None


@router.get("/")
async def get_preferences(user: User = Depends(require_user), db: AsyncSession = Depends(get_db)):
    prefs = await get_notification_settings(db, user.id)
    return {"settings": prefs.to_dict()}


@router.put("/")
async def set_preferences(
    req: NotificationRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    prefs = await update_notification_settings(
        db, user.id, weekly_reports=req.weekly_reports, goal_alerts=req.goal_alerts
    )
    return {"settings": prefs.to_dict()}

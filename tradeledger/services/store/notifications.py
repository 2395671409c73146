"""Notification preference persistence."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models.notification import NotificationSettings
from tradeledger.models.user import User


async def get_notification_settings(session: AsyncSession, user_id: int) -> NotificationSettings:
    """Settings row for the user, created with defaults on first access."""
    result = await session.execute(
        select(NotificationSettings).where(NotificationSettings.user_id == user_id)
    )
    prefs = result.scalar_one_or_none()
    if prefs is None:
        prefs = NotificationSettings(user_id=user_id, weekly_reports=True, goal_alerts=True)
        session.add(prefs)
        await session.commit()
        await session.refresh(prefs)
    return prefs


async def update_notification_settings(
    session: AsyncSession,
    user_id: int,
    weekly_reports: bool | None = None,
    goal_alerts: bool | None = None,
) -> NotificationSettings:
    prefs = await get_notification_settings(session, user_id)
    if weekly_reports is not None:
        prefs.weekly_reports = weekly_reports
    if goal_alerts is not None:
        prefs.goal_alerts = goal_alerts
    await session.commit()
    await session.refresh(prefs)
    return prefs


async def mark_weekly_report_sent(session: AsyncSession, user_id: int, sent_at: datetime) -> None:
    prefs = await get_notification_settings(session, user_id)
    prefs.last_weekly_report = sent_at
    await session.commit()


async def users_with_weekly_reports(session: AsyncSession) -> list[User]:
    result = await session.execute(
        select(User)
        .join(NotificationSettings, NotificationSettings.user_id == User.id)
        .where(NotificationSettings.weekly_reports.is_(True))
    )
    return list(result.scalars().all())

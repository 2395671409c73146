"""Scheduled jobs: weekly performance emails and passcode cleanup."""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone

from tradeledger.tasks import celery_app

logger = logging.getLogger(__name__)

REDIS_KEY_LAST_WEEKLY = "tradeledger:last_weekly_report_at"


def _run_async(coro):
    """Run an async coroutine from a sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def previous_week(today: date) -> tuple[date, date]:
    """Monday and Sunday of the full week before today."""
    this_monday = today - timedelta(days=today.weekday())
    start = this_monday - timedelta(days=7)
    return start, start + timedelta(days=6)


def _already_sent(last_sent: datetime | None, now: datetime) -> bool:
    if last_sent is None:
        return False
    if last_sent.tzinfo is None:
        last_sent = last_sent.replace(tzinfo=timezone.utc)
    return now - last_sent < timedelta(days=6)


@celery_app.task(bind=True, max_retries=1)
def send_weekly_reports(self) -> dict:
    """Email last week's summary to every user who opted in."""
    return _run_async(_send_weekly_reports_async())


async def _send_weekly_reports_async(now: datetime | None = None) -> dict:
    import redis.asyncio as aioredis

    from tradeledger.config import settings
    from tradeledger.database import async_session, engine
    from tradeledger.services.delivery import DeliveryService
    from tradeledger.services.reports import build_weekly_report
    from tradeledger.services.store.notifications import (
        get_notification_settings,
        mark_weekly_report_sent,
        users_with_weekly_reports,
    )
    from tradeledger.services.store.trades import list_trades

    now = now or datetime.now(timezone.utc)
    tz = settings.display_tzinfo
    week_start, week_end = previous_week(now.astimezone(tz).date())
    start = datetime.combine(week_start, time.min, tzinfo=tz)
    end = datetime.combine(week_end, time.max, tzinfo=tz)

    delivery = DeliveryService(settings)
    sent = skipped = failed = 0
    try:
        async with async_session() as session:
            for user in await users_with_weekly_reports(session):
                prefs = await get_notification_settings(session, user.id)
                if _already_sent(prefs.last_weekly_report, now):
                    skipped += 1
                    continue

                trades = await list_trades(session, user.id, start=start, end=end)
                report = build_weekly_report(user.name, trades, week_start, week_end)
                if await delivery.send_weekly_report(user.email, report):
                    await mark_weekly_report_sent(session, user.id, now)
                    sent += 1
                else:
                    failed += 1
    finally:
        await delivery.aclose()
        await engine.dispose()

    # Last run timestamp for operators; informational only
    try:
        r = aioredis.from_url(settings.redis_url, decode_responses=True)
        await r.set(REDIS_KEY_LAST_WEEKLY, now.isoformat())
        await r.aclose()
    except Exception as e:
        logger.warning("Could not record weekly report run in Redis: %s", e)

    summary = {
        "week_start": week_start.isoformat(),
        "week_end": week_end.isoformat(),
        "sent": sent,
        "skipped": skipped,
        "failed": failed,
    }
    logger.info("Weekly reports: %s", summary)
    return summary


@celery_app.task
def purge_otp_challenges() -> dict:
    """Delete consumed and expired passcode challenges."""
    return _run_async(_purge_otp_challenges_async())


async def _purge_otp_challenges_async() -> dict:
    from tradeledger.database import async_session, engine
    from tradeledger.services.store.challenges import purge_stale_challenges

    try:
        async with async_session() as session:
            removed = await purge_stale_challenges(session)
    finally:
        await engine.dispose()

    logger.info("Purged %d stale passcode challenge(s)", removed)
    return {"removed": removed}

"""Celery app and task registration."""

from celery import Celery
from celery.schedules import crontab

from tradeledger.config import settings

celery_app = Celery(
    "tradeledger",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        # Weekly performance email: Mondays 08:00 UTC, covering the previous Mon-Sun
        "send-weekly-reports": {
            "task": "tradeledger.tasks.report_tasks.send_weekly_reports",
            "schedule": crontab(minute=0, hour=8, day_of_week="1"),
        },
        # Drop spent and expired passcodes every hour
        "purge-otp-challenges-1h": {
            "task": "tradeledger.tasks.report_tasks.purge_otp_challenges",
            "schedule": crontab(minute=0),
        },
    },
)

# Import tasks so Celery discovers them
from tradeledger.tasks import report_tasks  # noqa: F401, E402

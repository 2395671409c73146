"""Per-user notification preferences."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from tradeledger.database import Base


class NotificationSettings(Base):
    __tablename__ = "notification_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    weekly_reports: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    goal_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_weekly_report: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def to_dict(self) -> dict:
        return {
            "weekly_reports": self.weekly_reports,
            "goal_alerts": self.goal_alerts,
            "last_weekly_report": (
                self.last_weekly_report.isoformat() if self.last_weekly_report else None
            ),
        }

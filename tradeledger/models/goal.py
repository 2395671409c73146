"""Monthly goal model."""

from sqlalchemy import Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tradeledger.database import Base


class Goal(Base):
    """One goal row per (user, month, year). Targets are optional."""

    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-12
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    target_pnl: Mapped[float | None] = mapped_column(Float, nullable=True)
    target_win_rate: Mapped[float | None] = mapped_column(Float, nullable=True)  # percent
    max_trades_per_day: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "month", "year", name="uq_goals_user_month"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "month": self.month,
            "year": self.year,
            "target_pnl": self.target_pnl,
            "target_win_rate": self.target_win_rate,
            "max_trades_per_day": self.max_trades_per_day,
        }

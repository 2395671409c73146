"""SQLAlchemy models for TradeLedger."""

from tradeledger.models.auth import AuthSession, OtpChallenge
from tradeledger.models.goal import Goal
from tradeledger.models.journal import Mistake, TradingRule
from tradeledger.models.notification import NotificationSettings
from tradeledger.models.trade import Trade
from tradeledger.models.user import User

__all__ = [
    "AuthSession",
    "Goal",
    "Mistake",
    "NotificationSettings",
    "OtpChallenge",
    "Trade",
    "TradingRule",
    "User",
]

"""Shared test fixtures."""

import os

# Must be set before tradeledger.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

from datetime import datetime, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import tradeledger.models  # noqa: E402, F401
from tradeledger.config import Settings  # noqa: E402
from tradeledger.database import Base  # noqa: E402
from tradeledger.services.analytics import compute_profit_loss  # noqa: E402
from tradeledger.services.delivery import DeliveryService  # noqa: E402


def make_trade(**kwargs) -> SimpleNamespace:
    """Helper to create in-memory trade records with sensible defaults.

    profit_loss and status follow the exit price unless given explicitly.
    """
    defaults = {
        "id": None,
        "symbol": "AAPL",
        "trade_type": "BUY",
        "instrument_type": "STOCK",
        "entry_price": 100.0,
        "exit_price": None,
        "quantity": 10.0,
        "stop_loss": None,
        "take_profit": None,
        "notes": None,
        "is_starred": False,
        "trade_date": datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc),
    }
    defaults.update(kwargs)
    if "profit_loss" not in kwargs:
        defaults["profit_loss"] = compute_profit_loss(
            defaults["trade_type"], defaults["entry_price"], defaults["exit_price"], defaults["quantity"]
        )
    if "status" not in kwargs:
        defaults["status"] = "CLOSED" if defaults["exit_price"] is not None else "OPEN"
    return SimpleNamespace(**defaults)


def make_closed(pnl: float, day: int = 2, **kwargs) -> SimpleNamespace:
    """Closed trade with a given P&L on 2026-03-<day>."""
    kwargs.setdefault("trade_date", datetime(2026, 3, day, 15, 0, tzinfo=timezone.utc))
    return make_trade(exit_price=100.0 + pnl / 10.0, profit_loss=pnl, **kwargs)


@pytest.fixture
def quiet_settings() -> Settings:
    """Settings with no delivery channel configured."""
    return Settings(
        _env_file=None,
        smtp_user="",
        smtp_password="",
        sms_gateway_url="",
        anthropic_api_key="",
    )


@pytest.fixture
def delivery(quiet_settings) -> DeliveryService:
    return DeliveryService(quiet_settings)


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session

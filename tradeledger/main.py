"""TradeLedger: FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from tradeledger import __version__
from tradeledger.api import analytics, auth, chat, goals, mistakes, notifications, rules, trades
from tradeledger.config import Settings, settings
from tradeledger.database import engine
from tradeledger.services.assistant import TradingAssistant
from tradeledger.services.delivery import DeliveryService

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def log_config_warnings(config: Settings) -> None:
    """Make insecure development fallbacks visible at startup."""
    if config.demo_otp_allowed:
        logger.warning("Passcode demo mode is enabled (app_env=%s)", config.app_env)
    if not config.secret_key and config.app_env == "development":
        logger.warning("SECRET_KEY is not set; sessions are signed with the development fallback key")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: verify DB, build shared delivery and assistant clients. Shutdown: close them."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connected successfully")
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        raise

    app.state.delivery = DeliveryService(settings)
    app.state.assistant = TradingAssistant(settings)
    log_config_warnings(settings)

    yield

    await app.state.assistant.aclose()
    await app.state.delivery.aclose()
    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="TradeLedger",
    description="Personal trading journal with two-factor login and performance analytics",
    version=__version__,
    lifespan=lifespan,
)

# CORS: restrict in production, allow localhost in development
_allowed_origins = (
    ["http://localhost:8000", "http://localhost:3000"]
    if settings.app_env == "development"
    else settings.allowed_hosts.split(",")
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth.router)
app.include_router(trades.router)
app.include_router(goals.router)
app.include_router(mistakes.router)
app.include_router(rules.router)
app.include_router(notifications.router)
app.include_router(analytics.router)
app.include_router(chat.router)


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


@app.get("/api")
async def api_root():
    return {
        "name": "TradeLedger",
        "version": __version__,
        "status": "running",
        "demo_mode": settings.demo_otp_allowed,
    }

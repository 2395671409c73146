"""Chat assistant route."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.api.auth import require_user
from tradeledger.config import settings
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.assistant import (
    AssistantUnavailable,
    TradingAssistant,
    build_context_prompt,
)
from tradeledger.services.store.goals import list_goals
from tradeledger.services.store.journal import list_mistakes, list_rules
from tradeledger.services.store.notifications import get_notification_settings
from tradeledger.services.store.trades import list_trades

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_assistant(request: Request) -> TradingAssistant:
    return request.app.state.assistant


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)


@router.post("/")
async def chat(
    req: ChatRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    assistant: TradingAssistant = Depends(get_assistant),
):
    """Answer a question about the user's own journal."""
    trades = await list_trades(db, user.id)
    goals = await list_goals(db, user.id)
    mistakes = await list_mistakes(db, user.id)
    rules = await list_rules(db, user.id)
    prefs = await get_notification_settings(db, user.id)

    tz = settings.display_tzinfo
    today = datetime.now(timezone.utc).astimezone(tz).date()
    prompt = build_context_prompt(
        trades, goals, mistakes, rules, prefs, today=today, currency=settings.currency_symbol, tz=tz
    )

    try:
        reply = await assistant.generate(prompt, req.message)
    except AssistantUnavailable as e:
        logger.warning("Chat for user %d failed: %s", user.id, e)
        raise HTTPException(status_code=503, detail=str(e))
    return {"response": reply}

"""Mistake log routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.api.auth import require_user
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.store.journal import (
    create_mistake,
    delete_mistake,
    increment_mistake_frequency,
    list_mistakes,
)

router = APIRouter(prefix="/api/mistakes", tags=["mistakes"])


class MistakeRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    category: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=5000)


@router.get("/")
async def get_mistakes(user: User = Depends(require_user), db: AsyncSession = Depends(get_db)):
    """Tracked mistakes, most frequent first."""
    mistakes = await list_mistakes(db, user.id)
    return {"mistakes": [m.to_dict() for m in mistakes]}


@router.post("/", status_code=201)
async def add_mistake(
    req: MistakeRequest, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    mistake = await create_mistake(db, user.id, req.title, req.category, req.description)
    return {"mistake": mistake.to_dict()}


@router.post("/{mistake_id}/increment")
async def repeat_mistake(
    mistake_id: int, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    """Record another occurrence."""
    mistake = await increment_mistake_frequency(db, user.id, mistake_id)
    if mistake is None:
        raise HTTPException(status_code=404, detail="Mistake not found")
    return {"mistake": mistake.to_dict()}


@router.delete("/{mistake_id}")
async def remove_mistake(
    mistake_id: int, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    if not await delete_mistake(db, user.id, mistake_id):
        raise HTTPException(status_code=404, detail="Mistake not found")
    return {"message": "Mistake deleted successfully"}

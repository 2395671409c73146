"""Trading rules checklist routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.api.auth import require_user
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.store.journal import (
    create_rule,
    delete_rule,
    list_rules,
    toggle_rule_active,
)

router = APIRouter(prefix="/api/rules", tags=["rules"])


class RuleRequest(BaseModel):
    rule: str = Field(..., min_length=1, max_length=1000)


@router.get("/")
async def get_rules(
    active_only: bool = Query(False),
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    rules = await list_rules(db, user.id, active_only=active_only)
    return {"rules": [r.to_dict() for r in rules]}


@router.post("/", status_code=201)
async def add_rule(
    req: RuleRequest, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    """Append a rule to the end of the checklist."""
    rule = await create_rule(db, user.id, req.rule.strip())
    return {"rule": rule.to_dict()}


@router.post("/{rule_id}/toggle")
async def toggle_rule(
    rule_id: int, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    rule = await toggle_rule_active(db, user.id, rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"rule": rule.to_dict()}


@router.delete("/{rule_id}")
async def remove_rule(
    rule_id: int, user: User = Depends(require_user), db: AsyncSession = Depends(get_db)
):
    if not await delete_rule(db, user.id, rule_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"message": "Rule deleted successfully"}

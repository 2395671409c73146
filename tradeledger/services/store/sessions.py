"""Authenticated session rows."""

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models.auth import AuthSession
from tradeledger.services.store import as_utc


async def create_session(
    session: AsyncSession, user_id: int, created_at: datetime, expires_at: datetime
) -> AuthSession:
    record = AuthSession(user_id=user_id, created_at=created_at, expires_at=expires_at)
    session.add(record)
    await session.commit()
    await session.refresh(record)
    record.expires_at = as_utc(record.expires_at)
    return record


async def get_session(session: AsyncSession, session_id: int) -> AuthSession | None:
    record = await session.get(AuthSession, session_id)
    if record is not None:
        record.expires_at = as_utc(record.expires_at)
        record.revoked_at = as_utc(record.revoked_at)
    return record


async def destroy_session(session: AsyncSession, session_id: int, now: datetime) -> bool:
    """Revoke a session. False if it was already revoked or never existed."""
    result = await session.execute(
        update(AuthSession)
        .where(AuthSession.id == session_id, AuthSession.revoked_at.is_(None))
        .values(revoked_at=now)
    )
    await session.commit()
    return result.rowcount == 1

"""OTP challenge persistence.

Consumption is a single conditional UPDATE so a passcode can be spent at
most once even when two verifications race.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models.auth import OtpChallenge
from tradeledger.services.store import as_utc


def _normalize(challenge: OtpChallenge | None) -> OtpChallenge | None:
    if challenge is not None:
        challenge.created_at = as_utc(challenge.created_at)
        challenge.expires_at = as_utc(challenge.expires_at)
    return challenge


async def create_otp_challenge(
    session: AsyncSession,
    user_id: int,
    passcode: str,
    delivery_method: str,
    created_at: datetime,
    expires_at: datetime,
) -> OtpChallenge:
    """Issue a challenge, consuming every earlier unconsumed one for the user."""
    await session.execute(
        update(OtpChallenge)
        .where(OtpChallenge.user_id == user_id, OtpChallenge.consumed.is_(False))
        .values(consumed=True, consumed_at=created_at)
    )
    challenge = OtpChallenge(
        user_id=user_id,
        passcode=passcode,
        delivery_method=delivery_method,
        attempts=0,
        consumed=False,
        created_at=created_at,
        expires_at=expires_at,
    )
    session.add(challenge)
    await session.commit()
    await session.refresh(challenge)
    return _normalize(challenge)


async def fetch_active_otp_challenge(session: AsyncSession, user_id: int) -> OtpChallenge | None:
    """Latest unconsumed challenge for the user. Expiry is left to the caller."""
    result = await session.execute(
        select(OtpChallenge)
        .where(OtpChallenge.user_id == user_id, OtpChallenge.consumed.is_(False))
        .order_by(OtpChallenge.created_at.desc(), OtpChallenge.id.desc())
        .limit(1)
    )
    return _normalize(result.scalar_one_or_none())


async def consume_otp_challenge(session: AsyncSession, challenge_id: int, now: datetime) -> bool:
    """Mark consumed. True only for the caller that flipped it."""
    result = await session.execute(
        update(OtpChallenge)
        .where(OtpChallenge.id == challenge_id, OtpChallenge.consumed.is_(False))
        .values(consumed=True, consumed_at=now)
    )
    await session.commit()
    return result.rowcount == 1


async def record_failed_attempt(
    session: AsyncSession, challenge_id: int, max_attempts: int, now: datetime
) -> int:
    """Bump the attempt counter; consume the challenge once it hits max_attempts.

    Returns the new attempt count.
    """
    await session.execute(
        update(OtpChallenge)
        .where(OtpChallenge.id == challenge_id)
        .values(attempts=OtpChallenge.attempts + 1)
    )
    await session.execute(
        update(OtpChallenge)
        .where(
            OtpChallenge.id == challenge_id,
            OtpChallenge.consumed.is_(False),
            OtpChallenge.attempts >= max_attempts,
        )
        .values(consumed=True, consumed_at=now)
    )
    await session.commit()
    result = await session.execute(
        select(OtpChallenge.attempts).where(OtpChallenge.id == challenge_id)
    )
    return result.scalar_one()


async def purge_stale_challenges(session: AsyncSession, now: datetime | None = None) -> int:
    """Delete consumed and expired challenges. Returns rows removed."""
    now = now or datetime.now(timezone.utc)
    result = await session.execute(
        delete(OtpChallenge).where(
            or_(OtpChallenge.consumed.is_(True), OtpChallenge.expires_at < now)
        )
    )
    await session.commit()
    return result.rowcount

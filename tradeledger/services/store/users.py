"""User lookup and creation."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.models.notification import NotificationSettings
from tradeledger.models.user import User
from tradeledger.services.auth.passwords import verify_password


async def find_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: int) -> User | None:
    return await session.get(User, user_id)


def verify_password_hash(user: User | None, password: str) -> bool:
    """False for a missing user, after the same amount of hashing work."""
    return verify_password(password, user.password_hash if user is not None else None)


async def create_user(
    session: AsyncSession, name: str, email: str, phone: str | None, password_hash: str
) -> User:
    """Create a user with default notification settings."""
    user = User(
        name=name.strip(),
        email=email.strip().lower(),
        phone=phone or None,
        password_hash=password_hash,
    )
    session.add(user)
    await session.flush()
    session.add(NotificationSettings(user_id=user.id, weekly_reports=True, goal_alerts=True))
    await session.commit()
    await session.refresh(user)
    return user

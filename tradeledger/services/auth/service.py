"""Login state machine: credentials -> one-time passcode -> session.

    ANONYMOUS -> CREDENTIALS_SUBMITTED -> OTP_PENDING -> AUTHENTICATED
                         ^                    |  ^
                         |  expired / too     |  | resend
                         +--- many attempts --+--+

Only the newest passcode for a user is ever honoured. Expiry is checked
against the server clock on every verification; the expires_in value handed
to clients is for display only.
"""

import hmac
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.config import Settings, settings
from tradeledger.models.user import User
from tradeledger.services.auth.errors import (
    CodeMismatch,
    DeliveryUnavailable,
    EmailAlreadyRegistered,
    ExpiredChallenge,
    InvalidCredentials,
    MissingContact,
    NoActiveChallenge,
    Unauthorized,
)
from tradeledger.services.auth.passwords import hash_password
from tradeledger.services.auth.tokens import decode_session_token, encode_session_token
from tradeledger.services.delivery import Channel, DeliveryService
from tradeledger.services.store.challenges import (
    consume_otp_challenge,
    create_otp_challenge,
    fetch_active_otp_challenge,
    record_failed_attempt,
)
from tradeledger.services.store.sessions import create_session, destroy_session, get_session
from tradeledger.services.store.users import (
    create_user,
    find_user_by_email,
    get_user,
    verify_password_hash,
)

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    ANONYMOUS = "anonymous"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    OTP_PENDING = "otp_pending"
    AUTHENTICATED = "authenticated"


@dataclass
class OtpIssued:
    """Result of login/resend. demo_otp is only set in demo mode."""

    user_id: int
    delivery_method: str
    destination: str
    expires_at: datetime
    expires_in: int
    demo_mode: bool = False
    demo_otp: str | None = None
    state: AuthState = AuthState.OTP_PENDING


@dataclass
class AuthenticatedSession:
    token: str
    session_id: int
    expires_at: datetime
    user: dict = field(default_factory=dict)
    state: AuthState = AuthState.AUTHENTICATED


@dataclass
class ChallengeStatus:
    state: AuthState
    expires_in: int = 0


def generate_passcode(length: int = 6) -> str:
    """Uniform random numeric code from the OS CSPRNG, zero-padded."""
    return f"{secrets.randbelow(10**length):0{length}d}"


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    visible = local[:2]
    return f"{visible}{'*' * max(len(local) - len(visible), 1)}@{domain}"


def mask_phone(phone: str) -> str:
    digits = "".join(ch for ch in phone if ch.isdigit())
    if len(digits) <= 4:
        return "*" * len(digits)
    return "*" * (len(digits) - 4) + digits[-4:]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Two-factor login against the store, for one request's DB session.

    clock and passcode_factory are injectable so tests can move time and
    pin codes. demo_mode defaults to the configured capability.
    """

    def __init__(
        self,
        db: AsyncSession,
        delivery: DeliveryService,
        config: Settings = settings,
        clock: Callable[[], datetime] = _utcnow,
        passcode_factory: Callable[[], str] | None = None,
        demo_mode: bool | None = None,
    ) -> None:
        self._db = db
        self._delivery = delivery
        self._config = config
        self._clock = clock
        self._passcode_factory = passcode_factory or (lambda: generate_passcode(config.otp_length))
        self._demo_mode = config.demo_otp_allowed if demo_mode is None else demo_mode

    async def signup(self, name: str, email: str, phone: str | None, password: str) -> User:
        if await find_user_by_email(self._db, email) is not None:
            raise EmailAlreadyRegistered()
        try:
            user = await create_user(self._db, name, email, phone, hash_password(password))
        except IntegrityError:
            await self._db.rollback()
            raise EmailAlreadyRegistered()
        logger.info("User %d signed up", user.id)
        return user

    async def login(self, email: str, password: str, delivery_method: str = "email") -> OtpIssued:
        """Check credentials and issue a passcode over the requested channel."""
        user = await find_user_by_email(self._db, email)
        if not verify_password_hash(user, password):
            logger.info("Failed login attempt")
            raise InvalidCredentials()
        return await self._issue_challenge(user, delivery_method)

    async def resend_otp(self, user_id: int, delivery_method: str = "email") -> OtpIssued:
        """Replace the user's passcode with a fresh one and a fresh expiry window."""
        user = await get_user(self._db, user_id)
        if user is None:
            raise InvalidCredentials()
        return await self._issue_challenge(user, delivery_method)

    async def verify_otp(self, user_id: int, submitted_code: str) -> AuthenticatedSession:
        """Exchange a correct, unexpired passcode for a session. Each code works once."""
        challenge = await fetch_active_otp_challenge(self._db, user_id)
        if challenge is None:
            raise NoActiveChallenge()

        now = self._clock()
        if now > challenge.expires_at:
            raise ExpiredChallenge()

        if not hmac.compare_digest(challenge.passcode.encode(), str(submitted_code).encode()):
            attempts = await record_failed_attempt(
                self._db, challenge.id, self._config.otp_max_attempts, now
            )
            logger.info("Wrong passcode for user %d (attempt %d)", user_id, attempts)
            if attempts >= self._config.otp_max_attempts:
                raise CodeMismatch("Too many incorrect codes. Please log in again.")
            raise CodeMismatch()

        # A concurrent verification may have spent it between fetch and here
        if not await consume_otp_challenge(self._db, challenge.id, now):
            raise CodeMismatch()

        user = await get_user(self._db, user_id)
        if user is None:
            raise NoActiveChallenge()

        expires_at = now + timedelta(hours=self._config.session_ttl_hours)
        record = await create_session(self._db, user.id, now, expires_at)
        token = encode_session_token(record.id, user.id, expires_at)
        logger.info("User %d authenticated, session %d", user.id, record.id)

        return AuthenticatedSession(
            token=token, session_id=record.id, expires_at=expires_at, user=user.to_profile()
        )

    async def challenge_status(self, user_id: int) -> ChallengeStatus:
        """Where a pending login stands, with seconds left for a countdown display."""
        challenge = await fetch_active_otp_challenge(self._db, user_id)
        if challenge is None:
            return ChallengeStatus(state=AuthState.CREDENTIALS_SUBMITTED)
        remaining = int((challenge.expires_at - self._clock()).total_seconds())
        if remaining < 0:
            return ChallengeStatus(state=AuthState.CREDENTIALS_SUBMITTED)
        return ChallengeStatus(state=AuthState.OTP_PENDING, expires_in=remaining)

    async def authenticate(self, token: str | None) -> User:
        """Resolve a session token to its user or raise Unauthorized."""
        if not token:
            raise Unauthorized()
        session_id, user_id = decode_session_token(token)

        record = await get_session(self._db, session_id)
        if record is None or record.user_id != user_id or record.revoked_at is not None:
            raise Unauthorized()
        if self._clock() >= record.expires_at:
            raise Unauthorized("Session expired")

        user = await get_user(self._db, user_id)
        if user is None:
            raise Unauthorized()
        return user

    async def logout(self, token: str | None) -> None:
        if not token:
            return
        session_id, user_id = decode_session_token(token)
        if await destroy_session(self._db, session_id, self._clock()):
            logger.info("User %d logged out, session %d revoked", user_id, session_id)

    async def _issue_challenge(self, user: User, delivery_method: str) -> OtpIssued:
        channel = Channel(delivery_method)
        if channel is Channel.PHONE:
            if not user.phone:
                raise MissingContact()
            destination, masked = user.phone, mask_phone(user.phone)
        else:
            destination, masked = user.email, mask_email(user.email)

        now = self._clock()
        code = self._passcode_factory()
        challenge = await create_otp_challenge(
            self._db,
            user.id,
            code,
            channel.value,
            created_at=now,
            expires_at=now + timedelta(seconds=self._config.otp_ttl_seconds),
        )

        issued = OtpIssued(
            user_id=user.id,
            delivery_method=channel.value,
            destination=masked,
            expires_at=challenge.expires_at,
            expires_in=self._config.otp_ttl_seconds,
        )

        # Demo mode stands in for a missing channel only, never for a failed send
        if self._demo_mode and not self._delivery.is_delivery_configured(channel):
            logger.warning(
                "DEMO MODE: %s delivery is not configured. Returning passcode for user %d to the caller",
                channel.value,
                user.id,
            )
            issued.demo_mode = True
            issued.demo_otp = code
            return issued

        try:
            await self._delivery.send_otp(destination, code, channel)
        except DeliveryUnavailable as e:
            logger.error("Passcode delivery failed for user %d: %s", user.id, e)
            await consume_otp_challenge(self._db, challenge.id, now)
            raise

        logger.info("Passcode sent to user %d by %s", user.id, channel.value)
        return issued

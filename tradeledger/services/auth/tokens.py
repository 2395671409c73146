"""Signed session tokens (JWT). The token names a server-side session row."""

from datetime import datetime

import jwt

from tradeledger.config import settings
from tradeledger.services.auth.errors import Unauthorized


def encode_session_token(session_id: int, user_id: int, expires_at: datetime) -> str:
    payload = {"sub": str(user_id), "sid": session_id, "exp": expires_at}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> tuple[int, int]:
    """Return (session_id, user_id) or raise Unauthorized."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return int(payload["sid"]), int(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Session expired")
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise Unauthorized("Invalid session token")

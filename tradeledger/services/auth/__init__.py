"""Two-factor login: password check, one-time passcode, session issuance.

The flow lives in tradeledger.services.auth.service.AuthService.
"""

from tradeledger.services.auth.errors import (
    AuthError,
    CodeMismatch,
    DeliveryUnavailable,
    EmailAlreadyRegistered,
    ExpiredChallenge,
    InvalidCredentials,
    MissingContact,
    NoActiveChallenge,
    Unauthorized,
)

__all__ = [
    "AuthError",
    "CodeMismatch",
    "DeliveryUnavailable",
    "EmailAlreadyRegistered",
    "ExpiredChallenge",
    "InvalidCredentials",
    "MissingContact",
    "NoActiveChallenge",
    "Unauthorized",
]

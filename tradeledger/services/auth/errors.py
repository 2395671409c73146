"""Errors raised by the login flow. Messages are safe to show to users."""


class AuthError(Exception):
    """Base class. status_code is the HTTP status routes respond with."""

    status_code = 400
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class InvalidCredentials(AuthError):
    # Same message for unknown email and wrong password
    status_code = 401
    default_message = "Invalid email or password"


class NoActiveChallenge(AuthError):
    default_message = "No active verification code. Please log in again."


class ExpiredChallenge(AuthError):
    default_message = "Verification code has expired. Please request a new one."


class CodeMismatch(AuthError):
    default_message = "Invalid verification code"


class DeliveryUnavailable(AuthError):
    """Delivery channel is unconfigured or the send failed."""

    status_code = 503
    default_message = "Verification code could not be delivered"


class MissingContact(AuthError):
    default_message = "No phone number on file for this account"


class EmailAlreadyRegistered(AuthError):
    status_code = 409
    default_message = "An account with this email already exists"


class Unauthorized(AuthError):
    status_code = 401
    default_message = "Unauthorized"

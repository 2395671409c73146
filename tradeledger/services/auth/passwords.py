"""Password hashing (argon2 via passlib)."""

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# Verified against when the email is unknown so both failure paths cost the same
_DUMMY_HASH = pwd_context.hash("tradeledger-dummy-password")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password. A None hash still burns one verification and returns False."""
    if password_hash is None:
        pwd_context.verify(password, _DUMMY_HASH)
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unrecognized or corrupt hash
        return False

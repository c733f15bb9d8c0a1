import secrets
from datetime import datetime, timedelta, timezone

import bcrypt

from scholar.core.config import settings

OTP_MIN = 100000
OTP_MAX = 999999

# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            _password_bytes(plain_password),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(
        _password_bytes(password),
        bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    ).decode("utf-8")


def generate_otp() -> str:
    """Return a fresh 6-digit numeric one-time code."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def otp_expiry(now: datetime | None = None) -> datetime:
    """Expiry timestamp for an OTP issued at ``now``."""
    return (now or utcnow()) + timedelta(minutes=settings.otp_ttl_minutes)


def otp_matches(stored: str | None, candidate: str) -> bool:
    if not stored:
        return False
    return secrets.compare_digest(stored.encode("utf-8"), candidate.encode("utf-8"))

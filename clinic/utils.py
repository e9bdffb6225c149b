import re
import jwt
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Dict, Any

from .core.config import settings

_NON_DIGITS = re.compile(r"\D")


def utcnow() -> datetime:
    """Naive UTC timestamp used for audit columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =========================
# Input normalization
# =========================
def is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


def normalize_phone(phone: Optional[str]) -> str:
    """Strip every non-digit character."""
    if phone is None:
        return ""
    return _NON_DIGITS.sub("", phone)


def name_key(name: str) -> str:
    return " ".join(name.split()).lower()


def parse_local_datetime(value: str) -> datetime:
    """Parse an ISO-8601 date-time into a naive server-local datetime.

    Offsets (including a trailing ``Z``) are converted to local time and
    dropped; values without an offset are taken as already local.
    Raises ValueError on malformed input.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_iso_date(value: str) -> date:
    """Parse ``YYYY-MM-DD``; a full ISO date-time is accepted and truncated.

    The calendar date is taken as written, any offset is ignored.
    """
    text = value.strip()
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError:
        pass
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).date()


def parse_hhmm(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()


# =========================
# JWT Token Handling
# =========================
def secret_configured() -> bool:
    return bool(settings.SECRET_KEY and settings.SECRET_KEY != "change-me-in-prod")


def create_jwt_token(data: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """Create JWT access token with expiration"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})

    if not secret_configured():
        raise ValueError("SECRET_KEY not properly configured")

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_jwt_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify JWT token"""
    if not secret_configured():
        return None
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

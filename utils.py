from passlib.context import CryptContext
import jwt
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional, Dict, Any

from config import Settings
from errors import NotFound


@lru_cache(maxsize=None)
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, rounds: int = 12) -> str:
    return _pwd_context(rounds).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    # the hash carries its own cost, any context can verify it
    return _pwd_context(12).verify(plain_password, hashed_password)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_access_token(
    data: Dict[str, Any], settings: Settings, expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    """Decode and verify JWT access token"""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None


def to_object_id(value: str, resource: str = "Resource") -> ObjectId:
    """Parse a path/body id; malformed ids are reported as missing documents."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFound(f"{resource} not found")


def full_name(user: Dict[str, Any]) -> str:
    return f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()


def format_relative_time(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    if moment is None:
        return ""
    now = now or utcnow()
    seconds = int((now - moment).total_seconds())

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    if seconds < 604800:
        return f"{seconds // 86400} days ago"
    if seconds < 2592000:
        return f"{seconds // 604800} weeks ago"
    return f"{seconds // 2592000} months ago"

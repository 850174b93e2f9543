"""
JWT and password utilities
"""

from calendar import timegm
from datetime import datetime, timedelta
from jose import JWTError, jwt
from passlib.context import CryptContext
from typing import Dict, Optional
import uuid

from travel_crm.core.config import get_settings

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def to_epoch(value: datetime) -> int:
    """Naive UTC datetime to whole epoch seconds"""
    return timegm(value.utctimetuple())


def create_access_token(
    user_id: uuid.UUID,
    tenant_id: uuid.UUID,
    role: str,
    expires_delta: Optional[timedelta] = None,
    issued_at: Optional[datetime] = None,
) -> str:
    """Create JWT access token with user claims"""
    now = issued_at or datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "role": role,
        "jti": uuid.uuid4().hex,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Decode and validate JWT token (signature and expiry)"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    if not payload.get("sub") or not payload.get("jti") or "iat" not in payload:
        return None
    return payload


def seconds_until_expiry(payload: Dict) -> int:
    """Remaining lifetime of a decoded token, at least one second"""
    remaining = int(payload.get("exp", 0)) - to_epoch(datetime.utcnow())
    return max(remaining, 1)

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict
from jose import ExpiredSignatureError, JWTError, jwt
from lockbox.config import settings


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token for an account"""
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(days=settings.JWT_EXPIRE_DAYS)

    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": "access"
    }

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict:
    """Decode and validate JWT access token"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except ExpiredSignatureError:
        raise ValueError("Token has expired. Please log in again")
    except JWTError:
        raise ValueError("Invalid token")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise ValueError("Invalid token")

    return payload

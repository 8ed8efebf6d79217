"""
Bearer token verification. Tokens are issued by the auth service and signed with
the shared JWT_SECRET_KEY; create_access_token is for tests and local tooling.
"""
import logging
from datetime import timedelta
from typing import Dict, Optional
from jose import JWTError, jwt
from app.core.config import settings
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def create_access_token(data: Dict, expires_minutes: Optional[int] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()

    if expires_minutes is None:
        expires_minutes = settings.JWT_EXPIRE_MINUTES

    expire = now_utc() + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def decode_token(token: str) -> Dict:
    """Decode and verify a JWT token"""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        logger.debug("Rejected bearer token", exc_info=True)
        raise ValueError("Invalid token")

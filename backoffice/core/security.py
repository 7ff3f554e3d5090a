import logging
from datetime import timedelta
from typing import Any, Optional

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from backoffice.core.config import Settings, get_settings
from backoffice.core.time_utils import utcnow

logger = logging.getLogger(__name__)

ACCESS = "access"
EMAIL_CONFIRMATION = "email_confirmation"
PASSWORD_RESET = "password_reset"

BCRYPT_ROUNDS = 10

# Bearer token extractor (auto_error=False allows optional auth)
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_token(
    subject: str,
    purpose: str = ACCESS,
    expires_in: Optional[timedelta] = None,
    settings: Settings | None = None,
    **claims: Any,
) -> str:
    """Sign a JWT for ``subject``; ``purpose`` keeps token kinds from being swapped."""
    settings = settings or get_settings()
    now = utcnow()
    expires_in = expires_in or timedelta(minutes=settings.jwt_expires_minutes)
    payload = {
        **claims,
        "sub": str(subject),
        "purpose": purpose,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, purpose: str = ACCESS, settings: Settings | None = None) -> dict:
    """Verify a JWT and return its payload. Raises JWTError when invalid."""
    settings = settings or get_settings()
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    if payload.get("purpose") != purpose:
        raise JWTError(f"Token purpose mismatch: expected {purpose}")
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Require a valid access token - raises 401 if not authenticated."""
    if not credentials:
        logger.warning("Auth required but no Bearer token provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_token(credentials.credentials)
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

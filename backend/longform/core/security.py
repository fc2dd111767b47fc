"""
Caller context for the longform editor.

Authentication and tenant scoping happen upstream. This module only
verifies the bearer JWT issued there and exposes the validated
(caller, organization) pair to route handlers.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import get_settings

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = 24

# HTTP Bearer token scheme
security = HTTPBearer()


@dataclass(frozen=True)
class CallerContext:
    """Validated caller and organization."""
    user_id: str
    organization_id: str


def create_access_token(
    user_id: str,
    organization_id: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token carrying caller and organization claims.

    Args:
        user_id: Caller ID, stored in the ``sub`` claim
        organization_id: Organization ID, stored in the ``org`` claim
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)

    now = datetime.utcnow()
    to_encode = {
        "sub": user_id,
        "org": organization_id,
        "exp": now + expires_delta,
        "iat": now,
    }
    return jwt.encode(to_encode, get_settings().secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If token is invalid or expired
    """
    return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])


async def get_caller_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CallerContext:
    """
    FastAPI dependency returning the validated caller context.

    Raises:
        HTTPException: 401 if the token is invalid or lacks caller/organization claims
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": "unauthorized", "message": "Invalid or expired token"},
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise credentials_exception

    user_id = payload.get("sub")
    organization_id = payload.get("org")
    if not user_id or not organization_id:
        raise credentials_exception

    return CallerContext(user_id=user_id, organization_id=organization_id)

"""
Authentication Utilities

This module provides authentication and authorization utilities
including JWT token handling, user verification and the shared-secret
check guarding the cron endpoint.
"""

import hmac
from datetime import timedelta
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from postpilot.config.settings import get_settings
from postpilot.integrations.firestore import FirestoreClient, get_firestore_client
from postpilot.models.user import User, UserRole
from postpilot.utils.time import utcnow

# Initialize HTTP Bearer token scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

# Logger
logger = structlog.get_logger(__name__)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Data to encode in the token, ``sub`` holding the user id
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    settings = get_settings()

    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded token payload or None if invalid
    """
    settings = get_settings()

    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.PyJWTError as e:
        logger.warning("Token verification failed", error=str(e))
        return None


def get_user_id_from_token(token: str) -> Optional[str]:
    payload = verify_token(token)
    if payload:
        return payload.get("sub")
    return None


async def get_current_user(
    token: HTTPAuthorizationCredentials = Depends(security),
    db: FirestoreClient = Depends(get_firestore_client)
) -> User:
    """
    Get current authenticated user from JWT token.

    Raises:
        HTTPException: If token is invalid, the user is unknown or inactive
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = get_user_id_from_token(token.credentials)
    if user_id is None:
        raise credentials_exception

    user = await db.get_user(user_id)
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user",
        )

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency allowing only admin users through."""
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return current_user


def is_valid_cron_secret(authorization: Optional[str]) -> bool:
    """True when the header is exactly ``Bearer <CRON_SECRET>`` and a secret is configured."""
    secret = get_settings().cron_secret
    if not secret or not authorization:
        return False
    return hmac.compare_digest(authorization, f"Bearer {secret}")


def verify_cron_secret(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)
) -> None:
    """Dependency guarding the cron endpoint with the shared secret."""
    authorization = f"{credentials.scheme} {credentials.credentials}" if credentials else None
    if not is_valid_cron_secret(authorization):
        logger.warning("Rejected cron request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )

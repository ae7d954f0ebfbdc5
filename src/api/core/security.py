from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID
from jose import JWTError, jwt
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.config import settings
from src.api.core.database import get_db
from src.api.core.ownership import Actor
from src.api.models.enums import UserType
from src.api.models.profile import Profile
from src.utils.errors import Unauthorized

# HTTP Bearer token scheme; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create JWT access token

    Production tokens come from the identity provider; this mirrors its
    claims for local development and tests.

    Args:
        data: Data to encode in token (typically {"sub": user_id})
        expires_delta: Token expiration time (default: 30 minutes)

    Returns:
        Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire, "type": "access"})

    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )

    return encoded_jwt


def decode_token(token: str) -> dict:
    """
    Decode and validate JWT token

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        Unauthorized: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_aud": False}
        )
        return payload

    except JWTError:
        raise Unauthorized()


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    authorization: Optional[str] = Header(None)
) -> UUID:
    """
    Dependency to get current user ID from JWT token

    Usage:
        @app.get("/protected")
        async def protected_route(user_id: UUID = Depends(get_current_user_id)):
            ...
    """
    if credentials is None:
        # A header with a non-Bearer scheme is a bad credential, not a missing one
        if authorization is None:
            raise Unauthorized("Missing authorization header")
        raise Unauthorized()

    payload = decode_token(credentials.credentials)

    # Refresh tokens are not accepted as access credentials
    if payload.get("type", "access") != "access":
        raise Unauthorized()

    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        raise Unauthorized()


async def get_current_actor(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
) -> Actor:
    """
    Dependency resolving the caller into an Actor

    The role comes from the caller's profile row; callers without a profile
    get an Actor with no role and only pass role-free ownership checks.
    """
    result = await db.execute(
        select(Profile.user_type).where(Profile.id == user_id)
    )
    user_type = result.scalar_one_or_none()

    return Actor(id=user_id, role=UserType(user_type) if user_type else None)

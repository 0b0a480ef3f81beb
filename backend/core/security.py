"""
Security utilities for the playbook execution engine.

Tokens are issued by the external auth service; this module only
verifies them. Every request carries a bearer JWT (HS256) whose claims
name the user (`sub`) and the tenant (`tenant_id`) all queries are
scoped to.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials as HTTPAuthCredentials
from pydantic import BaseModel

from app.config import get_settings
from core.exceptions import UnauthorizedError

settings = get_settings()

ALGORITHM = "HS256"

security_scheme = HTTPBearer(auto_error=False)


class TokenPayload(BaseModel):
    """JWT token payload structure."""
    sub: str  # user_id
    tenant_id: str
    exp: datetime
    iat: datetime


def create_access_token(
    user_id: str,
    tenant_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Create a JWT access token.

    Used by tests and local tooling; production tokens come from the
    auth service and share SECRET_KEY.

    Args:
        user_id: User ID
        tenant_id: Tenant ID
        expires_minutes: Lifetime override

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "sub": user_id,
        "tenant_id": tenant_id,
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> TokenPayload:
    """
    Verify and decode a JWT token.

    Args:
        token: Encoded JWT token

    Returns:
        Decoded token payload

    Raises:
        UnauthorizedError: If token is invalid, expired or lacks claims
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    tenant_id = payload.get("tenant_id")
    if not user_id or not tenant_id:
        raise UnauthorizedError("Invalid token payload")

    return TokenPayload(
        sub=user_id,
        tenant_id=tenant_id,
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(payload.get("iat", payload["exp"]), tz=timezone.utc),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthCredentials] = Depends(security_scheme),
) -> TokenPayload:
    """
    FastAPI dependency resolving the caller from the bearer token.

    Raises:
        UnauthorizedError: If the Authorization header is missing or invalid
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Missing bearer token")
    return verify_token(credentials.credentials)

"""
Bearer token verification.

Identity is owned by the auth service that issues tokens; this module only
verifies the signature and hands the `sub` claim to the routes as a user id.
`create_access_token` exists for tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from coursebook.core.config import get_settings

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    claims = dict(data)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    claims["exp"] = expire
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        claims = decode_access_token(credentials.credentials)
    except JWTError:
        raise _unauthorized("Invalid or expired token")
    if "sub" not in claims:
        raise _unauthorized("Invalid or expired token")
    return claims


async def get_current_user_id(claims: dict = Depends(get_token_claims)) -> int:
    try:
        return int(claims["sub"])
    except (TypeError, ValueError):
        raise _unauthorized("Invalid or expired token")


async def require_admin(claims: dict = Depends(get_token_claims)) -> int:
    """Allow only tokens issued with role=ADMIN."""
    if claims.get("role") != "ADMIN":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return await get_current_user_id(claims)


async def require_coach(claims: dict = Depends(get_token_claims)) -> int:
    """Allow only tokens issued with role=COACH; returns the coach's user id."""
    if claims.get("role") != "COACH":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Coach role required")
    return await get_current_user_id(claims)

# backend/secdash/api/dependencies.py
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from secdash.core.config import settings
from secdash.core.constants import UserRole
from secdash.core.security import JWTError, decode_token

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Get current authenticated user from the bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials"
        )

    user_id = payload.get("sub")
    role = (payload.get("role") or UserRole.VIEWER.value).upper()
    if not user_id or role not in UserRole.__members__:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    return CurrentUser(id=str(user_id), role=role)


def ensure_role(user: CurrentUser, *roles: UserRole) -> None:
    """Raise 403 unless ``user`` holds one of ``roles``"""
    allowed = {UserRole(role).value for role in roles}
    if user.role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires one of: {', '.join(sorted(allowed))}"
        )


def require_role(*roles: UserRole):
    """Dependency to check user role"""
    async def role_checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        ensure_role(current_user, *roles)
        return current_user

    return role_checker


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Outbound HTTP client for feed fetching"""
    async with httpx.AsyncClient(timeout=settings.RSS_FETCH_TIMEOUT_SECONDS) as client:
        yield client

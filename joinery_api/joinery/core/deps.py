from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from joinery.core.logging import bind_user
from joinery.core.security import decode_token
from joinery.core.settings import get_app_settings
from joinery.db.session import get_async_session

logger = logging.getLogger(__name__)

# Tokens are issued by the sign-in service; the URL is only used by the docs UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/signin")


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller resolved from the bearer token."""

    user_id: str
    user_type: str


# PUBLIC_INTERFACE
async def get_db_session(session: AsyncSession = Depends(get_async_session)) -> AsyncSession:
    """Return the request-scoped AsyncSession; get_async_session owns its lifetime."""
    return session


# PUBLIC_INTERFACE
async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """
    Resolve the current user from the Authorization bearer token.

    The token must carry 'sub' (user id) and 'user_type' claims.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user_id = payload.get("sub")
    user_type = payload.get("user_type")
    if not user_id or not user_type:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    bind_user(str(user_id))
    return CurrentUser(user_id=str(user_id), user_type=str(user_type).lower())


# PUBLIC_INTERFACE
async def require_staff(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Ensure the caller is a workshop staff member allowed to move stock."""
    allowed = get_app_settings().staff_user_types
    if user.user_type not in allowed:
        logger.info("Rejected user_type=%s for stock endpoints", user.user_type)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
    return user

"""
Bearer token helpers.

Tokens are issued by the workshop's sign-in service and signed with the shared
JWT_SECRET_KEY. This service only verifies them; `create_access_token` exists
so tools and tests can mint a token the API accepts.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from joinery.core.settings import get_app_settings


# PUBLIC_INTERFACE
def create_access_token(subject: str, user_type: str, expires_minutes: Optional[int] = None) -> str:
    """Sign a token carrying `sub` (user id) and `user_type`."""
    settings = get_app_settings()
    issued = datetime.now(tz=timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": subject, "user_type": user_type, "iat": issued, "exp": issued + lifetime}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry; raises JWTError otherwise."""
    settings = get_app_settings()
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# PUBLIC_INTERFACE
def get_token_subject(token: str) -> Optional[str]:
    """`sub` of a valid token, or None."""
    try:
        return decode_token(token).get("sub")
    except JWTError:
        return None

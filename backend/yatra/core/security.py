import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from yatra.core.errors import AuthenticationError
from yatra.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Tokens are issued by the external identity provider; we only verify them.
bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: UUID
    email: Optional[str] = None


def create_access_token(
    subject: str,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Create a signed access token for `subject` (tooling and tests)"""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": subject, "exp": expire}
    if settings.JWT_AUDIENCE:
        to_encode["aud"] = settings.JWT_AUDIENCE
    to_encode.update(extra_claims or {})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> CurrentUser:
    """Verify `token` and return the identity it names"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"verify_aud": settings.JWT_AUDIENCE is not None},
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise AuthenticationError(detail=str(e)) from e

    subject = payload.get("sub")
    try:
        user_id = UUID(str(subject))
    except ValueError as e:
        logger.warning("Token subject is not a valid identity")
        raise AuthenticationError(detail="Invalid token subject") from e

    return CurrentUser(id=user_id, email=payload.get("email"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Resolve the caller from the bearer token, or fail with AuthenticationError"""
    if credentials is None or not credentials.credentials:
        logger.warning("Request without bearer token")
        raise AuthenticationError(detail="Missing bearer token")
    return decode_access_token(credentials.credentials, settings)

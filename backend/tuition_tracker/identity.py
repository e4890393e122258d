# backend/tuition_tracker/identity.py
"""
Identity gate.

Sign-in (magic link, OAuth) happens at the external identity provider, which
hands the client a signed access token. This module only verifies that token
and turns it into the principal every store query is scoped by.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from .config import settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    id: str
    email: Optional[str] = None


def decode_access_token(token: str) -> Principal:
    """Verify signature, expiry and audience. Raises JWTError on any failure."""
    payload = jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[settings.AUTH_JWT_ALGORITHM],
        audience=settings.AUTH_JWT_AUDIENCE,
    )
    subject = payload.get("sub")
    if not subject:
        raise JWTError("token has no subject")
    return Principal(id=str(subject), email=payload.get("email"))


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Principal]:
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except JWTError as e:
        logger.info("rejected access token: %s", e)
        return None


def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal

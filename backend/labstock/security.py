# backend/labstock/security.py

"""
Principal resolution for LabStock.

Authentication happens in an external identity service that issues signed
JWT access tokens. This module only decodes the token into a ``Principal``
and offers FastAPI dependencies for the current principal and admin checks.

Claims used:
- ``sub``: principal id (recorded as ``created_by`` / ``performed_by``)
- ``is_admin``: optional boolean flag
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 60

# Tokens are issued by the identity service; this URL only feeds OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=os.getenv("AUTH_TOKEN_URL", "/auth/login"))


@dataclass(frozen=True)
class Principal:
    """The authenticated caller. Treated as opaque by the inventory core."""

    id: str
    is_admin: bool = False


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def create_access_token(
    *,
    principal_id: str,
    is_admin: bool = False,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT for a principal.

    Used by development tooling and tests; production tokens come from the
    identity service with the same claims.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": principal_id, "is_admin": bool(is_admin), "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_principal(token: str) -> Principal:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise _credentials_exception()

    principal_id = payload.get("sub")
    if principal_id is None or not str(principal_id).strip():
        raise _credentials_exception()
    return Principal(id=str(principal_id).strip(), is_admin=bool(payload.get("is_admin", False)))


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    """
    Decode the bearer token and return the calling principal.
    """
    return decode_principal(token)


def require_admin(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """
    Dependency that enforces the admin flag (catalog creation and edits).
    """
    if principal.is_admin:
        return principal

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient privileges",
    )

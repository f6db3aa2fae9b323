"""Bearer-token identity for the HTTP and WebSocket surface."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from uuid import uuid4

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..security.secrets import MissingSecretError, require_secret
from .identity import LocalIdentityProvider

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
DEFAULT_TOKEN_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "1440"))


@lru_cache(maxsize=1)
def _get_jwt_secret() -> str:
    try:
        return require_secret("JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def create_access_token(subject: str, *, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT holding the provided ``subject``."""

    expire_delta = timedelta(minutes=expires_minutes or DEFAULT_TOKEN_MINUTES)
    now = datetime.now(timezone.utc)
    payload = {"sub": subject, "exp": now + expire_delta, "iat": now}
    return jwt.encode(payload, _get_jwt_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> str:
    """Decode and validate a JWT, returning the embedded user id."""

    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[ALGORITHM])
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str) or "/" in subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return subject


def sign_in_anonymously() -> tuple[str, str]:
    """Mint a fresh anonymous user id and its access token."""

    user_id = uuid4().hex
    return user_id, create_access_token(user_id)


def identity_from_token(token: str | None) -> LocalIdentityProvider:
    """Identity for a socket connection; invalid or missing tokens stay signed out."""

    if not token:
        return LocalIdentityProvider()
    try:
        return LocalIdentityProvider(decode_access_token(token))
    except HTTPException:
        logger.info("Rejected feed socket token")
        return LocalIdentityProvider()


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(_security),
) -> str:
    """Resolve the authenticated user id from the provided bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return decode_access_token(credentials.credentials)


async def get_optional_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> str | None:
    """Return the authenticated user id when a valid bearer token is provided."""

    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    try:
        return decode_access_token(credentials.credentials)
    except HTTPException:
        return None


__all__ = [
    "create_access_token",
    "decode_access_token",
    "get_current_user_id",
    "get_optional_user_id",
    "identity_from_token",
    "sign_in_anonymously",
]

"""
Identity / session provider

Resolves the acting profile id from a bearer token. The core only needs
the id: a missing or invalid token is NotAuthenticatedError before any
state change.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from hotelpms.config import settings
from hotelpms.errors import NotAuthenticatedError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(actor_id: str, expires_minutes: Optional[int] = None) -> str:
    """Create a JWT whose subject is the actor id"""
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    to_encode = {"sub": str(actor_id), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise NotAuthenticatedError("Invalid authentication credentials")


def actor_from_token(token: Optional[str]) -> str:
    if not token:
        raise NotAuthenticatedError()
    actor_id = decode_token(token).get("sub")
    if not actor_id:
        raise NotAuthenticatedError("Token carries no subject")
    return actor_id


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Dependency: id of the authenticated actor"""
    return actor_from_token(credentials.credentials if credentials else None)

"""Bearer token verification yielding the request principal.

Tokens are issued elsewhere; this module only checks them. The token must be
a JWT signed with the configured secret carrying `sub` (user UUID) and
`role` (admin or user) claims.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..access_policy import Principal
from ..config import get_settings
from ..errors import UnauthorizedError
from ..models import UserRole

logger = logging.getLogger("taskhub-core.auth")

bearer_scheme = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this route"


def create_access_token(user_id: UUID, role: UserRole, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Sign a token for a user. Used by tests and local tooling."""
    settings = get_settings()
    claims = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_principal(token: str) -> Principal:
    """
    Verify a bearer token and build the principal it describes.

    Raises:
        UnauthorizedError: If the token is invalid, expired or malformed
    """
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise UnauthorizedError(NOT_AUTHORIZED)
    except jwt.PyJWTError as e:
        logger.info(f"Rejected invalid token: {e}")
        raise UnauthorizedError(NOT_AUTHORIZED)

    try:
        return Principal(id=UUID(str(claims["sub"])), role=UserRole(claims["role"]))
    except (KeyError, ValueError):
        logger.info("Rejected token with missing or malformed claims")
        raise UnauthorizedError(NOT_AUTHORIZED)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """FastAPI dependency: the authenticated principal, or 401."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(NOT_AUTHORIZED)
    return decode_principal(credentials.credentials)

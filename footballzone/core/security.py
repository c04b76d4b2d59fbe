"""Bearer authentication and role-based authorization dependencies."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from footballzone.core.access import Identity
from footballzone.core.config import settings
from footballzone.core.exceptions import TokenError, TokenExpired
from footballzone.core.passwords import PasswordService
from footballzone.core.tokens import TokenService, extract_bearer
from footballzone.db.session import get_db
from footballzone.models.user import User, UserRole
from footballzone.services.auth_service import AuthService

logger = logging.getLogger("footballzone.auth")

# Composition root for the credential and token layers
password_service = PasswordService(settings)
token_service = TokenService(settings)
auth_service = AuthService(settings, password_service, token_service)

# Raw header so that "bearer x" or "Token x" is rejected, not normalised
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _identity_from_token(db: Session, token: str) -> Identity:
    try:
        claims = token_service.verify_access_token(token)
    except TokenExpired:
        raise _unauthorized("Access token expired")
    except TokenError:
        raise _unauthorized("Invalid access token")

    # role and name come from the store so a demotion takes effect immediately
    user = db.get(User, claims.user_id)
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return Identity(id=user.id, email=user.email, role=user.role, name=user.name)


async def get_current_identity(
    authorization: Optional[str] = Depends(authorization_header),
    db: Session = Depends(get_db),
) -> Identity:
    """Require a valid bearer token."""
    token = extract_bearer(authorization)
    if token is None:
        raise _unauthorized("Access token required")
    return _identity_from_token(db, token)


async def get_optional_identity(
    authorization: Optional[str] = Depends(authorization_header),
    db: Session = Depends(get_db),
) -> Optional[Identity]:
    """Anonymous when the header is absent or the token does not verify."""
    token = extract_bearer(authorization)
    if token is None:
        return None
    try:
        return _identity_from_token(db, token)
    except HTTPException as e:
        logger.debug("Ignoring optional credential: %s", e.detail)
        return None


class RequireRole:
    """Dependency that checks the caller holds one of the given roles."""

    def __init__(self, *roles: UserRole):
        self.roles = frozenset(roles)

    async def __call__(self, identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in self.roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Required roles: " + ", ".join(sorted(r.value for r in self.roles)),
            )
        return identity


require_admin = RequireRole(UserRole.ADMIN)

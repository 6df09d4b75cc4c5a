"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
This module handles JWT token validation using the security utilities
defined in security.py and exposes the authenticated caller as a
``CurrentUser``.

Two flavours of dependency exist:
- ``get_current_user``: the endpoint requires an authenticated caller (401 otherwise)
- ``get_optional_user``: the endpoint behaves differently for anonymous callers
  (e.g. validation confirmation, which is reserved to anonymous sessions for
  account activation and password reset)
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from grantflow.core.security import decode_token

logger = logging.getLogger(__name__)

ROLE_ADMIN = "ROLE_ADMIN"
ROLE_PROCESS_OWNER = "ROLE_PROCESS_OWNER"
ROLE_USER = "ROLE_USER"

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass
class CurrentUser:
    """
    Represents an authenticated user.

    Populated from JWT claims after token validation.

    Attributes:
        id: User's unique identifier (UUID)
        username: User's login name
        roles: Global roles, ROLE_USER is always present
    """

    id: UUID
    username: str
    roles: list[str] = field(default_factory=lambda: [ROLE_USER])

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    @property
    def is_process_owner(self) -> bool:
        return ROLE_PROCESS_OWNER in self.roles

    @property
    def is_privileged(self) -> bool:
        """Admins and process owners bypass membership and lock checks."""
        return self.is_admin or self.is_process_owner

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, username={self.username})"


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate JWT token and extract user claims.

    Args:
        token: JWT token string from Authorization header

    Returns:
        CurrentUser built from the token claims

    Raises:
        HTTPException 401: If token is invalid, expired or not an access token
    """
    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        roles = list(payload.get("roles") or [])
        if ROLE_USER not in roles:
            roles.append(ROLE_USER)

        return CurrentUser(
            id=UUID(user_id_str),
            username=payload.get("username", ""),
            roles=roles,
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    FastAPI dependency that validates the JWT token and returns the caller.

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    user = await _validate_jwt_token(credentials.credentials)
    logger.debug(f"Authenticated user: {user.id} ({user.username})")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(HTTPBearer(auto_error=False)),
) -> CurrentUser | None:
    """
    Optional authentication dependency.

    Returns the user if a valid token is provided, or None if no token.
    An invalid token is treated like no token.
    """
    if not credentials:
        return None

    try:
        return await _validate_jwt_token(credentials.credentials)
    except HTTPException:
        return None


async def require_privileged_user(
    user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    """
    Dependency for administrative endpoints (admin or process owner).

    Raises:
        HTTPException 403: If the caller holds neither role
    """
    if not user.is_privileged:
        logger.warning(f"Access denied: user {user.id} is neither admin nor process owner")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "FORBIDDEN", "message": "Access denied."},
        )
    return user


__all__ = [
    "ROLE_ADMIN",
    "ROLE_PROCESS_OWNER",
    "ROLE_USER",
    "CurrentUser",
    "get_current_user",
    "get_optional_user",
    "require_privileged_user",
]

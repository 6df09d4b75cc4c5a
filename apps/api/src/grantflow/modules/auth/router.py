"""Authentication router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.database import get_db
from grantflow.core.rate_limit import rate_limit
from grantflow.core.security import create_access_token, create_refresh_token, verify_password
from grantflow.modules.auth.schemas import LoginRequest, LoginResponse
from grantflow.modules.users.repository import UserRepository
from grantflow.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(rate_limit(limit=10, window_seconds=60, scope="login"))],
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Args:
        credentials: Username or email, and password
        db: Database session

    Returns:
        Access token, refresh token, and user info

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account inactive or not yet validated
    """
    user = await UserRepository.get_by_login(db, credentials.login)

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning("Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "INVALID_CREDENTIALS",
                "message": "Invalid username/email or password.",
            },
        )

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_INACTIVE",
                "message": "Your account has been deactivated.",
            },
        )

    if not user.is_validated:
        logger.warning(f"Login attempt for unvalidated account: {user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_NOT_VALIDATED",
                "message": "Please activate your account using the link we emailed you.",
            },
        )

    access_token = create_access_token(
        subject=str(user.id),
        additional_claims={"username": user.username, "roles": user.roles},
    )
    refresh_token = create_refresh_token(subject=str(user.id))

    logger.info(f"User logged in: {user.id}")

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )

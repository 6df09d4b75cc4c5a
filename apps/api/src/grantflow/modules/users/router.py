"""
Users Router

Endpoints:
- POST   /users/register          - Register an account (public)
- POST   /users/password-reset    - Request a password reset link (public)
- GET    /users/me                - Current account
- POST   /users/me/email-change   - Request an email change
- DELETE /users/me                - Delete (anonymize) own account
- DELETE /users/{id}              - Delete an account (admin)

Registration and password reset answer 202: the emails are sent in the
background.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser, get_current_user
from grantflow.core.database import get_db
from grantflow.core.rate_limit import rate_limit
from grantflow.modules.users import service
from grantflow.modules.users.schemas import (
    EmailChangeRequest,
    MessageResponse,
    PasswordResetRequest,
    UserRegister,
    UserResponse,
)

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegister,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """
    Register a new account.

    When account validation is enabled, an activation link built from
    ``validation_url`` is emailed to the user.
    """
    user = await service.register_user(db, data)
    return UserResponse.model_validate(user)


@router.post(
    "/password-reset",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(rate_limit(limit=3, window_seconds=3600, scope="password-reset"))],
)
async def request_password_reset(
    data: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Request a password reset link. The response never reveals whether the email exists."""
    await service.request_password_reset(db, data)
    return MessageResponse(message="If the account exists, a reset link has been sent.")


@router.get("/me", response_model=UserResponse)
async def get_me(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> UserResponse:
    return UserResponse.model_validate(await service.get_user(db, user.id))


@router.post("/me/email-change", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def request_email_change(
    data: EmailChangeRequest,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> MessageResponse:
    await service.request_email_change(db, user.id, data)
    return MessageResponse(message="A confirmation link has been sent to the new address.")


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    await service.mark_deleted(db, user.id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    """Delete another account (admins only)."""
    await service.mark_deleted(db, user_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

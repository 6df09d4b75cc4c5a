"""
User Service Layer

Account lifecycle operations:

1. Registration:
   - Username and email must be free
   - The account starts unvalidated when validation is required, and an
     initial project is created deactivated until the account is validated
   - An activation email is sent asynchronously (UserRegisteredMessage)

2. Password reset and email change requests:
   - Dispatch a message; the token and email are created in the background
   - Password reset never reveals whether the email is known

3. Deletion:
   - Irreversible anonymization plus revocation of every grant
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser
from grantflow.core.config import settings
from grantflow.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from grantflow.core.messenger import bus
from grantflow.core.security import hash_password
from grantflow.modules.projects import service as project_service
from grantflow.modules.projects.models import ProjectState
from grantflow.modules.users.models import User
from grantflow.modules.users.repository import UserRepository
from grantflow.modules.users.schemas import EmailChangeRequest, PasswordResetRequest, UserRegister
from grantflow.modules.validations.messages import (
    UserEmailChangeMessage,
    UserForgotPasswordMessage,
    UserRegisteredMessage,
)

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    """
    Get a non-deleted user.

    Raises:
        NotFoundError: Unknown or deleted user
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None or user.is_deleted:
        raise NotFoundError("User not found.")
    return user


async def register_user(db: AsyncSession, data: UserRegister) -> User:
    """
    Register a new account.

    Raises:
        ConflictError: Username or email already taken
        ValidationFailedError: Invalid initial project
    """
    if await UserRepository.get_by_username(db, data.username):
        raise ConflictError("Username is already taken.")
    if await UserRepository.get_by_email(db, data.email):
        raise ConflictError("Email is already registered.")

    is_validated = not settings.user_validation_required

    user = await UserRepository.create(
        db,
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        is_validated=is_validated,
    )

    if data.project is not None:
        await project_service.create_project(
            db,
            data.project,
            creator_id=user.id,
            state=ProjectState.ACTIVE if is_validated else ProjectState.DEACTIVATED,
            commit=False,
        )

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Username or email is already registered.") from e

    logger.info(f"Registered user {user.id} ({user.username}), validated={is_validated}")

    if not is_validated:
        await bus.dispatch(
            UserRegisteredMessage(user_id=user.id, validation_url=data.validation_url)
        )

    return user


async def request_password_reset(db: AsyncSession, data: PasswordResetRequest) -> None:
    """
    Request a password reset link.

    Always succeeds; unknown, deleted or inactive accounts silently get nothing.
    """
    user = await UserRepository.get_by_email(db, data.email)
    if user is None or user.is_deleted or not user.is_active:
        logger.info("Password reset requested for an unavailable account")
        return

    await bus.dispatch(
        UserForgotPasswordMessage(user_id=user.id, validation_url=data.validation_url)
    )


async def request_email_change(
    db: AsyncSession, user_id: UUID, data: EmailChangeRequest
) -> None:
    """
    Request a change of the account email.

    The confirmation link goes to the new address; the email only changes when
    it is confirmed.

    Raises:
        NotFoundError: Caller's account is gone
        ConflictError: The new email belongs to another account
    """
    user = await get_user(db, user_id)

    existing = await UserRepository.get_by_email(db, data.email)
    if existing is not None:
        raise ConflictError("Email is already registered.")

    await bus.dispatch(
        UserEmailChangeMessage(
            user_id=user.id, new_email=data.email, validation_url=data.validation_url
        )
    )


async def anonymize_user(db: AsyncSession, user: User) -> None:
    """
    Scrub a user's identity and revoke all object roles and memberships.

    Raises:
        ConflictError: The user is already deleted
    """
    if user.is_deleted:
        raise ConflictError("User is already deleted.")

    await UserRepository.revoke_grants(db, user.id)
    user.anonymize(settings.deleted_user_email_domain)
    logger.info(f"User {user.id} deleted and anonymized")


async def mark_deleted(db: AsyncSession, user_id: UUID, actor: CurrentUser) -> User:
    """
    Delete an account (self-service or by an admin).

    Raises:
        NotFoundError: Unknown user
        ForbiddenError: Caller is neither the user nor an admin
        ConflictError: Already deleted
    """
    if actor.id != user_id and not actor.is_admin:
        raise ForbiddenError()

    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found.")

    await anonymize_user(db, user)
    await db.commit()
    return user

"""
Validation Effect Subscribers

React to validation events with the effect each token type stands for:

- account confirmed: validate the user, reactivate their deactivated projects
  and notify the process owners (after commit)
- account expired: delete a never-validated user and drop their deactivated
  projects
- password reset confirmed: store the new password from the request params
- email change confirmed: apply the email stored in the token's content

Account activation and password reset are reserved to anonymous callers.
Email change requires the caller, if authenticated, to own the token.
Any DomainError raised here aborts the confirmation and keeps the token.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.events import EventDispatcher
from grantflow.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from grantflow.core.security import hash_password
from grantflow.modules.projects import repository as project_repository
from grantflow.modules.users.models import User
from grantflow.modules.users.repository import UserRepository
from grantflow.modules.users.schemas import PASSWORD_MIN_LENGTH
from grantflow.modules.users.service import anonymize_user
from grantflow.modules.validations.events import ValidationConfirmedEvent, ValidationExpiredEvent
from grantflow.modules.validations.messages import UserValidatedMessage
from grantflow.modules.validations.models import ValidationType

logger = logging.getLogger(__name__)


async def _get_available_user(db: AsyncSession, event: ValidationConfirmedEvent) -> User:
    user = await UserRepository.get_by_id(db, event.validation.user_id)
    if user is None or user.is_deleted or not user.is_active:
        raise NotFoundError("User not found.")
    return user


async def on_account_confirmed(event: ValidationConfirmedEvent, db: AsyncSession) -> None:
    if event.validation.type != ValidationType.ACCOUNT:
        return
    if event.current_user is not None:
        raise ForbiddenError()

    user = await UserRepository.get_by_id(db, event.validation.user_id)
    if user is None or user.is_deleted:
        raise NotFoundError("User not found.")

    user.is_validated = True
    reactivated = await project_repository.reactivate_created_by(db, user.id)
    event.pending_messages.append(UserValidatedMessage(user_id=user.id))

    logger.info(f"User {user.id} validated, {reactivated} projects reactivated")


async def on_password_reset_confirmed(event: ValidationConfirmedEvent, db: AsyncSession) -> None:
    if event.validation.type != ValidationType.RESET_PASSWORD:
        return
    if event.current_user is not None:
        raise ForbiddenError()

    user = await _get_available_user(db, event)

    password = event.params.get("password")
    if not password or not isinstance(password, str):
        raise ValidationFailedError({"password": ["validate.general.notBlank"]})
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationFailedError({"password": ["validate.user.passwordTooShort"]})

    user.password_hash = hash_password(password)
    logger.info(f"Password of user {user.id} reset")


async def on_email_change_confirmed(event: ValidationConfirmedEvent, db: AsyncSession) -> None:
    if event.validation.type != ValidationType.CHANGE_EMAIL:
        return

    user = await _get_available_user(db, event)
    if event.current_user is not None and event.current_user.id != user.id:
        raise ForbiddenError()

    new_email = (event.validation.content or {}).get("email")
    if not new_email:
        raise NotFoundError("Validation has no email to apply.")

    existing = await UserRepository.get_by_email(db, new_email)
    if existing is not None and existing.id != user.id:
        raise ConflictError("Email is already registered.")

    user.email = new_email
    logger.info(f"Email of user {user.id} changed")


async def on_account_expired(event: ValidationExpiredEvent, db: AsyncSession) -> None:
    if event.validation.type != ValidationType.ACCOUNT:
        return

    user = await UserRepository.get_by_id(db, event.validation.user_id)
    if user is None or user.is_deleted or user.is_validated:
        return

    removed = await project_repository.delete_deactivated_created_by(db, user.id)
    await anonymize_user(db, user)
    logger.info(f"Account validation of user {user.id} expired, {removed} projects removed")


def register_user_subscribers(dispatcher: EventDispatcher) -> None:
    """Subscribe the validation effects."""
    dispatcher.subscribe(ValidationConfirmedEvent, on_account_confirmed)
    dispatcher.subscribe(ValidationConfirmedEvent, on_password_reset_confirmed)
    dispatcher.subscribe(ValidationConfirmedEvent, on_email_change_confirmed)
    dispatcher.subscribe(ValidationExpiredEvent, on_account_expired)

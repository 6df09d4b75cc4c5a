"""
Deferred Notification Handlers

Background handlers for the account workflow messages. Each handler:
1. Opens its own database session and re-reads the user by id, checking its
   preconditions now rather than when the message was dispatched
2. Logs and returns when a precondition no longer holds
3. Issues a validation token (two days by default) and commits it
4. Sends exactly one email built from the caller's URL template

The token is committed before the email is sent, so a failed send never
removes the token. Send failures are logged and not retried.
"""

import logging
from collections.abc import Awaitable, Callable

from grantflow.core.database import async_session_maker
from grantflow.core.email import (
    send_account_validation,
    send_email_change,
    send_password_reset,
    send_user_validated_notice,
)
from grantflow.core.messenger import MessageBus
from grantflow.modules.users.models import User
from grantflow.modules.users.repository import UserRepository
from grantflow.modules.validations import service
from grantflow.modules.validations.helpers import render_validation_url
from grantflow.modules.validations.messages import (
    UserEmailChangeMessage,
    UserForgotPasswordMessage,
    UserRegisteredMessage,
    UserValidatedMessage,
)
from grantflow.modules.validations.models import ValidationType

logger = logging.getLogger(__name__)

Sender = Callable[[str, str, str], Awaitable[str | None]]


def _log_delivery(message_id: str | None, kind: str, user: User) -> None:
    if message_id:
        logger.info(f"Sent {kind} email for user {user.id}, message id: {message_id}")
    else:
        logger.error(f"{kind} email for user {user.id} could not be sent")


async def _issue_and_send(
    db,
    user: User,
    validation_type: ValidationType,
    url_template: str,
    sender: Sender,
    recipient: str,
    content: dict | None = None,
) -> str | None:
    validation, token = await service.issue_validation(db, user, validation_type, content)
    await db.commit()

    url = render_validation_url(
        url_template,
        token=token,
        validation_id=validation.id,
        validation_type=validation_type.value,
    )
    message_id = await sender(recipient, user.username, url)
    _log_delivery(message_id, validation_type.value, user)
    return message_id


async def handle_user_registered(message: UserRegisteredMessage) -> None:
    """Send the account activation link to a user who is still unvalidated."""
    async with async_session_maker() as db:
        user = await UserRepository.get_by_id(db, message.user_id)
        if user is None or user.is_deleted or not user.is_active or user.is_validated:
            logger.info(
                f"Skipping account validation for user {message.user_id}: "
                "user not available or already validated"
            )
            return

        await _issue_and_send(
            db,
            user,
            ValidationType.ACCOUNT,
            message.validation_url,
            send_account_validation,
            user.email,
        )


async def handle_user_forgot_password(message: UserForgotPasswordMessage) -> None:
    """Send a password reset link to an active, non-deleted user."""
    async with async_session_maker() as db:
        user = await UserRepository.get_by_id(db, message.user_id)
        if user is None or user.is_deleted or not user.is_active:
            logger.info(f"Skipping password reset for user {message.user_id}: user not available")
            return

        await _issue_and_send(
            db,
            user,
            ValidationType.RESET_PASSWORD,
            message.validation_url,
            send_password_reset,
            user.email,
        )


async def handle_user_email_change(message: UserEmailChangeMessage) -> None:
    """Send the email change confirmation link to the NEW address."""
    async with async_session_maker() as db:
        user = await UserRepository.get_by_id(db, message.user_id)
        if user is None or user.is_deleted or not user.is_active:
            logger.info(f"Skipping email change for user {message.user_id}: user not available")
            return

        await _issue_and_send(
            db,
            user,
            ValidationType.CHANGE_EMAIL,
            message.validation_url,
            send_email_change,
            message.new_email,
            content={"email": message.new_email},
        )


async def handle_user_validated(message: UserValidatedMessage) -> None:
    """Tell every validated process owner that a user activated their account."""
    async with async_session_maker() as db:
        user = await UserRepository.get_by_id(db, message.user_id)
        if user is None or user.is_deleted or not user.is_validated:
            logger.info(f"Skipping validated notice for user {message.user_id}: not validated")
            return

        owners = await UserRepository.get_validated_process_owners(db)
        if not owners:
            logger.info("No process owners to notify about validated user")
            return

        message_id = await send_user_validated_notice(
            [owner.email for owner in owners], user.username, user.email
        )
        _log_delivery(message_id, "user-validated", user)


def register_validation_handlers(bus: MessageBus) -> None:
    """Register the account workflow handlers on the message bus."""
    bus.register(UserRegisteredMessage, handle_user_registered)
    bus.register(UserForgotPasswordMessage, handle_user_forgot_password)
    bus.register(UserEmailChangeMessage, handle_user_email_change)
    bus.register(UserValidatedMessage, handle_user_validated)
    logger.info("Registered validation message handlers")

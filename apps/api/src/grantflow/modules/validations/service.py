"""
Validation Service Layer

Implements the validation token store and the confirmation protocol.

Token store:
- ``issue_validation`` creates a token for (user, type) with a TTL, replacing
  any outstanding token of the same type for that user
- ``is_expired`` is a pure time check
- ``consume_validation`` deletes a token; deleting an absent token is fine

Confirmation protocol (``confirm_validation``):
1. Unknown id or wrong token: dispatch ValidationNotFoundEvent, raise
   NotFoundError. Both cases look identical to the caller.
2. Expired: claim (delete) the token, dispatch ValidationExpiredEvent, commit,
   raise ExpiredError. If the purge job deleted the token first, this is
   handled like an unknown id.
3. Valid: claim the token, dispatch ValidationConfirmedEvent with the request
   params minus the token, commit. Subscribers perform the type-specific
   effect and may abort with a DomainError, which rolls the claim back.
   Messages the subscribers queue on the event are dispatched after commit.
   A valid token deleted concurrently is also handled like an unknown id.

Claiming is a DELETE whose row count tells whether this transaction won the
token, so at most one confirmation (or purge) of a token can succeed.

Security considerations:
- Tokens come from secrets.token_urlsafe (256 bits)
- Only SHA-256 hashes are stored, compared in constant time
- No token data is logged
"""

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser
from grantflow.core.config import settings
from grantflow.core.events import dispatcher
from grantflow.core.exceptions import DomainError, ExpiredError, InternalError, NotFoundError
from grantflow.core.messenger import bus
from grantflow.modules.shared import utcnow
from grantflow.modules.users.models import User
from grantflow.modules.validations import repository
from grantflow.modules.validations.events import (
    ValidationConfirmedEvent,
    ValidationExpiredEvent,
    ValidationNotFoundEvent,
)
from grantflow.modules.validations.helpers import generate_token, hash_token, tokens_match
from grantflow.modules.validations.models import Validation, ValidationType

logger = logging.getLogger(__name__)


def _default_ttl() -> timedelta:
    return timedelta(hours=settings.validation_ttl_hours)


async def issue_validation(
    db: AsyncSession,
    user: User,
    type: ValidationType,
    content: dict | None = None,
    ttl: timedelta | None = None,
) -> tuple[Validation, str]:
    """
    Create a validation token for a user.

    Outstanding tokens of the same type for this user are deleted first, so at
    most one is live per (user, type). The record is flushed, not committed.

    Returns:
        The stored validation and the plain token to send to the user

    Raises:
        InternalError: If the token collides with an existing one
    """
    await repository.delete_outstanding(db, user.id, type)

    token = generate_token()
    try:
        validation = await repository.create(
            db,
            user_id=user.id,
            type=type,
            token_hash=hash_token(token),
            content=content,
            expires_at=utcnow() + (ttl or _default_ttl()),
        )
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Validation token collision for user {user.id} ({type.value})")
        raise InternalError("Could not create a validation token.") from e

    logger.info(f"Issued {type.value} validation {validation.id} for user {user.id}")
    return validation, token


def is_expired(validation: Validation, now: datetime | None = None) -> bool:
    """True iff the validation's expiry is at or before now (UTC)."""
    return validation.is_expired(now)


async def consume_validation(db: AsyncSession, validation_id: UUID) -> bool:
    """
    Delete a validation.

    Returns:
        True if this call deleted it, False if it was already gone
    """
    return await repository.delete_by_id(db, validation_id)


async def _report_not_found(
    db: AsyncSession, validation_id: UUID, current_user: CurrentUser | None
) -> NotFoundError:
    await dispatcher.dispatch(
        ValidationNotFoundEvent(validation_id=validation_id, current_user=current_user), db
    )
    return NotFoundError()


async def confirm_validation(
    db: AsyncSession,
    validation_id: UUID,
    token: str,
    params: dict[str, Any] | None = None,
    current_user: CurrentUser | None = None,
) -> None:
    """
    Confirm a validation token.

    Args:
        db: Database session
        validation_id: The validation's id from the link
        token: The plain token from the link
        params: Extra request data (e.g. the new password for a reset)
        current_user: The authenticated caller, if any

    Raises:
        NotFoundError: Unknown id, wrong token, or token already consumed
        ExpiredError: The token expired (it is deleted)
        DomainError: Raised by a confirmation subscriber (e.g. ForbiddenError)
    """
    validation = await repository.get_by_id(db, validation_id)

    if validation is None or not tokens_match(token, validation.token):
        raise await _report_not_found(db, validation_id, current_user)

    if is_expired(validation):
        if not await consume_validation(db, validation.id):
            await db.rollback()
            raise await _report_not_found(db, validation_id, current_user)

        await dispatcher.dispatch(ValidationExpiredEvent(validation=validation), db)
        await db.commit()
        logger.info(f"Validation {validation.id} presented after expiry, removed")
        raise ExpiredError()

    residual = {key: value for key, value in (params or {}).items() if key != "token"}

    if not await consume_validation(db, validation.id):
        # Purged or confirmed concurrently
        await db.rollback()
        raise await _report_not_found(db, validation_id, current_user)

    event = ValidationConfirmedEvent(
        validation=validation, params=residual, current_user=current_user
    )
    try:
        await dispatcher.dispatch(event, db)
    except DomainError:
        await db.rollback()
        raise

    await db.commit()
    logger.info(f"Validation {validation.id} ({validation.type.value}) confirmed")

    for message in event.pending_messages:
        await bus.dispatch(message)

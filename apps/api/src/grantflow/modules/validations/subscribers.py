"""Abuse monitoring for presented validation tokens."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.events import EventDispatcher
from grantflow.modules.validations.events import ValidationNotFoundEvent

logger = logging.getLogger(__name__)


async def log_validation_not_found(event: ValidationNotFoundEvent, db: AsyncSession) -> None:
    caller = f"user {event.current_user.id}" if event.current_user else "anonymous caller"
    logger.warning(f"Unknown validation or wrong token presented for {event.validation_id} by {caller}")


def register_validation_subscribers(dispatcher: EventDispatcher) -> None:
    dispatcher.subscribe(ValidationNotFoundEvent, log_validation_not_found)

"""
Validation Events

Dispatched by the confirmation protocol and the purge job. The validation
module does not know what reacts to them; the users module subscribes the
type-specific effects (activate account, set password, change email).
"""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from grantflow.core.auth import CurrentUser
from grantflow.core.messenger import Message
from grantflow.modules.validations.models import Validation


@dataclass
class ValidationConfirmedEvent:
    """
    A valid token was presented.

    ``params`` holds the extra request data. Subscribers append to
    ``pending_messages`` what must be dispatched once the confirmation is
    committed.
    """

    validation: Validation
    params: dict[str, Any] = field(default_factory=dict)
    current_user: CurrentUser | None = None
    pending_messages: list[Message] = field(default_factory=list)


@dataclass
class ValidationExpiredEvent:
    """A token expired, found either by the purge job or on presentation."""

    validation: Validation


@dataclass
class ValidationNotFoundEvent:
    """An unknown id or a wrong token was presented."""

    validation_id: UUID
    current_user: CurrentUser | None = None

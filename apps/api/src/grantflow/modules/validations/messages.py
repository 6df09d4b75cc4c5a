"""
Deferred notification messages

Intent messages dispatched on the message bus by request handlers. They carry
ids, not entities: handlers re-read the user when they run.
"""

from typing import ClassVar
from uuid import UUID

from grantflow.core.messenger import Message


class UserRegisteredMessage(Message):
    message_type: ClassVar[str] = "user_registered"

    user_id: UUID
    validation_url: str


class UserForgotPasswordMessage(Message):
    message_type: ClassVar[str] = "user_forgot_password"

    user_id: UUID
    validation_url: str


class UserEmailChangeMessage(Message):
    message_type: ClassVar[str] = "user_email_change"

    user_id: UUID
    new_email: str
    validation_url: str


class UserValidatedMessage(Message):
    message_type: ClassVar[str] = "user_validated"

    user_id: UUID

"""
Validation Models

A validation is a single-use, typed, time-boxed credential bound to a user.
Only the SHA-256 hash of the token is stored; the plain token exists solely in
the link sent to the user.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from grantflow.core.database import Base
from grantflow.modules.shared import as_utc, utcnow


class ValidationType(str, enum.Enum):
    """What confirming the validation does."""

    ACCOUNT = "account"
    RESET_PASSWORD = "reset-password"
    CHANGE_EMAIL = "change-email"
    JURY_INVITE = "jury-invite"


class Validation(Base):
    """An outstanding validation token."""

    __tablename__ = "validations"
    __table_args__ = (
        UniqueConstraint("user_id", "type", "token", name="uq_validations_user_type_token"),
        Index("ix_validations_expires_at", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[ValidationType] = mapped_column(
        Enum(ValidationType, name="validation_type"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(64), nullable=False)  # SHA-256 hex of the token
    content: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Validation(id={self.id}, user={self.user_id}, type={self.type.value})>"

    def is_expired(self, now: datetime | None = None) -> bool:
        """True iff expires_at <= now (UTC). Re-check at consumption time."""
        return as_utc(self.expires_at) <= (now or utcnow())

"""
User Models

Database models for user identity, account state and object-scoped roles.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grantflow.core.auth import ROLE_USER
from grantflow.modules.shared import BaseModel, utcnow

if TYPE_CHECKING:
    from grantflow.modules.projects.models import ProjectMembership


class ObjectRole(str, enum.Enum):
    """Roles a user holds on a specific process or fund."""

    JURY_MEMBER = "jury_member"
    PROCESS_OWNER = "process_owner"


class ObjectType(str, enum.Enum):
    """Kinds of objects an ObjectRole can be scoped to."""

    FUND = "fund"
    PROCESS = "process"


class User(BaseModel):
    """
    User model for authentication and authorization.

    Users are never hard-deleted while referenced: ``anonymize`` scrubs the
    personally identifying fields and sets ``deleted_at``.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False, default="")

    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Global roles, ROLE_USER is implied and not stored
    role_names: Mapped[list[str]] = mapped_column("roles", JSONB, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_validated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    object_roles: Mapped[list["UserObjectRole"]] = relationship(
        "UserObjectRole",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    project_memberships: Mapped[list["ProjectMembership"]] = relationship(
        "ProjectMembership",
        back_populates="user",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"

    @property
    def roles(self) -> list[str]:
        """All global roles, always including ROLE_USER."""
        roles = list(self.role_names or [])
        if ROLE_USER not in roles:
            roles.append(ROLE_USER)
        return roles

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def full_name(self) -> str | None:
        names = [name for name in (self.first_name, self.last_name) if name]
        return " ".join(names) or None

    def has_object_role(self, role: ObjectRole, object_type: ObjectType, object_id: uuid.UUID) -> bool:
        return any(
            grant.role == role and grant.object_type == object_type and grant.object_id == object_id
            for grant in self.object_roles
        )

    def anonymize(self, email_domain: str) -> None:
        """
        Overwrite the personally identifying fields and mark the user deleted.

        Grants (object roles, project memberships) are revoked separately by
        the repository, see ``UserRepository.revoke_grants``.
        """
        self.deleted_at = utcnow()
        self.username = f"deleted_{self.id}"
        self.email = f"deleted_{self.id}@{email_domain}"
        self.password_hash = ""
        self.first_name = None
        self.last_name = None
        self.role_names = []


class UserObjectRole(BaseModel):
    """A role held by a user on one process or fund (e.g. jury member of a fund)."""

    __tablename__ = "user_object_roles"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "role", "object_type", "object_id", name="uq_user_object_roles_grant"
        ),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[ObjectRole] = mapped_column(Enum(ObjectRole, name="object_role"), nullable=False)
    object_type: Mapped[ObjectType] = mapped_column(
        Enum(ObjectType, name="object_type"), nullable=False
    )
    object_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    user: Mapped["User"] = relationship("User", back_populates="object_roles")

    def __repr__(self) -> str:
        return f"<UserObjectRole(user={self.user_id}, role={self.role.value}, {self.object_type.value}={self.object_id})>"

"""
User Repository

Database operations for users and their object-scoped roles.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import ROLE_PROCESS_OWNER
from grantflow.modules.projects.models import ProjectMembership
from grantflow.modules.users.models import ObjectRole, ObjectType, User, UserObjectRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        username: str,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
        roles: list[str] | None = None,
        is_active: bool = True,
        is_validated: bool = False,
    ) -> User:
        """
        Create a new user record.

        The user is flushed (so it has an id) but not committed.
        """
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role_names=roles or [],
            is_active=is_active,
            is_validated=is_validated,
        )

        db.add(user)
        await db.flush()

        logger.info(f"Created user: {user.id} - {user.username}")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        """Get a user by ID, including soft-deleted users."""
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_username(db: AsyncSession, username: str) -> User | None:
        result = await db.execute(select(User).where(func.lower(User.username) == username.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_login(db: AsyncSession, login: str) -> User | None:
        """Get a non-deleted user by username or email."""
        result = await db.execute(
            select(User).where(
                User.deleted_at.is_(None),
                or_(
                    func.lower(User.username) == login.lower(),
                    func.lower(User.email) == login.lower(),
                ),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_validated_process_owners(db: AsyncSession) -> list[User]:
        """All active, validated, non-deleted users holding ROLE_PROCESS_OWNER."""
        result = await db.execute(
            select(User).where(
                User.deleted_at.is_(None),
                User.is_active.is_(True),
                User.is_validated.is_(True),
                User.role_names.contains([ROLE_PROCESS_OWNER]),
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_object_role(
        db: AsyncSession,
        user_id: UUID,
        role: ObjectRole,
        object_type: ObjectType,
        object_id: UUID,
    ) -> UserObjectRole:
        grant = UserObjectRole(
            user_id=user_id,
            role=role,
            object_type=object_type,
            object_id=object_id,
        )
        db.add(grant)
        await db.flush()
        return grant

    @staticmethod
    async def has_object_role(
        db: AsyncSession,
        user_id: UUID,
        role: ObjectRole,
        object_type: ObjectType,
        object_id: UUID,
    ) -> bool:
        result = await db.execute(
            select(UserObjectRole.id).where(
                UserObjectRole.user_id == user_id,
                UserObjectRole.role == role,
                UserObjectRole.object_type == object_type,
                UserObjectRole.object_id == object_id,
            )
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def revoke_grants(db: AsyncSession, user_id: UUID) -> int:
        """
        Delete every object role and project membership of a user.

        Returns:
            Number of deleted grant rows
        """
        roles = await db.execute(delete(UserObjectRole).where(UserObjectRole.user_id == user_id))
        memberships = await db.execute(
            delete(ProjectMembership).where(ProjectMembership.user_id == user_id)
        )
        revoked = (roles.rowcount or 0) + (memberships.rowcount or 0)
        logger.info(f"Revoked {revoked} grants of user {user_id}")
        return revoked

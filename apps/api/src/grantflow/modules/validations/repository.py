"""
Validation Repository

Database operations for validation tokens. Deletion goes through DELETE
statements so callers learn from the row count whether they, or a concurrent
transaction, removed the token.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Validation, ValidationType


async def create(
    db: AsyncSession,
    *,
    user_id: UUID,
    type: ValidationType,
    token_hash: str,
    expires_at: datetime,
    content: dict | None = None,
) -> Validation:
    """Add a validation and flush it (not committed)."""
    validation = Validation(
        user_id=user_id,
        type=type,
        token=token_hash,
        content=content,
        expires_at=expires_at,
    )
    db.add(validation)
    await db.flush()
    return validation


async def get_by_id(db: AsyncSession, validation_id: UUID) -> Validation | None:
    return await db.get(Validation, validation_id)


async def get_expired(db: AsyncSession, now: datetime) -> list[Validation]:
    """All validations with expires_at <= now."""
    result = await db.execute(select(Validation).where(Validation.expires_at <= now))
    return list(result.scalars().all())


async def delete_by_id(db: AsyncSession, validation_id: UUID) -> bool:
    """
    Delete one validation.

    Returns:
        True if this call removed the row, False if it was already gone
    """
    result = await db.execute(
        delete(Validation)
        .where(Validation.id == validation_id)
        .execution_options(synchronize_session=False)
    )
    return (result.rowcount or 0) > 0


async def delete_outstanding(db: AsyncSession, user_id: UUID, type: ValidationType) -> int:
    """Delete every validation of the given user and type. Returns the row count."""
    result = await db.execute(
        delete(Validation)
        .where(Validation.user_id == user_id, Validation.type == type)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0

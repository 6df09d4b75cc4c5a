"""
Fund Application Repository

Database operations for fund applications and jury ratings.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import FundApplication, JuryRating


async def create(db: AsyncSession, application: FundApplication) -> FundApplication:
    db.add(application)
    await db.flush()
    return application


async def get_by_id(db: AsyncSession, application_id: UUID) -> FundApplication | None:
    return await db.get(FundApplication, application_id)


async def get_by_fund_and_project(
    db: AsyncSession, fund_id: UUID, project_id: UUID
) -> FundApplication | None:
    result = await db.execute(
        select(FundApplication).where(
            FundApplication.fund_id == fund_id,
            FundApplication.project_id == project_id,
        )
    )
    return result.scalar_one_or_none()


async def list_by_fund(db: AsyncSession, fund_id: UUID) -> list[FundApplication]:
    result = await db.execute(
        select(FundApplication)
        .where(FundApplication.fund_id == fund_id)
        .order_by(FundApplication.jury_order, FundApplication.created_at)
    )
    return list(result.scalars().all())


async def delete(db: AsyncSession, application: FundApplication) -> None:
    await db.delete(application)
    await db.flush()


async def get_rating(db: AsyncSession, application_id: UUID, juror_id: UUID) -> JuryRating | None:
    result = await db.execute(
        select(JuryRating).where(
            JuryRating.application_id == application_id,
            JuryRating.juror_id == juror_id,
        )
    )
    return result.scalar_one_or_none()


async def save_rating(db: AsyncSession, rating: JuryRating) -> JuryRating:
    db.add(rating)
    await db.flush()
    return rating

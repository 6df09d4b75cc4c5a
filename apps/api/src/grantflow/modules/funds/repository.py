"""
Fund Repository

Database operations for processes and funds.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Fund, Process


async def create_process(db: AsyncSession, process: Process) -> Process:
    db.add(process)
    await db.flush()
    return process


async def get_process(db: AsyncSession, process_id: UUID) -> Process | None:
    return await db.get(Process, process_id)


async def get_process_by_name(db: AsyncSession, name: str) -> Process | None:
    result = await db.execute(select(Process).where(Process.name == name))
    return result.scalar_one_or_none()


async def list_processes(db: AsyncSession) -> list[Process]:
    result = await db.execute(select(Process).order_by(Process.name))
    return list(result.scalars().all())


async def create_fund(db: AsyncSession, fund: Fund) -> Fund:
    db.add(fund)
    await db.flush()
    return fund


async def get_fund(db: AsyncSession, fund_id: UUID) -> Fund | None:
    return await db.get(Fund, fund_id)


async def get_fund_by_name(db: AsyncSession, name: str) -> Fund | None:
    result = await db.execute(select(Fund).where(Fund.name == name))
    return result.scalar_one_or_none()


async def list_funds(db: AsyncSession, process_id: UUID | None = None) -> list[Fund]:
    query = select(Fund)
    if process_id is not None:
        query = query.where(Fund.process_id == process_id)
    result = await db.execute(query.order_by(Fund.created_at.desc()))
    return list(result.scalars().all())

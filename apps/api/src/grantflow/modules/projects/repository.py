"""
Project Repository

Database operations for projects and memberships. Soft-deleted projects are
excluded unless a caller asks for them explicitly.
"""

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import MembershipRole, Project, ProjectMembership, ProjectState


async def create(db: AsyncSession, project: Project) -> Project:
    db.add(project)
    await db.flush()
    return project


async def get_by_id(
    db: AsyncSession, project_id: UUID, include_deleted: bool = False
) -> Project | None:
    project = await db.get(Project, project_id)
    if project is None or (project.is_deleted and not include_deleted):
        return None
    return project


async def list_projects(
    db: AsyncSession,
    *,
    member_id: UUID | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Project]:
    """List non-deleted projects, optionally only those a user belongs to."""
    query = select(Project).where(Project.deleted_at.is_(None))
    if member_id is not None:
        query = query.join(ProjectMembership).where(ProjectMembership.user_id == member_id)
    query = query.order_by(Project.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().unique().all())


async def get_membership(
    db: AsyncSession, project_id: UUID, user_id: UUID
) -> ProjectMembership | None:
    result = await db.execute(
        select(ProjectMembership).where(
            ProjectMembership.project_id == project_id,
            ProjectMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def add_membership(
    db: AsyncSession,
    project: Project,
    user_id: UUID,
    role: MembershipRole,
    motivation: str | None = None,
    skills: str | None = None,
) -> ProjectMembership:
    membership = ProjectMembership(
        project_id=project.id,
        user_id=user_id,
        role=role,
        motivation=motivation,
        skills=skills,
    )
    project.memberships.append(membership)
    await db.flush()
    return membership


async def count_owners(db: AsyncSession, project_id: UUID) -> int:
    result = await db.execute(
        select(ProjectMembership.id).where(
            ProjectMembership.project_id == project_id,
            ProjectMembership.role == MembershipRole.OWNER,
        )
    )
    return len(result.scalars().all())


async def reactivate_created_by(db: AsyncSession, user_id: UUID) -> int:
    """Set the user's deactivated projects active. Returns the row count."""
    result = await db.execute(
        update(Project)
        .where(
            Project.created_by_id == user_id,
            Project.state == ProjectState.DEACTIVATED,
        )
        .values(state=ProjectState.ACTIVE)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def delete_deactivated_created_by(db: AsyncSession, user_id: UUID) -> int:
    """Remove the user's deactivated projects. Returns the row count."""
    result = await db.execute(
        delete(Project)
        .where(
            Project.created_by_id == user_id,
            Project.state == ProjectState.DEACTIVATED,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0

"""
Project Service Layer

Business rules of the project lifecycle:

1. Creation:
   - Progress must be ``idea`` or ``creating_profile``
   - A profile must be inspired by an existing idea; an idea has no inspiration
   - The creator becomes the project's owner

2. Editing:
   - Deleted projects are not found; locked projects only accept privileged edits
   - Non-privileged editors must be owner or member
   - Ideas are immutable after creation
   - Progress is recalculated after each edit and never decreases

3. Administration:
   - Lock/unlock by admins and process owners
   - Soft delete by an owner or admin
   - Membership management by owners, the last owner cannot leave
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser
from grantflow.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from grantflow.modules.projects import repository
from grantflow.modules.projects.models import (
    IDEA_FROZEN_FIELDS,
    MembershipRole,
    Project,
    ProjectMembership,
    ProjectProgress,
    ProjectState,
)
from grantflow.modules.projects.schemas import MembershipCreate, ProjectCreate, ProjectUpdate
from grantflow.modules.shared import utcnow

logger = logging.getLogger(__name__)

IDEA_IMMUTABLE = "validate.project.ideaImmutable"
CREATABLE_PROGRESS = (ProjectProgress.IDEA, ProjectProgress.CREATING_PROFILE)


async def _get_project_or_404(db: AsyncSession, project_id: UUID) -> Project:
    project = await repository.get_by_id(db, project_id)
    if project is None:
        raise NotFoundError(f"Project {project_id} not found.")
    return project


async def create_project(
    db: AsyncSession,
    data: ProjectCreate,
    creator_id: UUID,
    state: ProjectState = ProjectState.ACTIVE,
    commit: bool = True,
) -> Project:
    """
    Create an idea or a project profile owned by its creator.

    Args:
        db: Database session
        data: Project fields
        creator_id: The creating user, who becomes owner
        state: Initial state (deactivated while the creator is unvalidated)
        commit: Commit the transaction (False when part of a larger operation)

    Raises:
        ValidationFailedError: Invalid progress or inspiration
    """
    if data.progress not in CREATABLE_PROGRESS:
        raise ValidationFailedError({"progress": ["validate.project.invalidProgress"]})

    if data.progress == ProjectProgress.IDEA and data.inspiration_id is not None:
        raise ValidationFailedError({"inspiration": ["validate.project.ideaWithInspiration"]})

    if data.progress == ProjectProgress.CREATING_PROFILE:
        inspiration = (
            await repository.get_by_id(db, data.inspiration_id) if data.inspiration_id else None
        )
        if inspiration is None or inspiration.progress != ProjectProgress.IDEA:
            raise ValidationFailedError({"inspiration": ["validate.project.inspirationRequired"]})

    project = Project(
        progress=data.progress,
        state=state,
        name=data.name,
        short_description=data.short_description,
        description=data.description,
        challenges=data.challenges,
        delimitation=data.delimitation,
        goal=data.goal,
        vision=data.vision,
        profile_self_assessment=0,
        plan_self_assessment=0,
        is_locked=False,
        inspiration_id=data.inspiration_id,
        created_by_id=creator_id,
        memberships=[],
        applications=[],
    )
    await repository.create(db, project)
    await repository.add_membership(db, project, creator_id, MembershipRole.OWNER)

    if commit:
        await db.commit()

    logger.info(f"Created project {project.id} ({project.progress.value}) by user {creator_id}")
    return project


async def get_project(db: AsyncSession, project_id: UUID) -> Project:
    return await _get_project_or_404(db, project_id)


async def list_projects(
    db: AsyncSession, member_id: UUID | None = None, skip: int = 0, limit: int = 50
) -> list[Project]:
    return await repository.list_projects(db, member_id=member_id, skip=skip, limit=limit)


def check_idea_immutability(project: Project, changes: dict) -> None:
    """
    Reject any change to the descriptive fields of an idea.

    Raises:
        ValidationFailedError: One violation per changed field
    """
    if project.progress != ProjectProgress.IDEA:
        return

    violations = {
        field: [IDEA_IMMUTABLE]
        for field in IDEA_FROZEN_FIELDS
        if field in changes and changes[field] != getattr(project, field)
    }
    if violations:
        raise ValidationFailedError(violations, message="An idea cannot be modified.")


async def update_project(
    db: AsyncSession,
    project_id: UUID,
    data: ProjectUpdate,
    user: CurrentUser,
) -> Project:
    """
    Apply an edit to a project and recalculate its progress.

    Raises:
        NotFoundError: Project missing or deleted
        ForbiddenError: Not a member, or project locked for non-privileged users
        ValidationFailedError: Edit of an idea
    """
    project = await _get_project_or_404(db, project_id)

    if not user.is_privileged:
        if project.is_locked or not project.user_is_member(user.id):
            raise ForbiddenError()

    changes = data.model_dump(exclude_unset=True)
    check_idea_immutability(project, changes)

    for field, value in changes.items():
        setattr(project, field, value)

    previous = project.progress
    project.recalculate_progress()
    await db.commit()

    if project.progress != previous:
        logger.info(
            f"Project {project.id} progressed from {previous.value} to {project.progress.value}"
        )
    return project


async def set_locked(
    db: AsyncSession, project_id: UUID, locked: bool, user: CurrentUser
) -> Project:
    """Lock or unlock a project (admins and process owners only)."""
    if not user.is_privileged:
        raise ForbiddenError()

    project = await _get_project_or_404(db, project_id)
    project.is_locked = locked
    await db.commit()

    logger.info(f"Project {project.id} {'locked' if locked else 'unlocked'} by user {user.id}")
    return project


async def delete_project(db: AsyncSession, project_id: UUID, user: CurrentUser) -> Project:
    """
    Soft-delete a project.

    Raises:
        NotFoundError: Project missing
        ConflictError: Project already deleted
        ForbiddenError: Caller is neither owner nor admin
    """
    project = await repository.get_by_id(db, project_id, include_deleted=True)
    if project is None:
        raise NotFoundError(f"Project {project_id} not found.")
    if project.is_deleted:
        raise ConflictError("Project is already deleted.")
    if not (user.is_admin or project.user_is_owner(user.id)):
        raise ForbiddenError()

    project.deleted_at = utcnow()
    await db.commit()

    logger.info(f"Project {project.id} deleted by user {user.id}")
    return project


async def add_member(
    db: AsyncSession,
    project_id: UUID,
    data: MembershipCreate,
    user: CurrentUser,
) -> ProjectMembership:
    """
    Add a membership to a project.

    Raises:
        ForbiddenError: Caller is not an owner (or privileged)
        ConflictError: The user already has a membership
    """
    project = await _get_project_or_404(db, project_id)
    if not (user.is_privileged or project.user_is_owner(user.id)):
        raise ForbiddenError()

    if await repository.get_membership(db, project.id, data.user_id):
        raise ConflictError("User is already a member of this project.")

    membership = await repository.add_membership(
        db, project, data.user_id, data.role, motivation=data.motivation, skills=data.skills
    )
    await db.commit()

    logger.info(f"Added user {data.user_id} to project {project.id} as {data.role.value}")
    return membership


async def remove_member(
    db: AsyncSession, project_id: UUID, member_id: UUID, user: CurrentUser
) -> None:
    """
    Remove a membership. Members may remove themselves.

    Raises:
        NotFoundError: No such membership
        ForbiddenError: Caller is not an owner and not the member
        ValidationFailedError: Removing the last owner
    """
    project = await _get_project_or_404(db, project_id)
    membership = await repository.get_membership(db, project.id, member_id)
    if membership is None:
        raise NotFoundError("Membership not found.")

    if not (user.is_privileged or user.id == member_id or project.user_is_owner(user.id)):
        raise ForbiddenError()

    if membership.role == MembershipRole.OWNER and await repository.count_owners(db, project.id) <= 1:
        raise ValidationFailedError({"memberships": ["validate.project.lastOwner"]})

    project.memberships.remove(membership)
    await db.commit()

    logger.info(f"Removed user {member_id} from project {project.id}")

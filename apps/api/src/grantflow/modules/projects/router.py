"""
Projects Router

Endpoints:
- GET    /projects                           - List projects (optionally only mine)
- POST   /projects                           - Create an idea or a project profile
- GET    /projects/{id}                      - Get a project
- PATCH  /projects/{id}                      - Edit a project
- DELETE /projects/{id}                      - Soft-delete a project
- POST   /projects/{id}/lock                 - Lock (admin/process owner)
- POST   /projects/{id}/unlock               - Unlock (admin/process owner)
- POST   /projects/{id}/memberships          - Add a member
- DELETE /projects/{id}/memberships/{user}   - Remove a member
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser, get_current_user, require_privileged_user
from grantflow.core.database import get_db
from grantflow.modules.projects import service
from grantflow.modules.projects.schemas import (
    MembershipCreate,
    MembershipResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)

router = APIRouter()


@router.get("", response_model=list[ProjectResponse])
async def list_projects(
    mine: bool = Query(False, description="Only projects I am a member of"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> list[ProjectResponse]:
    projects = await service.list_projects(
        db, member_id=user.id if mine else None, skip=skip, limit=limit
    )
    return [ProjectResponse.model_validate(project) for project in projects]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> ProjectResponse:
    """Create an idea, or a project profile inspired by an idea."""
    project = await service.create_project(db, data, creator_id=user.id)
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
) -> ProjectResponse:
    return ProjectResponse.model_validate(await service.get_project(db, project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    data: ProjectUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> ProjectResponse:
    """
    Edit a project.

    Ideas cannot be edited (422 with the changed fields). Progress is
    recalculated after the edit.
    """
    project = await service.update_project(db, project_id, data, user)
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    await service.delete_project(db, project_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/lock", response_model=ProjectResponse)
async def lock_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> ProjectResponse:
    return ProjectResponse.model_validate(await service.set_locked(db, project_id, True, user))


@router.post("/{project_id}/unlock", response_model=ProjectResponse)
async def unlock_project(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> ProjectResponse:
    return ProjectResponse.model_validate(await service.set_locked(db, project_id, False, user))


@router.post(
    "/{project_id}/memberships",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    project_id: UUID,
    data: MembershipCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> MembershipResponse:
    membership = await service.add_member(db, project_id, data, user)
    return MembershipResponse.model_validate(membership)


@router.delete("/{project_id}/memberships/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    project_id: UUID,
    member_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    await service.remove_member(db, project_id, member_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

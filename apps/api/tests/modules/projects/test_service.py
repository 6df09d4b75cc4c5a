"""
Unit tests for the project service layer.

These tests cover:
- Creation rules (ideas, profiles inspired by ideas)
- Idea immutability
- Edit permissions (membership, lock)
- Membership management (last owner)
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from grantflow.core.exceptions import ForbiddenError, ValidationFailedError
from grantflow.modules.projects.models import MembershipRole, ProjectProgress
from grantflow.modules.projects.schemas import ProjectCreate, ProjectUpdate
from grantflow.modules.projects.service import (
    IDEA_IMMUTABLE,
    check_idea_immutability,
    create_project,
    remove_member,
    update_project,
)


class TestCreateProject:
    """Tests for create_project."""

    @pytest.mark.asyncio
    async def test_create_idea_adds_owner(self, mock_db):
        creator_id = uuid4()
        with patch("grantflow.modules.projects.service.repository") as mock_repo:
            mock_repo.create = AsyncMock()
            mock_repo.add_membership = AsyncMock()

            project = await create_project(
                mock_db, ProjectCreate(short_description="An idea"), creator_id=creator_id
            )

            assert project.progress == ProjectProgress.IDEA
            assert project.created_by_id == creator_id
            mock_repo.add_membership.assert_awaited_once_with(
                mock_db, project, creator_id, MembershipRole.OWNER
            )
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_idea_cannot_have_inspiration(self, mock_db):
        with pytest.raises(ValidationFailedError) as exc_info:
            await create_project(
                mock_db,
                ProjectCreate(short_description="An idea", inspiration_id=uuid4()),
                creator_id=uuid4(),
            )
        assert "inspiration" in exc_info.value.violations

    @pytest.mark.asyncio
    async def test_profile_requires_idea_inspiration(self, mock_db, project_factory):
        not_an_idea = project_factory(progress=ProjectProgress.CREATING_PLAN)
        with patch("grantflow.modules.projects.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=not_an_idea)

            with pytest.raises(ValidationFailedError):
                await create_project(
                    mock_db,
                    ProjectCreate(
                        short_description="A profile",
                        progress=ProjectProgress.CREATING_PROFILE,
                        inspiration_id=not_an_idea.id,
                    ),
                    creator_id=uuid4(),
                )

    @pytest.mark.asyncio
    async def test_cannot_create_beyond_profile(self, mock_db):
        with pytest.raises(ValidationFailedError):
            await create_project(
                mock_db,
                ProjectCreate(short_description="Too far", progress=ProjectProgress.CREATING_PLAN),
                creator_id=uuid4(),
            )


class TestIdeaImmutability:
    def test_changing_an_idea_is_rejected(self, project_factory):
        idea = project_factory(progress=ProjectProgress.IDEA, short_description="Original")

        with pytest.raises(ValidationFailedError) as exc_info:
            check_idea_immutability(idea, {"short_description": "Changed"})

        assert exc_info.value.violations == {"short_description": [IDEA_IMMUTABLE]}

    def test_unchanged_values_are_accepted(self, project_factory):
        idea = project_factory(progress=ProjectProgress.IDEA, short_description="Original")
        check_idea_immutability(idea, {"short_description": "Original"})

    def test_profiles_are_editable(self, project_factory):
        project = project_factory(short_description="Original")
        check_idea_immutability(project, {"short_description": "Changed"})


class TestUpdateProject:
    """Tests for update_project."""

    @pytest.mark.asyncio
    async def test_member_edit_recalculates_progress(
        self, mock_db, project_factory, complete_profile, regular_user
    ):
        project = project_factory(owner_id=regular_user.id, **complete_profile)

        with patch("grantflow.modules.projects.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=project)

            await update_project(
                mock_db, project.id, ProjectUpdate(profile_self_assessment=100), regular_user
            )

            assert project.progress == ProjectProgress.CREATING_PLAN
            mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_member_is_forbidden(self, mock_db, project_factory, regular_user):
        project = project_factory(owner_id=uuid4())

        with patch("grantflow.modules.projects.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=project)

            with pytest.raises(ForbiddenError):
                await update_project(mock_db, project.id, ProjectUpdate(goal="x"), regular_user)

    @pytest.mark.asyncio
    async def test_locked_project_only_editable_by_privileged(
        self, mock_db, project_factory, regular_user, process_owner_user
    ):
        project = project_factory(owner_id=regular_user.id, is_locked=True)

        with patch("grantflow.modules.projects.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=project)

            with pytest.raises(ForbiddenError):
                await update_project(mock_db, project.id, ProjectUpdate(goal="x"), regular_user)

            await update_project(mock_db, project.id, ProjectUpdate(goal="x"), process_owner_user)
            assert project.goal == "x"


class TestRemoveMember:
    @pytest.mark.asyncio
    async def test_last_owner_cannot_leave(self, mock_db, project_factory, regular_user):
        project = project_factory(owner_id=regular_user.id)
        membership = project.memberships[0]

        with patch("grantflow.modules.projects.service.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=project)
            mock_repo.get_membership = AsyncMock(return_value=membership)
            mock_repo.count_owners = AsyncMock(return_value=1)

            with pytest.raises(ValidationFailedError):
                await remove_member(mock_db, project.id, regular_user.id, regular_user)

            assert membership in project.memberships

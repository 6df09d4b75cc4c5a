"""
Shared fixtures.

Importing ``grantflow.models`` configures every mapper so that transient model
instances (no database) can be built with their relationships.
"""

from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

import grantflow.models  # noqa: F401
from grantflow.core.auth import ROLE_ADMIN, ROLE_PROCESS_OWNER, ROLE_USER, CurrentUser
from grantflow.modules.funds.models import Fund, FundConcretization, FundState, JuryCriterion
from grantflow.modules.projects.models import (
    MembershipRole,
    Project,
    ProjectMembership,
    ProjectProgress,
    ProjectState,
)
from grantflow.modules.users.models import User

COMPLETE_PROFILE = {
    "name": "Community Garden",
    "short_description": "A garden for the neighbourhood",
    "challenges": "No green space nearby",
    "goal": "Grow vegetables together",
    "vision": "Every block has a garden",
    "description": "We turn an empty lot into a shared garden.",
    "delimitation": "Only the north district",
}


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.delete = AsyncMock()
    db.add = MagicMock()

    @asynccontextmanager
    async def begin_nested():
        yield

    db.begin_nested = MagicMock(side_effect=begin_nested)
    return db


@pytest.fixture
def user_factory():
    """Build transient users."""

    def _make(**overrides) -> User:
        values = {
            "id": uuid4(),
            "username": "jdoe",
            "email": "jdoe@example.org",
            "password_hash": "hash",
            "first_name": "Jane",
            "last_name": "Doe",
            "role_names": [],
            "is_active": True,
            "is_validated": True,
            "deleted_at": None,
        }
        values.update(overrides)
        return User(**values)

    return _make


@pytest.fixture
def regular_user():
    return CurrentUser(id=uuid4(), username="member", roles=[ROLE_USER])


@pytest.fixture
def admin_user():
    return CurrentUser(id=uuid4(), username="admin", roles=[ROLE_USER, ROLE_ADMIN])


@pytest.fixture
def process_owner_user():
    return CurrentUser(id=uuid4(), username="owner", roles=[ROLE_USER, ROLE_PROCESS_OWNER])


@pytest.fixture
def project_factory():
    """Build transient projects with an owner membership."""

    def _make(owner_id=None, members=(), **overrides) -> Project:
        values = {
            "id": uuid4(),
            "progress": ProjectProgress.CREATING_PROFILE,
            "state": ProjectState.ACTIVE,
            "profile_self_assessment": 0,
            "plan_self_assessment": 0,
            "is_locked": False,
            "deleted_at": None,
        }
        values.update(overrides)
        project = Project(**values)

        if owner_id is not None:
            project.memberships.append(
                ProjectMembership(id=uuid4(), user_id=owner_id, role=MembershipRole.OWNER)
            )
        for member_id, role in members:
            project.memberships.append(ProjectMembership(id=uuid4(), user_id=member_id, role=role))
        return project

    return _make


@pytest.fixture
def complete_profile():
    return dict(COMPLETE_PROFILE)


@pytest.fixture
def fund_factory():
    """Build transient funds; by default activatable tomorrow for a week."""

    def _make(questions=1, criteria=1, **overrides) -> Fund:
        now = datetime.now(UTC)
        values = {
            "id": uuid4(),
            "process_id": uuid4(),
            "name": "Neighbourhood Fund 2026",
            "state": FundState.INACTIVE,
            "submission_begin": now + timedelta(days=1),
            "submission_end": now + timedelta(days=8),
            "jurors_per_application": 2,
        }
        values.update(overrides)
        fund = Fund(**values)
        for position in range(questions):
            fund.concretizations.append(
                FundConcretization(
                    id=uuid4(),
                    question=f"Question {position}",
                    max_length=280,
                    position=position,
                )
            )
        for index in range(criteria):
            fund.jury_criteria.append(JuryCriterion(id=uuid4(), name=f"Criterion {index}"))
        return fund

    return _make

"""
Fixtures for fund application tests.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from grantflow.modules.fund_applications.models import ApplicationState, FundApplication
from grantflow.modules.funds.models import FundState
from grantflow.modules.projects.models import ProjectProgress


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def open_fund(fund_factory):
    """An active fund whose submission period is running."""
    now = datetime.now(UTC)
    return fund_factory(
        state=FundState.ACTIVE,
        submission_begin=now - timedelta(days=1),
        submission_end=now + timedelta(days=1),
    )


@pytest.fixture
def ready_project(project_factory, complete_profile, owner_id):
    """A project with complete profile and plan."""
    return project_factory(
        owner_id=owner_id,
        progress=ProjectProgress.CREATING_PLAN,
        profile_self_assessment=100,
        plan_self_assessment=100,
        **complete_profile,
    )


@pytest.fixture
def application_factory(open_fund, ready_project):
    def _make(fund=None, project=None, **overrides) -> FundApplication:
        fund = fund or open_fund
        project = project or ready_project
        values = {
            "id": uuid4(),
            "fund_id": fund.id,
            "project_id": project.id,
            "fund": fund,
            "project": project,
            "state": ApplicationState.CONCRETIZATION,
            "concretizations": {},
            "concretization_self_assessment": 0,
            "application_self_assessment": 0,
            "requested_funding": None,
            "jury_order": 0,
        }
        values.update(overrides)
        return FundApplication(**values)

    return _make


@pytest.fixture
def submittable_application(application_factory, open_fund):
    """An application meeting every submission condition."""
    question = open_fund.concretizations[0]
    return application_factory(
        state=ApplicationState.DETAILING,
        concretizations={str(question.id): "We need tools and seeds."},
        concretization_self_assessment=100,
        application_self_assessment=100,
        requested_funding=5000,
    )

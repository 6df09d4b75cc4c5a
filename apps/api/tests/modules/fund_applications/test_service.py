"""
Unit tests for the fund application service.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from grantflow.core.auth import CurrentUser
from grantflow.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from grantflow.modules.fund_applications import service
from grantflow.modules.fund_applications.helpers import INVALID_CONCRETIZATION
from grantflow.modules.fund_applications.models import ApplicationState, JuryRating
from grantflow.modules.fund_applications.schemas import (
    CriterionRating,
    FundApplicationCreate,
    FundApplicationUpdate,
    JuryFieldsUpdate,
    JuryRatingUpdate,
)
from grantflow.modules.funds.models import FundState
from grantflow.modules.projects.models import ProjectProgress

SERVICE = "grantflow.modules.fund_applications.service"


@pytest.fixture
def owner(owner_id):
    return CurrentUser(id=owner_id, username="owner")


@pytest.fixture
def mock_repo():
    with patch(f"{SERVICE}.repository") as repo:
        repo.create = AsyncMock(side_effect=lambda db, application: application)
        repo.get_by_id = AsyncMock(return_value=None)
        repo.get_by_fund_and_project = AsyncMock(return_value=None)
        repo.list_by_fund = AsyncMock(return_value=[])
        repo.delete = AsyncMock()
        repo.get_rating = AsyncMock(return_value=None)
        repo.save_rating = AsyncMock(side_effect=lambda db, rating: rating)
        yield repo


@pytest.fixture
def mock_lookups(open_fund, ready_project):
    """Fund and project repositories returning the default fixtures."""
    with (
        patch(f"{SERVICE}.fund_repository") as funds,
        patch(f"{SERVICE}.project_repository") as projects,
    ):
        funds.get_fund = AsyncMock(return_value=open_fund)
        projects.get_by_id = AsyncMock(return_value=ready_project)
        yield funds, projects


@pytest.fixture
def mock_jury():
    with patch(f"{SERVICE}.UserRepository") as user_repo:
        user_repo.has_object_role = AsyncMock(return_value=False)
        yield user_repo


class TestCreateApplication:
    """Tests for create_application."""

    @pytest.mark.asyncio
    async def test_create_success(
        self, mock_db, mock_repo, mock_lookups, owner, open_fund, ready_project
    ):
        data = FundApplicationCreate(fund_id=open_fund.id, project_id=ready_project.id)

        application = await service.create_application(mock_db, data, owner)

        assert application.fund is open_fund
        assert application.project is ready_project
        assert application.state == ApplicationState.CONCRETIZATION
        assert application in ready_project.applications
        mock_repo.create.assert_called_once()
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_unknown_fund(self, mock_db, mock_repo, mock_lookups, owner):
        funds, _ = mock_lookups
        funds.get_fund.return_value = None

        with pytest.raises(NotFoundError):
            await service.create_application(
                mock_db, FundApplicationCreate(fund_id=uuid4(), project_id=uuid4()), owner
            )

    @pytest.mark.asyncio
    async def test_duplicate_pair_is_conflict(
        self, mock_db, mock_repo, mock_lookups, owner, open_fund, ready_project, application_factory
    ):
        mock_repo.get_by_fund_and_project.return_value = application_factory()
        data = FundApplicationCreate(fund_id=open_fund.id, project_id=ready_project.id)

        with pytest.raises(ConflictError):
            await service.create_application(mock_db, data, owner)

        mock_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_is_conflict(
        self, mock_db, mock_repo, mock_lookups, owner, open_fund, ready_project
    ):
        mock_repo.create.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        data = FundApplicationCreate(fund_id=open_fund.id, project_id=ready_project.id)

        with pytest.raises(ConflictError):
            await service.create_application(mock_db, data, owner)

        mock_db.rollback.assert_called_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "change",
        ["fund_inactive", "project_locked", "profile_stage", "not_owner"],
    )
    async def test_creation_guards(
        self,
        mock_db,
        mock_repo,
        mock_lookups,
        owner,
        regular_user,
        open_fund,
        ready_project,
        change,
    ):
        caller = owner
        if change == "fund_inactive":
            open_fund.state = FundState.INACTIVE
        elif change == "project_locked":
            ready_project.is_locked = True
        elif change == "profile_stage":
            ready_project.progress = ProjectProgress.CREATING_PROFILE
        else:
            caller = regular_user
        data = FundApplicationCreate(fund_id=open_fund.id, project_id=ready_project.id)

        with pytest.raises(ForbiddenError):
            await service.create_application(mock_db, data, caller)

        mock_repo.create.assert_not_called()


class TestSubmitApplication:
    """Submission requires every gate at once."""

    @pytest.mark.asyncio
    async def test_submit_success(self, mock_db, mock_repo, owner, submittable_application):
        mock_repo.get_by_id.return_value = submittable_application
        project = submittable_application.project
        now = datetime.now(UTC)

        result = await service.submit_application(mock_db, submittable_application.id, owner, now)

        assert result.state == ApplicationState.SUBMITTED
        assert project.progress == ProjectProgress.APPLICATION_SUBMITTED
        snapshot = result.submission_data
        assert snapshot["projectId"] == str(project.id)
        assert snapshot["submittedBy"] == str(owner.id)
        assert snapshot["submissionDate"] == now.isoformat()
        assert snapshot["requestedFunding"] == 5000
        assert snapshot["concretizations"] == submittable_application.concretizations
        assert snapshot["name"] == project.name
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field, value",
        [
            ("concretization_self_assessment", 75),
            ("application_self_assessment", 50),
            ("state", ApplicationState.SUBMITTED),
        ],
    )
    async def test_application_gates(
        self, mock_db, mock_repo, owner, submittable_application, field, value
    ):
        setattr(submittable_application, field, value)
        mock_repo.get_by_id.return_value = submittable_application

        with pytest.raises(ForbiddenError):
            await service.submit_application(mock_db, submittable_application.id, owner)

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field, value",
        [
            ("profile_self_assessment", 75),
            ("plan_self_assessment", 0),
            ("is_locked", True),
        ],
    )
    async def test_project_gates(
        self, mock_db, mock_repo, owner, submittable_application, field, value
    ):
        setattr(submittable_application.project, field, value)
        mock_repo.get_by_id.return_value = submittable_application

        with pytest.raises(ForbiddenError):
            await service.submit_application(mock_db, submittable_application.id, owner)

    @pytest.mark.asyncio
    async def test_fund_not_active(self, mock_db, mock_repo, owner, submittable_application):
        submittable_application.fund.state = FundState.FINISHED
        mock_repo.get_by_id.return_value = submittable_application

        with pytest.raises(ForbiddenError):
            await service.submit_application(mock_db, submittable_application.id, owner)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("offset", [timedelta(days=-2), timedelta(days=2)])
    async def test_outside_submission_period(
        self, mock_db, mock_repo, owner, submittable_application, offset
    ):
        mock_repo.get_by_id.return_value = submittable_application
        now = datetime.now(UTC) + offset

        with pytest.raises(ForbiddenError):
            await service.submit_application(mock_db, submittable_application.id, owner, now)

    @pytest.mark.asyncio
    async def test_only_owner_submits(
        self, mock_db, mock_repo, admin_user, submittable_application
    ):
        mock_repo.get_by_id.return_value = submittable_application

        with pytest.raises(ForbiddenError):
            await service.submit_application(mock_db, submittable_application.id, admin_user)

    @pytest.mark.asyncio
    async def test_unknown_application(self, mock_db, mock_repo, owner):
        with pytest.raises(NotFoundError):
            await service.submit_application(mock_db, uuid4(), owner)


class TestUpdateApplication:
    """Tests for update_application."""

    @pytest.mark.asyncio
    async def test_answers_merged_and_state_derived(
        self, mock_db, mock_repo, owner, application_factory, open_fund
    ):
        question = open_fund.concretizations[0]
        application = application_factory(concretizations={"stale": "kept"})
        mock_repo.get_by_id.return_value = application
        data = FundApplicationUpdate(
            concretizations={str(question.id): "Tools and seeds"},
            concretization_self_assessment=100,
        )

        result = await service.update_application(mock_db, application.id, data, owner)

        assert result.concretizations == {"stale": "kept", str(question.id): "Tools and seeds"}
        assert result.state == ApplicationState.DETAILING
        assert result.project.progress == ProjectProgress.CREATING_APPLICATION
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_unsent_fields_untouched(self, mock_db, mock_repo, owner, application_factory):
        application = application_factory(requested_funding=1200, application_self_assessment=50)
        mock_repo.get_by_id.return_value = application

        await service.update_application(
            mock_db, application.id, FundApplicationUpdate(requested_funding=1500), owner
        )

        assert application.requested_funding == 1500
        assert application.application_self_assessment == 50

    @pytest.mark.asyncio
    async def test_invalid_answer_key(self, mock_db, mock_repo, owner, application_factory):
        application = application_factory()
        mock_repo.get_by_id.return_value = application
        unknown = str(uuid4())

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.update_application(
                mock_db,
                application.id,
                FundApplicationUpdate(concretizations={unknown: "answer"}),
                owner,
            )

        assert exc_info.value.violations == {
            f"concretizations[{unknown}]": [INVALID_CONCRETIZATION]
        }
        assert application.concretizations == {}
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_submitted_is_frozen_even_for_admins(
        self, mock_db, mock_repo, owner, admin_user, application_factory
    ):
        application = application_factory(state=ApplicationState.SUBMITTED)
        mock_repo.get_by_id.return_value = application

        for caller in (owner, admin_user):
            with pytest.raises(ForbiddenError):
                await service.update_application(
                    mock_db, application.id, FundApplicationUpdate(requested_funding=1), caller
                )

    @pytest.mark.asyncio
    async def test_non_member_forbidden(
        self, mock_db, mock_repo, regular_user, application_factory
    ):
        application = application_factory()
        mock_repo.get_by_id.return_value = application

        with pytest.raises(ForbiddenError):
            await service.update_application(
                mock_db, application.id, FundApplicationUpdate(requested_funding=1), regular_user
            )

    @pytest.mark.asyncio
    async def test_admin_edits_locked_project(
        self, mock_db, mock_repo, admin_user, application_factory
    ):
        application = application_factory()
        application.project.is_locked = True
        mock_repo.get_by_id.return_value = application

        await service.update_application(
            mock_db, application.id, FundApplicationUpdate(requested_funding=900), admin_user
        )

        assert application.requested_funding == 900


class TestDeleteApplication:
    """Tests for the delete guard."""

    @pytest.mark.asyncio
    async def test_owner_deletes_before_fund_opens(
        self, mock_db, mock_repo, owner, application_factory, open_fund
    ):
        open_fund.state = FundState.INACTIVE
        application = application_factory()
        mock_repo.get_by_id.return_value = application

        await service.delete_application(mock_db, application.id, owner)

        mock_repo.delete.assert_called_once_with(mock_db, application)
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fund_state", [FundState.ACTIVE, FundState.FINISHED])
    async def test_blocked_by_fund_state(
        self, mock_db, mock_repo, admin_user, application_factory, open_fund, fund_state
    ):
        open_fund.state = fund_state
        application = application_factory()
        mock_repo.get_by_id.return_value = application

        with pytest.raises(ForbiddenError):
            await service.delete_application(mock_db, application.id, admin_user)

        mock_repo.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_blocked_by_locked_project(
        self, mock_db, mock_repo, owner, application_factory, open_fund
    ):
        open_fund.state = FundState.INACTIVE
        application = application_factory()
        application.project.is_locked = True
        mock_repo.get_by_id.return_value = application

        with pytest.raises(ForbiddenError):
            await service.delete_application(mock_db, application.id, owner)

    @pytest.mark.asyncio
    async def test_blocked_when_submitted(
        self, mock_db, mock_repo, owner, application_factory, open_fund
    ):
        open_fund.state = FundState.INACTIVE
        application = application_factory(state=ApplicationState.SUBMITTED)
        mock_repo.get_by_id.return_value = application

        with pytest.raises(ForbiddenError):
            await service.delete_application(mock_db, application.id, owner)

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete(
        self, mock_db, mock_repo, regular_user, application_factory, open_fund
    ):
        open_fund.state = FundState.INACTIVE
        application = application_factory()
        mock_repo.get_by_id.return_value = application

        with pytest.raises(ForbiddenError):
            await service.delete_application(mock_db, application.id, regular_user)


class TestJury:
    """Tests for jury fields and ratings."""

    @pytest.mark.asyncio
    async def test_jury_fields_privileged_only(
        self, mock_db, mock_repo, owner, process_owner_user, application_factory
    ):
        application = application_factory()
        mock_repo.get_by_id.return_value = application
        data = JuryFieldsUpdate(jury_comment="Strong local support", jury_order=3)

        with pytest.raises(ForbiddenError):
            await service.set_jury_fields(mock_db, application.id, data, owner)

        await service.set_jury_fields(mock_db, application.id, data, process_owner_user)
        assert application.jury_comment == "Strong local support"
        assert application.jury_order == 3

    @pytest.mark.asyncio
    async def test_rating_requires_juror(
        self, mock_db, mock_repo, mock_jury, regular_user, application_factory, open_fund
    ):
        application = application_factory(state=ApplicationState.SUBMITTED)
        mock_repo.get_by_id.return_value = application
        criterion = str(open_fund.jury_criteria[0].id)
        data = JuryRatingUpdate(ratings={criterion: CriterionRating(rating=7)})

        with pytest.raises(ForbiddenError):
            await service.rate_application(mock_db, application.id, data, regular_user)

    @pytest.mark.asyncio
    async def test_rating_requires_submission(
        self, mock_db, mock_repo, mock_jury, regular_user, application_factory, open_fund
    ):
        mock_jury.has_object_role.return_value = True
        application = application_factory()
        mock_repo.get_by_id.return_value = application
        criterion = str(open_fund.jury_criteria[0].id)
        data = JuryRatingUpdate(ratings={criterion: CriterionRating(rating=7)})

        with pytest.raises(ForbiddenError):
            await service.rate_application(mock_db, application.id, data, regular_user)

    @pytest.mark.asyncio
    async def test_unknown_criterion(
        self, mock_db, mock_repo, mock_jury, regular_user, application_factory
    ):
        mock_jury.has_object_role.return_value = True
        application = application_factory(state=ApplicationState.SUBMITTED)
        mock_repo.get_by_id.return_value = application
        unknown = str(uuid4())
        data = JuryRatingUpdate(ratings={unknown: CriterionRating(rating=4)})

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.rate_application(mock_db, application.id, data, regular_user)

        assert exc_info.value.violations == {f"ratings[{unknown}]": [service.UNKNOWN_CRITERION]}
        mock_repo.save_rating.assert_not_called()

    @pytest.mark.asyncio
    async def test_new_rating_saved(
        self, mock_db, mock_repo, mock_jury, regular_user, application_factory, open_fund
    ):
        mock_jury.has_object_role.return_value = True
        application = application_factory(state=ApplicationState.SUBMITTED)
        mock_repo.get_by_id.return_value = application
        criterion = str(open_fund.jury_criteria[0].id)
        data = JuryRatingUpdate(
            ratings={criterion: CriterionRating(rating=8, comment="Clear plan")}
        )

        rating = await service.rate_application(mock_db, application.id, data, regular_user)

        assert rating.juror_id == regular_user.id
        assert rating.ratings == {criterion: {"rating": 8, "comment": "Clear plan"}}
        mock_repo.save_rating.assert_called_once()
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_existing_rating_merged(
        self, mock_db, mock_repo, mock_jury, regular_user, application_factory, fund_factory
    ):
        fund = fund_factory(criteria=2, state=FundState.ACTIVE)
        first, second = (str(c.id) for c in fund.jury_criteria)
        mock_jury.has_object_role.return_value = True
        application = application_factory(fund=fund, state=ApplicationState.SUBMITTED)
        mock_repo.get_by_id.return_value = application
        existing = JuryRating(
            id=uuid4(),
            application_id=application.id,
            juror_id=regular_user.id,
            ratings={first: {"rating": 5, "comment": None}},
            state="open",
        )
        mock_repo.get_rating.return_value = existing
        data = JuryRatingUpdate(ratings={second: CriterionRating(rating=9)})

        rating = await service.rate_application(mock_db, application.id, data, regular_user)

        assert rating is existing
        assert rating.ratings == {
            first: {"rating": 5, "comment": None},
            second: {"rating": 9, "comment": None},
        }
        mock_repo.save_rating.assert_not_called()


class TestVisibility:
    """Tests for reading applications."""

    @pytest.mark.asyncio
    async def test_juror_sees_only_submitted(
        self, mock_db, mock_repo, mock_jury, regular_user, application_factory
    ):
        mock_jury.has_object_role.return_value = True
        draft = application_factory()
        mock_repo.get_by_id.return_value = draft

        with pytest.raises(ForbiddenError):
            await service.get_application(mock_db, draft.id, regular_user)

        draft.state = ApplicationState.SUBMITTED
        assert await service.get_application(mock_db, draft.id, regular_user) is draft

    @pytest.mark.asyncio
    async def test_fund_list_forbidden_for_outsiders(
        self, mock_db, mock_repo, mock_jury, regular_user
    ):
        with pytest.raises(ForbiddenError):
            await service.list_fund_applications(mock_db, uuid4(), regular_user)

        mock_repo.list_by_fund.assert_not_called()

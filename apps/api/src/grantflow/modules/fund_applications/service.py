"""
Fund Application Service Layer

Business rules of an application's life:

1. Creation (project owner):
   - One application per (fund, project)
   - Project progress at least ``creating_plan``, project unlocked, fund active

2. Editing:
   - Concretization answers are validated per question
   - Submitted applications are frozen for everyone but the jury fields
   - Admins and process owners skip the membership, lock and fund checks

3. Submission (project owner), all of:
   - Fund active and now within the submission period
   - Project unlocked
   - Concretization, application, profile and plan self-assessments at 100

   Any failing gate is reported as the same ForbiddenError.

4. Deletion:
   - Blocked while the fund is active or finished, the project is locked or
     the application is submitted
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser
from grantflow.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from grantflow.modules.fund_applications import repository
from grantflow.modules.fund_applications.helpers import (
    build_submission_snapshot,
    validate_concretizations,
)
from grantflow.modules.fund_applications.models import (
    ApplicationState,
    FundApplication,
    JuryRating,
)
from grantflow.modules.fund_applications.schemas import (
    FundApplicationCreate,
    FundApplicationUpdate,
    JuryFieldsUpdate,
    JuryRatingUpdate,
)
from grantflow.modules.funds import repository as fund_repository
from grantflow.modules.funds.models import Fund, FundState
from grantflow.modules.projects import repository as project_repository
from grantflow.modules.projects.models import (
    SELF_ASSESSMENT_COMPLETE,
    Project,
    ProjectProgress,
)
from grantflow.modules.shared import utcnow
from grantflow.modules.users.models import ObjectRole, ObjectType
from grantflow.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

UNKNOWN_CRITERION = "validate.juryRating.invalidCriterion"


async def _get_application_or_404(db: AsyncSession, application_id: UUID) -> FundApplication:
    application = await repository.get_by_id(db, application_id)
    if application is None:
        raise NotFoundError(f"Fund application {application_id} not found.")
    return application


async def _is_juror(db: AsyncSession, user: CurrentUser, fund_id: UUID) -> bool:
    return await UserRepository.has_object_role(
        db, user.id, ObjectRole.JURY_MEMBER, ObjectType.FUND, fund_id
    )


def can_create(project: Project, fund: Fund, user: CurrentUser) -> bool:
    """Creation guards other than the uniqueness of the pair."""
    return (
        project.progress.rank >= ProjectProgress.CREATING_PLAN.rank
        and not project.is_locked
        and fund.is_active
        and project.user_is_owner(user.id)
    )


def can_submit(
    application: FundApplication, user: CurrentUser, now: datetime | None = None
) -> bool:
    """Every submission gate, checked together."""
    fund = application.fund
    project = application.project
    return (
        not application.is_submitted
        and project.user_is_owner(user.id)
        and fund.is_active
        and fund.is_in_submission_period(now)
        and not project.is_locked
        and application.concretization_self_assessment == SELF_ASSESSMENT_COMPLETE
        and application.application_self_assessment == SELF_ASSESSMENT_COMPLETE
        and project.profile_self_assessment == SELF_ASSESSMENT_COMPLETE
        and project.plan_self_assessment == SELF_ASSESSMENT_COMPLETE
    )


def can_delete(application: FundApplication, user: CurrentUser) -> bool:
    if application.fund.state in (FundState.ACTIVE, FundState.FINISHED):
        return False
    if application.project.is_locked or application.is_submitted:
        return False
    return user.is_privileged or application.project.user_is_owner(user.id)


def can_edit(application: FundApplication, user: CurrentUser) -> bool:
    if application.is_submitted:
        return False
    if user.is_privileged:
        return True
    return (
        application.project.user_is_member(user.id)
        and not application.project.is_locked
        and application.fund.is_active
    )


async def create_application(
    db: AsyncSession, data: FundApplicationCreate, user: CurrentUser
) -> FundApplication:
    """
    Apply with a project to a fund.

    Raises:
        NotFoundError: Unknown fund or project
        ConflictError: The project already applied to this fund
        ForbiddenError: A creation guard failed
    """
    fund = await fund_repository.get_fund(db, data.fund_id)
    if fund is None:
        raise NotFoundError(f"Fund {data.fund_id} not found.")
    project = await project_repository.get_by_id(db, data.project_id)
    if project is None:
        raise NotFoundError(f"Project {data.project_id} not found.")

    if await repository.get_by_fund_and_project(db, fund.id, project.id):
        raise ConflictError("This project already applied to this fund.")

    if not can_create(project, fund, user):
        raise ForbiddenError()

    application = FundApplication(
        fund_id=fund.id,
        project_id=project.id,
        fund=fund,
        project=project,
        state=ApplicationState.CONCRETIZATION,
        concretizations={},
        concretization_self_assessment=0,
        application_self_assessment=0,
        jury_order=0,
    )
    application.recompute_state()

    try:
        await repository.create(db, application)
        project.recalculate_progress()
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent create of the same pair
        await db.rollback()
        raise ConflictError("This project already applied to this fund.")

    logger.info(f"Project {project.id} applied to fund {fund.id} (application {application.id})")
    return application


async def get_application(
    db: AsyncSession, application_id: UUID, user: CurrentUser
) -> FundApplication:
    application = await _get_application_or_404(db, application_id)
    if user.is_privileged or application.project.user_is_member(user.id):
        return application
    if application.is_submitted and await _is_juror(db, user, application.fund_id):
        return application
    raise ForbiddenError()


async def list_fund_applications(
    db: AsyncSession, fund_id: UUID, user: CurrentUser
) -> list[FundApplication]:
    """Applications of a fund, for admins, process owners and its jury."""
    if not user.is_privileged and not await _is_juror(db, user, fund_id):
        raise ForbiddenError()
    return await repository.list_by_fund(db, fund_id)


async def update_application(
    db: AsyncSession,
    application_id: UUID,
    data: FundApplicationUpdate,
    user: CurrentUser,
) -> FundApplication:
    """
    Edit the applicant fields of an unsubmitted application.

    New concretization answers are merged into the existing ones.

    Raises:
        ForbiddenError: Submitted, or the caller may not edit
        ValidationFailedError: Per-question violations of the answers
    """
    application = await _get_application_or_404(db, application_id)
    if not can_edit(application, user):
        raise ForbiddenError()

    changes = data.model_dump(exclude_unset=True)

    answers = changes.pop("concretizations", None)
    if answers is not None:
        violations = validate_concretizations(application.fund, answers)
        if violations:
            raise ValidationFailedError(violations)
        application.concretizations = {**(application.concretizations or {}), **answers}

    for field, value in changes.items():
        setattr(application, field, value)

    application.recompute_state()
    application.project.recalculate_progress()
    await db.commit()

    logger.info(f"Fund application {application.id} updated ({application.state.value})")
    return application


async def submit_application(
    db: AsyncSession,
    application_id: UUID,
    user: CurrentUser,
    now: datetime | None = None,
) -> FundApplication:
    """
    Submit an application to the jury.

    Raises:
        ForbiddenError: Any submission gate failed
    """
    now = now or utcnow()
    application = await _get_application_or_404(db, application_id)

    if not can_submit(application, user, now):
        logger.info(f"Submission of fund application {application.id} by {user.id} refused")
        raise ForbiddenError()

    project = application.project
    application.submission_data = build_submission_snapshot(
        project,
        application.concretizations,
        application.requested_funding,
        submitted_by=user.id,
        submitted_at=now,
    )
    application.state = ApplicationState.SUBMITTED
    project.recalculate_progress()
    await db.commit()

    logger.info(f"Fund application {application.id} submitted by user {user.id}")
    return application


async def delete_application(db: AsyncSession, application_id: UUID, user: CurrentUser) -> None:
    """
    Withdraw an application.

    Raises:
        ForbiddenError: The delete guard failed or the caller is not the owner
    """
    application = await _get_application_or_404(db, application_id)
    if not can_delete(application, user):
        raise ForbiddenError()

    await repository.delete(db, application)
    await db.commit()
    logger.info(f"Fund application {application_id} deleted by user {user.id}")


async def set_jury_fields(
    db: AsyncSession, application_id: UUID, data: JuryFieldsUpdate, user: CurrentUser
) -> FundApplication:
    """Set the jury comment and order (admins and process owners only)."""
    if not user.is_privileged:
        raise ForbiddenError()

    application = await _get_application_or_404(db, application_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(application, field, value)
    await db.commit()
    return application


async def rate_application(
    db: AsyncSession, application_id: UUID, data: JuryRatingUpdate, user: CurrentUser
) -> JuryRating:
    """
    Record a juror's ratings of a submitted application.

    Ratings are merged into the juror's existing rating, if any.

    Raises:
        ForbiddenError: Not submitted, or the caller is not in the fund's jury
        ValidationFailedError: A rating for a criterion of another fund
    """
    application = await _get_application_or_404(db, application_id)
    if not application.is_submitted or not await _is_juror(db, user, application.fund_id):
        raise ForbiddenError()

    criterion_ids = {str(c.id) for c in application.fund.jury_criteria}
    violations = {
        f"ratings[{key}]": [UNKNOWN_CRITERION] for key in data.ratings if key not in criterion_ids
    }
    if violations:
        raise ValidationFailedError(violations)

    ratings = {key: value.model_dump() for key, value in data.ratings.items()}
    rating = await repository.get_rating(db, application.id, user.id)
    if rating is None:
        rating = await repository.save_rating(
            db, JuryRating(application_id=application.id, juror_id=user.id, ratings=ratings)
        )
    else:
        rating.ratings = {**(rating.ratings or {}), **ratings}

    await db.commit()
    logger.info(f"Juror {user.id} rated fund application {application.id}")
    return rating

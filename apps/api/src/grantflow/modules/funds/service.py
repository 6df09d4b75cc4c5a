"""
Fund Service Layer

Processes, funds and the fund state machine:

    inactive --activate--> active --finish--> finished

Activation requires both submission dates, an end after the begin, a begin
in the future and at least one concretization question.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser
from grantflow.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from grantflow.modules.funds import repository
from grantflow.modules.funds.models import (
    Fund,
    FundConcretization,
    FundState,
    JuryCriterion,
    Process,
)
from grantflow.modules.funds.schemas import FundCreate, JuryMemberCreate, ProcessCreate
from grantflow.modules.users.models import ObjectRole, ObjectType
from grantflow.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Fund transitions: current state -> states it may move to
VALID_FUND_TRANSITIONS: dict[FundState, set[FundState]] = {
    FundState.INACTIVE: {FundState.ACTIVE},
    FundState.ACTIVE: {FundState.FINISHED},
    FundState.FINISHED: set(),
}


def _require_privileged(user: CurrentUser) -> None:
    if not user.is_privileged:
        raise ForbiddenError()


async def create_process(db: AsyncSession, data: ProcessCreate, user: CurrentUser) -> Process:
    _require_privileged(user)
    if await repository.get_process_by_name(db, data.name):
        raise ConflictError("A process with this name already exists.")

    process = await repository.create_process(
        db, Process(name=data.name, description=data.description)
    )
    await db.commit()
    logger.info(f"Created process {process.id} ({process.name})")
    return process


async def list_processes(db: AsyncSession) -> list[Process]:
    return await repository.list_processes(db)


async def get_fund(db: AsyncSession, fund_id: UUID) -> Fund:
    fund = await repository.get_fund(db, fund_id)
    if fund is None:
        raise NotFoundError(f"Fund {fund_id} not found.")
    return fund


async def list_funds(db: AsyncSession, process_id: UUID | None = None) -> list[Fund]:
    return await repository.list_funds(db, process_id)


async def create_fund(db: AsyncSession, data: FundCreate, user: CurrentUser) -> Fund:
    """
    Create an inactive fund with its questions and jury criteria.

    Raises:
        ForbiddenError: Caller is neither admin nor process owner
        NotFoundError: Unknown process
        ConflictError: Fund name taken
    """
    _require_privileged(user)

    if await repository.get_process(db, data.process_id) is None:
        raise NotFoundError(f"Process {data.process_id} not found.")
    if await repository.get_fund_by_name(db, data.name):
        raise ConflictError("A fund with this name already exists.")

    fund = Fund(
        process_id=data.process_id,
        name=data.name,
        description=data.description,
        state=FundState.INACTIVE,
        submission_begin=data.submission_begin,
        submission_end=data.submission_end,
        rating_begin=data.rating_begin,
        rating_end=data.rating_end,
        briefing_date=data.briefing_date,
        final_jury_date=data.final_jury_date,
        jurors_per_application=data.jurors_per_application,
        budget=data.budget,
        minimum_grant=data.minimum_grant,
        maximum_grant=data.maximum_grant,
        criteria=data.criteria,
        concretizations=[
            FundConcretization(
                question=item.question,
                description=item.description,
                max_length=item.max_length,
                position=position,
            )
            for position, item in enumerate(data.concretizations)
        ],
        jury_criteria=[
            JuryCriterion(name=item.name, question=item.question) for item in data.jury_criteria
        ],
    )
    await repository.create_fund(db, fund)
    await db.commit()

    logger.info(f"Created fund {fund.id} ({fund.name}) in process {fund.process_id}")
    return fund


def _transition(fund: Fund, new_state: FundState) -> None:
    if new_state not in VALID_FUND_TRANSITIONS[fund.state]:
        raise ValidationFailedError({"state": ["validate.fund.invalidTransition"]})
    fund.state = new_state


async def activate_fund(
    db: AsyncSession, fund_id: UUID, user: CurrentUser, now: datetime | None = None
) -> Fund:
    """
    Open a fund for applications.

    Raises:
        ValidationFailedError: The fund cannot be activated, with the reasons
    """
    _require_privileged(user)
    fund = await get_fund(db, fund_id)

    violations = fund.activation_violations(now)
    if violations:
        raise ValidationFailedError(violations, message="Fund cannot be activated.")

    _transition(fund, FundState.ACTIVE)
    await db.commit()

    logger.info(f"Fund {fund.id} activated by user {user.id}")
    return fund


async def finish_fund(db: AsyncSession, fund_id: UUID, user: CurrentUser) -> Fund:
    """Close an active fund."""
    _require_privileged(user)
    fund = await get_fund(db, fund_id)

    _transition(fund, FundState.FINISHED)
    await db.commit()

    logger.info(f"Fund {fund.id} finished by user {user.id}")
    return fund


async def add_jury_member(
    db: AsyncSession, fund_id: UUID, data: JuryMemberCreate, user: CurrentUser
) -> None:
    """
    Make a user a juror of a fund.

    Raises:
        NotFoundError: Unknown fund or user
        ConflictError: Already a juror
    """
    _require_privileged(user)
    fund = await get_fund(db, fund_id)

    juror = await UserRepository.get_by_id(db, data.user_id)
    if juror is None or juror.is_deleted:
        raise NotFoundError("User not found.")

    if await UserRepository.has_object_role(
        db, juror.id, ObjectRole.JURY_MEMBER, ObjectType.FUND, fund.id
    ):
        raise ConflictError("User is already a jury member of this fund.")

    await UserRepository.add_object_role(
        db, juror.id, ObjectRole.JURY_MEMBER, ObjectType.FUND, fund.id
    )
    await db.commit()
    logger.info(f"User {juror.id} added to the jury of fund {fund.id}")

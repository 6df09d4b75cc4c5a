"""
Fund Applications Router

Endpoints:
- POST   /fund-applications                  - Apply with a project to a fund
- GET    /fund-applications?fund_id=         - List a fund's applications
- GET    /fund-applications/{id}             - Get an application
- PATCH  /fund-applications/{id}             - Edit the applicant fields
- POST   /fund-applications/{id}/submit      - Submit to the jury
- DELETE /fund-applications/{id}             - Withdraw
- PATCH  /fund-applications/{id}/jury        - Set jury comment/order
- PUT    /fund-applications/{id}/rating      - Rate as a juror
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser, get_current_user, require_privileged_user
from grantflow.core.database import get_db
from grantflow.modules.fund_applications import service
from grantflow.modules.fund_applications.schemas import (
    FundApplicationCreate,
    FundApplicationResponse,
    FundApplicationUpdate,
    JuryFieldsUpdate,
    JuryRatingResponse,
    JuryRatingUpdate,
)

router = APIRouter()


@router.post("", response_model=FundApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    data: FundApplicationCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> FundApplicationResponse:
    application = await service.create_application(db, data, user)
    return FundApplicationResponse.model_validate(application)


@router.get("", response_model=list[FundApplicationResponse])
async def list_applications(
    fund_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> list[FundApplicationResponse]:
    applications = await service.list_fund_applications(db, fund_id, user)
    return [FundApplicationResponse.model_validate(a) for a in applications]


@router.get("/{application_id}", response_model=FundApplicationResponse)
async def get_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> FundApplicationResponse:
    application = await service.get_application(db, application_id, user)
    return FundApplicationResponse.model_validate(application)


@router.patch("/{application_id}", response_model=FundApplicationResponse)
async def update_application(
    application_id: UUID,
    data: FundApplicationUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> FundApplicationResponse:
    """Edit answers and self-assessments; 422 reports violations per question."""
    application = await service.update_application(db, application_id, data, user)
    return FundApplicationResponse.model_validate(application)


@router.post("/{application_id}/submit", response_model=FundApplicationResponse)
async def submit_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> FundApplicationResponse:
    """Submit; 403 without detail when any submission condition is unmet."""
    application = await service.submit_application(db, application_id, user)
    return FundApplicationResponse.model_validate(application)


@router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_application(
    application_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> Response:
    await service.delete_application(db, application_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{application_id}/jury", response_model=FundApplicationResponse)
async def set_jury_fields(
    application_id: UUID,
    data: JuryFieldsUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> FundApplicationResponse:
    application = await service.set_jury_fields(db, application_id, data, user)
    return FundApplicationResponse.model_validate(application)


@router.put("/{application_id}/rating", response_model=JuryRatingResponse)
async def rate_application(
    application_id: UUID,
    data: JuryRatingUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> JuryRatingResponse:
    rating = await service.rate_application(db, application_id, data, user)
    return JuryRatingResponse.model_validate(rating)

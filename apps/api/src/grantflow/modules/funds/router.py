"""
Funds Router

Endpoints:
- GET  /funds/processes             - List processes
- POST /funds/processes             - Create a process (admin/process owner)
- GET  /funds                       - List funds
- POST /funds                       - Create a fund (admin/process owner)
- GET  /funds/{id}                  - Get a fund
- POST /funds/{id}/activate         - Activate a fund
- POST /funds/{id}/finish           - Finish a fund
- POST /funds/{id}/jury-members     - Add a juror
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser, get_current_user, require_privileged_user
from grantflow.core.database import get_db
from grantflow.modules.funds import service
from grantflow.modules.funds.schemas import (
    FundCreate,
    FundResponse,
    JuryMemberCreate,
    ProcessCreate,
    ProcessResponse,
)

router = APIRouter()


@router.get("/processes", response_model=list[ProcessResponse])
async def list_processes(
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
) -> list[ProcessResponse]:
    return [ProcessResponse.model_validate(p) for p in await service.list_processes(db)]


@router.post("/processes", response_model=ProcessResponse, status_code=status.HTTP_201_CREATED)
async def create_process(
    data: ProcessCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> ProcessResponse:
    return ProcessResponse.model_validate(await service.create_process(db, data, user))


@router.get("", response_model=list[FundResponse])
async def list_funds(
    process_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
) -> list[FundResponse]:
    return [FundResponse.model_validate(f) for f in await service.list_funds(db, process_id)]


@router.post("", response_model=FundResponse, status_code=status.HTTP_201_CREATED)
async def create_fund(
    data: FundCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> FundResponse:
    return FundResponse.model_validate(await service.create_fund(db, data, user))


@router.get("/{fund_id}", response_model=FundResponse)
async def get_fund(
    fund_id: UUID,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
) -> FundResponse:
    return FundResponse.model_validate(await service.get_fund(db, fund_id))


@router.post("/{fund_id}/activate", response_model=FundResponse)
async def activate_fund(
    fund_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> FundResponse:
    """Activate a fund; 422 lists why it cannot be activated."""
    return FundResponse.model_validate(await service.activate_fund(db, fund_id, user))


@router.post("/{fund_id}/finish", response_model=FundResponse)
async def finish_fund(
    fund_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> FundResponse:
    return FundResponse.model_validate(await service.finish_fund(db, fund_id, user))


@router.post("/{fund_id}/jury-members", status_code=status.HTTP_204_NO_CONTENT)
async def add_jury_member(
    fund_id: UUID,
    data: JuryMemberCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_privileged_user),
) -> Response:
    await service.add_jury_member(db, fund_id, data, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

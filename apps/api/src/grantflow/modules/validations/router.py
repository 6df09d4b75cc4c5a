"""
Validations Router

POST /validations/{id}/confirm - confirm a validation token

Responses:
- 205 Reset Content: token accepted and its effect applied
- 400: token expired (it has been removed)
- 403: caller may not confirm this token (e.g. authenticated while
  confirming an account activation)
- 404: unknown id or wrong token (indistinguishable)

The endpoint is rate limited per client to slow down token guessing.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from grantflow.core.auth import CurrentUser, get_optional_user
from grantflow.core.config import settings
from grantflow.core.database import get_db
from grantflow.core.rate_limit import rate_limit
from grantflow.modules.validations import service
from grantflow.modules.validations.schemas import ValidationConfirmRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{validation_id}/confirm",
    status_code=status.HTTP_205_RESET_CONTENT,
    summary="Confirm Validation",
    dependencies=[Depends(rate_limit(limit=settings.rate_limit_confirm_per_minute, window_seconds=60))],
    responses={
        205: {"description": "Validation successful"},
        400: {
            "description": "Validation expired",
            "content": {
                "application/json": {
                    "example": {"error": "EXPIRED", "message": "Validation is expired."}
                }
            },
        },
        403: {"description": "Access denied"},
        404: {"description": "Validation not found"},
    },
)
async def confirm_validation(
    validation_id: UUID,
    data: ValidationConfirmRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser | None = Depends(get_optional_user),
) -> Response:
    """
    Confirm a validation with the token from the emailed link.

    Raises:
        NotFoundError, ExpiredError, ForbiddenError (rendered by the app's
        domain error handler)
    """
    await service.confirm_validation(
        db,
        validation_id,
        data.token,
        params=data.params(),
        current_user=current_user,
    )
    return Response(status_code=status.HTTP_205_RESET_CONTENT)

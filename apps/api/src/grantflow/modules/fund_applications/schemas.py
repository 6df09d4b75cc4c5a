"""
Fund Application Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from grantflow.modules.fund_applications.models import ApplicationState

SelfAssessment = Literal[0, 25, 50, 75, 100]


class FundApplicationCreate(BaseModel):
    """Request body for POST /fund-applications."""

    fund_id: UUID
    project_id: UUID


class FundApplicationUpdate(BaseModel):
    """Applicant-writable fields. Only sent fields are applied."""

    concretizations: dict[str, str] | None = None
    concretization_self_assessment: SelfAssessment | None = None
    application_self_assessment: SelfAssessment | None = None
    requested_funding: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def reject_null_assessments(self) -> "FundApplicationUpdate":
        """Self-assessments may be omitted but not cleared."""
        for field in ("concretization_self_assessment", "application_self_assessment"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class JuryFieldsUpdate(BaseModel):
    """Jury fields, writable by admins and process owners."""

    jury_comment: str | None = Field(None, max_length=10000)
    jury_order: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def reject_null_order(self) -> "JuryFieldsUpdate":
        if "jury_order" in self.model_fields_set and self.jury_order is None:
            raise ValueError("jury_order cannot be null")
        return self


class CriterionRating(BaseModel):
    rating: int = Field(..., ge=0, le=10)
    comment: str | None = Field(None, max_length=5000)


class JuryRatingUpdate(BaseModel):
    """Ratings keyed by jury criterion id."""

    ratings: dict[str, CriterionRating]


class JuryRatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    juror_id: UUID
    ratings: dict
    state: str


class FundApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    project_id: UUID
    state: ApplicationState
    concretizations: dict
    concretization_self_assessment: int
    application_self_assessment: int
    requested_funding: int | None
    jury_comment: str | None
    jury_order: int
    submission_data: dict | None
    created_at: datetime

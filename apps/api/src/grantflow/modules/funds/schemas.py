"""
Fund Schemas

Pydantic schemas for processes, funds, concretization questions and jury
criteria.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from grantflow.modules.funds.models import (
    DEFAULT_CONCRETIZATION_MAX_LENGTH,
    DEFAULT_JURORS_PER_APPLICATION,
    FundState,
)


class ProcessCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class ProcessResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None


class ConcretizationCreate(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)
    description: str | None = None
    max_length: int = Field(DEFAULT_CONCRETIZATION_MAX_LENGTH, ge=1, le=10000)


class ConcretizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    question: str
    description: str | None
    max_length: int
    position: int


class JuryCriterionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    question: str | None = None


class JuryCriterionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    question: str | None


class FundCreate(BaseModel):
    """Request body for POST /funds."""

    process_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None

    submission_begin: datetime | None = None
    submission_end: datetime | None = None
    rating_begin: datetime | None = None
    rating_end: datetime | None = None
    briefing_date: datetime | None = None
    final_jury_date: datetime | None = None

    jurors_per_application: int = Field(DEFAULT_JURORS_PER_APPLICATION, ge=1, le=20)
    budget: int | None = Field(None, ge=0)
    minimum_grant: int | None = Field(None, ge=0)
    maximum_grant: int | None = Field(None, ge=0)
    criteria: list[str] | None = None

    concretizations: list[ConcretizationCreate] = Field(default_factory=list)
    jury_criteria: list[JuryCriterionCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_grants(self):
        if (
            self.minimum_grant is not None
            and self.maximum_grant is not None
            and self.minimum_grant > self.maximum_grant
        ):
            raise ValueError("minimum_grant must not exceed maximum_grant")
        return self


class FundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    process_id: UUID
    name: str
    description: str | None
    state: FundState
    submission_begin: datetime | None
    submission_end: datetime | None
    rating_begin: datetime | None
    rating_end: datetime | None
    briefing_date: datetime | None
    final_jury_date: datetime | None
    jurors_per_application: int
    budget: int | None
    minimum_grant: int | None
    maximum_grant: int | None
    criteria: list[str] | None
    concretizations: list[ConcretizationResponse]
    jury_criteria: list[JuryCriterionResponse]


class JuryMemberCreate(BaseModel):
    user_id: UUID

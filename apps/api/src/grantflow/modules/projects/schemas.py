"""
Project Schemas

Pydantic schemas for request validation and response serialization.
Each write operation has its own schema listing exactly the fields it accepts.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from grantflow.modules.projects.models import MembershipRole, ProjectProgress, ProjectState

SelfAssessment = Literal[0, 25, 50, 75, 100]


class ProjectCreate(BaseModel):
    """Request body for POST /projects."""

    progress: ProjectProgress = ProjectProgress.IDEA
    inspiration_id: UUID | None = None

    name: str | None = Field(None, max_length=280)
    short_description: str = Field(..., min_length=1, max_length=280)
    description: str | None = None
    challenges: str | None = None
    delimitation: str | None = None
    goal: str | None = None
    vision: str | None = None


class ProjectUpdate(BaseModel):
    """Request body for PATCH /projects/{id}. Only sent fields are applied."""

    name: str | None = Field(None, max_length=280)
    short_description: str | None = Field(None, max_length=280)
    description: str | None = None
    challenges: str | None = None
    delimitation: str | None = None
    goal: str | None = None
    vision: str | None = None
    profile_self_assessment: SelfAssessment | None = None

    tasks: list[dict] | None = None
    work_packages: list[dict] | None = None
    outcome: list[str] | None = None
    impact: list[str] | None = None
    results: list[str] | None = None
    target_groups: list[str] | None = None
    utilization: str | None = None
    implementation_time: int | None = Field(None, ge=1, le=120)
    plan_self_assessment: SelfAssessment | None = None

    @model_validator(mode="after")
    def reject_null_assessments(self) -> "ProjectUpdate":
        """Self-assessments may be omitted but not cleared."""
        for field in ("profile_self_assessment", "plan_self_assessment"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class ProjectResponse(BaseModel):
    """Project as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    progress: ProjectProgress
    state: ProjectState
    name: str | None
    short_description: str | None
    description: str | None
    challenges: str | None
    delimitation: str | None
    goal: str | None
    vision: str | None
    profile_self_assessment: int
    tasks: list[dict] | None
    work_packages: list[dict] | None
    outcome: list[str] | None
    impact: list[str] | None
    results: list[str] | None
    target_groups: list[str] | None
    utilization: str | None
    implementation_time: int | None
    plan_self_assessment: int
    is_locked: bool
    inspiration_id: UUID | None
    created_by_id: UUID | None
    created_at: datetime


class MembershipCreate(BaseModel):
    """Request body for POST /projects/{id}/memberships."""

    user_id: UUID
    role: MembershipRole = MembershipRole.MEMBER
    motivation: str | None = Field(None, max_length=2000)
    skills: str | None = Field(None, max_length=2000)


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    user_id: UUID
    role: MembershipRole
    motivation: str | None
    skills: str | None

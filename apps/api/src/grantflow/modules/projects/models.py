"""
Project Models

A project moves forward through a progress pipeline (idea, profile, plan,
application) while its state (active/inactive/deactivated) changes
independently. Progress never moves backwards: ``recalculate_progress`` only
ever raises it.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grantflow.modules.fund_applications.models import ApplicationState
from grantflow.modules.shared import BaseModel

if TYPE_CHECKING:
    from grantflow.modules.fund_applications.models import FundApplication
    from grantflow.modules.users.models import User


class ProjectProgress(str, enum.Enum):
    """Forward-only pipeline stages, in order."""

    IDEA = "idea"
    CREATING_PROFILE = "creating_profile"
    CREATING_PLAN = "creating_plan"
    CREATING_APPLICATION = "creating_application"
    SUBMITTING_APPLICATION = "submitting_application"
    APPLICATION_SUBMITTED = "application_submitted"

    @property
    def rank(self) -> int:
        return PROGRESS_ORDER.index(self)


PROGRESS_ORDER: list[ProjectProgress] = list(ProjectProgress)


class ProjectState(str, enum.Enum):
    """Project state, orthogonal to progress."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DEACTIVATED = "deactivated"


class MembershipRole(str, enum.Enum):
    """Role of a user within a project."""

    OWNER = "owner"
    MEMBER = "member"
    APPLICANT = "applicant"


SELF_ASSESSMENT_VALUES = (0, 25, 50, 75, 100)
SELF_ASSESSMENT_COMPLETE = 100

# All of these must be non-empty for the profile to be complete
PROFILE_FIELDS = (
    "name",
    "short_description",
    "challenges",
    "goal",
    "vision",
    "description",
    "delimitation",
)

# Descriptive fields that are frozen once a project is an idea
IDEA_FROZEN_FIELDS = PROFILE_FIELDS + (
    "tasks",
    "work_packages",
    "outcome",
    "impact",
    "results",
    "target_groups",
    "utilization",
)


class Project(BaseModel):
    """A unit of work that applies to funds."""

    __tablename__ = "projects"

    progress: Mapped[ProjectProgress] = mapped_column(
        Enum(ProjectProgress, name="project_progress"),
        nullable=False,
        default=ProjectProgress.IDEA,
    )
    state: Mapped[ProjectState] = mapped_column(
        Enum(ProjectState, name="project_state"),
        nullable=False,
        default=ProjectState.ACTIVE,
    )

    # Profile
    name: Mapped[str | None] = mapped_column(String(280), nullable=True)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    challenges: Mapped[str | None] = mapped_column(Text, nullable=True)
    delimitation: Mapped[str | None] = mapped_column(Text, nullable=True)
    goal: Mapped[str | None] = mapped_column(Text, nullable=True)
    vision: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_self_assessment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Plan
    tasks: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    work_packages: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    outcome: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    impact: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    results: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    target_groups: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    utilization: Mapped[str | None] = mapped_column(Text, nullable=True)
    implementation_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    plan_self_assessment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    inspiration_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    memberships: Mapped[list["ProjectMembership"]] = relationship(
        "ProjectMembership",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    applications: Mapped[list["FundApplication"]] = relationship(
        "FundApplication",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, progress={self.progress.value}, state={self.state.value})>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def is_profile_complete(self) -> bool:
        """True iff every profile field is non-empty AND the self-assessment is 100."""
        if self.profile_self_assessment != SELF_ASSESSMENT_COMPLETE:
            return False
        return all(_is_filled(getattr(self, field)) for field in PROFILE_FIELDS)

    def _membership_roles(self, user_id: uuid.UUID) -> set[MembershipRole]:
        return {m.role for m in self.memberships if m.user_id == user_id}

    def user_is_owner(self, user_id: uuid.UUID) -> bool:
        return MembershipRole.OWNER in self._membership_roles(user_id)

    def user_is_member(self, user_id: uuid.UUID) -> bool:
        """Owners and members count, applicants do not."""
        roles = self._membership_roles(user_id)
        return MembershipRole.OWNER in roles or MembershipRole.MEMBER in roles

    # Progress chain, each stage requires the previous one

    def is_plan_available(self) -> bool:
        return self.state != ProjectState.DEACTIVATED and self.is_profile_complete()

    def is_application_available(self) -> bool:
        return (
            self.is_plan_available()
            and self.plan_self_assessment == SELF_ASSESSMENT_COMPLETE
            and any(a.state == ApplicationState.DETAILING for a in self.applications)
        )

    def is_submission_available(self) -> bool:
        return self.is_application_available() and any(
            a.application_self_assessment == SELF_ASSESSMENT_COMPLETE for a in self.applications
        )

    def is_application_submitted(self) -> bool:
        return any(a.state == ApplicationState.SUBMITTED for a in self.applications)

    def calculate_progress(self) -> ProjectProgress:
        """The progress the project's content supports, ignoring what is stored."""
        if self.is_application_submitted():
            return ProjectProgress.APPLICATION_SUBMITTED
        if self.is_submission_available():
            return ProjectProgress.SUBMITTING_APPLICATION
        if self.is_application_available():
            return ProjectProgress.CREATING_APPLICATION
        if self.is_plan_available():
            return ProjectProgress.CREATING_PLAN
        return ProjectProgress.CREATING_PROFILE

    def recalculate_progress(self) -> ProjectProgress:
        """
        Raise progress to what the content supports.

        Ideas stay ideas, and a stored stage is never lowered.
        """
        if self.progress == ProjectProgress.IDEA:
            return self.progress

        calculated = self.calculate_progress()
        if calculated.rank > self.progress.rank:
            self.progress = calculated
        return self.progress


def _is_filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return bool(value)


class ProjectMembership(BaseModel):
    """Membership of a user in a project."""

    __tablename__ = "project_memberships"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_memberships_project_user"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[MembershipRole] = mapped_column(
        Enum(MembershipRole, name="membership_role"), nullable=False
    )
    motivation: Mapped[str | None] = mapped_column(Text, nullable=True)
    skills: Mapped[str | None] = mapped_column(Text, nullable=True)

    project: Mapped["Project"] = relationship("Project", back_populates="memberships")
    user: Mapped["User"] = relationship("User", back_populates="project_memberships")

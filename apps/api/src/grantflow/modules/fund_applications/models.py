"""
Fund Application Models

One application links one project to one fund (unique per pair). Applicants
fill it while it is in ``concretization``/``detailing``; once ``submitted`` it
is frozen for them and only jury fields remain writable.
"""

import enum
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grantflow.modules.shared import BaseModel

if TYPE_CHECKING:
    from grantflow.modules.funds.models import Fund
    from grantflow.modules.projects.models import Project
    from grantflow.modules.users.models import User


class ApplicationState(str, enum.Enum):
    """State of a fund application."""

    CONCRETIZATION = "concretization"
    DETAILING = "detailing"
    SUBMITTED = "submitted"


class FundApplication(BaseModel):
    """A project's application to a fund."""

    __tablename__ = "fund_applications"
    __table_args__ = (
        UniqueConstraint("fund_id", "project_id", name="uq_fund_applications_fund_project"),
    )

    fund_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("funds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    state: Mapped[ApplicationState] = mapped_column(
        Enum(ApplicationState, name="application_state"),
        nullable=False,
        default=ApplicationState.CONCRETIZATION,
    )

    # Concretization question id (as string) -> answer
    concretizations: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    concretization_self_assessment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    application_self_assessment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requested_funding: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Jury fields, writable by admins and process owners only
    jury_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    jury_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    submission_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    fund: Mapped["Fund"] = relationship("Fund", lazy="selectin")
    project: Mapped["Project"] = relationship(
        "Project", back_populates="applications", lazy="selectin"
    )
    ratings: Mapped[list["JuryRating"]] = relationship(
        "JuryRating",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<FundApplication(id={self.id}, fund={self.fund_id}, project={self.project_id}, state={self.state.value})>"

    @property
    def is_submitted(self) -> bool:
        return self.state == ApplicationState.SUBMITTED

    def recompute_state(self) -> ApplicationState:
        """
        Derive the state from the answers.

        Submitted stays submitted. Otherwise the application is ``detailing``
        once the concretization self-assessment is 100 and every question of
        the fund has a non-empty answer (trivially true when the fund asks
        none), else ``concretization``.
        """
        if self.is_submitted:
            return self.state

        answers = self.concretizations or {}
        all_answered = all(
            str(answers.get(str(question.id)) or "").strip() for question in self.fund.concretizations
        )

        if self.concretization_self_assessment == 100 and all_answered:
            self.state = ApplicationState.DETAILING
        else:
            self.state = ApplicationState.CONCRETIZATION
        return self.state


class JuryRating(BaseModel):
    """A juror's rating of one application."""

    __tablename__ = "jury_ratings"
    __table_args__ = (
        UniqueConstraint("application_id", "juror_id", name="uq_jury_ratings_application_juror"),
    )

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("fund_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    juror_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Jury criterion id (as string) -> {"rating": int, "comment": str | None}
    ratings: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    state: Mapped[str] = mapped_column(String(20), nullable=False, default="open")

    application: Mapped["FundApplication"] = relationship(
        "FundApplication", back_populates="ratings"
    )
    juror: Mapped["User"] = relationship("User")

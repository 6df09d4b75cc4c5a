"""
Fund Models

A process (funding program) runs funds. A fund has a submission and rating
calendar, concretization questions applicants answer, and jury criteria
jurors rate against.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grantflow.modules.shared import BaseModel, as_utc, utcnow

DEFAULT_CONCRETIZATION_MAX_LENGTH = 280
DEFAULT_JURORS_PER_APPLICATION = 2


class FundState(str, enum.Enum):
    """Lifecycle of a fund."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    FINISHED = "finished"


class Process(BaseModel):
    """A funding program."""

    __tablename__ = "processes"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    funds: Mapped[list["Fund"]] = relationship("Fund", back_populates="process", lazy="selectin")


class Fund(BaseModel):
    """A funding round projects apply to."""

    __tablename__ = "funds"

    process_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("processes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[FundState] = mapped_column(
        Enum(FundState, name="fund_state"), nullable=False, default=FundState.INACTIVE
    )

    submission_begin: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    submission_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rating_begin: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rating_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    briefing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    final_jury_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    jurors_per_application: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_JURORS_PER_APPLICATION
    )
    budget: Mapped[int | None] = mapped_column(Integer, nullable=True)
    minimum_grant: Mapped[int | None] = mapped_column(Integer, nullable=True)
    maximum_grant: Mapped[int | None] = mapped_column(Integer, nullable=True)
    criteria: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    process: Mapped["Process"] = relationship("Process", back_populates="funds")
    concretizations: Mapped[list["FundConcretization"]] = relationship(
        "FundConcretization",
        back_populates="fund",
        cascade="all, delete-orphan",
        order_by="FundConcretization.position",
        lazy="selectin",
    )
    jury_criteria: Mapped[list["JuryCriterion"]] = relationship(
        "JuryCriterion",
        back_populates="fund",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Fund(id={self.id}, name={self.name}, state={self.state.value})>"

    @property
    def is_active(self) -> bool:
        return self.state == FundState.ACTIVE

    def is_in_submission_period(self, now: datetime | None = None) -> bool:
        """True iff now lies within [submission_begin, submission_end]."""
        if self.submission_begin is None or self.submission_end is None:
            return False
        now = now or utcnow()
        return as_utc(self.submission_begin) <= now <= as_utc(self.submission_end)

    def get_concretization(self, concretization_id: uuid.UUID) -> "FundConcretization | None":
        return next((c for c in self.concretizations if c.id == concretization_id), None)

    def activation_violations(self, now: datetime | None = None) -> dict[str, list[str]]:
        """
        Reasons the fund cannot be activated, keyed by property.

        Empty when activation is allowed.
        """
        now = now or utcnow()
        violations: dict[str, list[str]] = {}

        if self.state != FundState.INACTIVE:
            violations.setdefault("state", []).append("validate.fund.notInactive")
        if self.submission_begin is None:
            violations.setdefault("submissionBegin", []).append("validate.general.notBlank")
        elif as_utc(self.submission_begin) <= now:
            violations.setdefault("submissionBegin", []).append("validate.fund.beginInPast")
        if self.submission_end is None:
            violations.setdefault("submissionEnd", []).append("validate.general.notBlank")
        elif self.submission_begin is not None and as_utc(self.submission_end) <= as_utc(
            self.submission_begin
        ):
            violations.setdefault("submissionEnd", []).append("validate.fund.endBeforeBegin")
        if not self.concretizations:
            violations.setdefault("concretizations", []).append("validate.fund.noConcretizations")

        return violations

    def can_be_activated(self, now: datetime | None = None) -> bool:
        return not self.activation_violations(now)


class FundConcretization(BaseModel):
    """A question applicants answer to concretize their application."""

    __tablename__ = "fund_concretizations"

    fund_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("funds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    max_length: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_CONCRETIZATION_MAX_LENGTH
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    fund: Mapped["Fund"] = relationship("Fund", back_populates="concretizations")


class JuryCriterion(BaseModel):
    """A criterion jurors rate applications against."""

    __tablename__ = "jury_criteria"

    fund_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("funds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    question: Mapped[str | None] = mapped_column(Text, nullable=True)

    fund: Mapped["Fund"] = relationship("Fund", back_populates="jury_criteria")

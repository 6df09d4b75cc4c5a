"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 12:00:00.000000

This migration creates:
1. users and user_object_roles (object-scoped roles such as jury member)
2. processes, funds, fund_concretizations and jury_criteria
3. projects and project_memberships
4. fund_applications and jury_ratings
5. validations (hashed single-use tokens, cascade-deleted with their user)

Enum labels are the Python enum member names, as SQLAlchemy stores them.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS = {
    "object_role": ("JURY_MEMBER", "PROCESS_OWNER"),
    "object_type": ("FUND", "PROCESS"),
    "fund_state": ("INACTIVE", "ACTIVE", "FINISHED"),
    "project_progress": (
        "IDEA",
        "CREATING_PROFILE",
        "CREATING_PLAN",
        "CREATING_APPLICATION",
        "SUBMITTING_APPLICATION",
        "APPLICATION_SUBMITTED",
    ),
    "project_state": ("ACTIVE", "INACTIVE", "DEACTIVATED"),
    "membership_role": ("OWNER", "MEMBER", "APPLICANT"),
    "application_state": ("CONCRETIZATION", "DETAILING", "SUBMITTED"),
    "validation_type": ("ACCOUNT", "RESET_PASSWORD", "CHANGE_EMAIL", "JURY_INVITE"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create all tables."""
    bind = op.get_bind()
    for name in ENUMS:
        _enum(name).create(bind, checkfirst=True)

    # Users
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column(
            "roles",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_validated", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "user_object_roles",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", _enum("object_role"), nullable=False),
        sa.Column("object_type", _enum("object_type"), nullable=False),
        sa.Column("object_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "role", "object_type", "object_id", name="uq_user_object_roles_grant"
        ),
    )
    op.create_index("ix_user_object_roles_user_id", "user_object_roles", ["user_id"])
    op.create_index("ix_user_object_roles_object_id", "user_object_roles", ["object_id"])

    # Processes and funds
    op.create_table(
        "processes",
        *_base_columns(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "funds",
        *_base_columns(),
        sa.Column("process_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("state", _enum("fund_state"), nullable=False, server_default="INACTIVE"),
        sa.Column("submission_begin", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submission_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rating_begin", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rating_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("briefing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("final_jury_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("jurors_per_application", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("budget", sa.Integer(), nullable=True),
        sa.Column("minimum_grant", sa.Integer(), nullable=True),
        sa.Column("maximum_grant", sa.Integer(), nullable=True),
        sa.Column("criteria", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["process_id"], ["processes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_funds_process_id", "funds", ["process_id"])

    op.create_table(
        "fund_concretizations",
        *_base_columns(),
        sa.Column("fund_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("max_length", sa.Integer(), nullable=False, server_default="280"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["fund_id"], ["funds.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_fund_concretizations_fund_id", "fund_concretizations", ["fund_id"])

    op.create_table(
        "jury_criteria",
        *_base_columns(),
        sa.Column("fund_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("question", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["fund_id"], ["funds.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_jury_criteria_fund_id", "jury_criteria", ["fund_id"])

    # Projects
    op.create_table(
        "projects",
        *_base_columns(),
        sa.Column("progress", _enum("project_progress"), nullable=False, server_default="IDEA"),
        sa.Column("state", _enum("project_state"), nullable=False, server_default="ACTIVE"),
        # Profile
        sa.Column("name", sa.String(length=280), nullable=True),
        sa.Column("short_description", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("challenges", sa.Text(), nullable=True),
        sa.Column("delimitation", sa.Text(), nullable=True),
        sa.Column("goal", sa.Text(), nullable=True),
        sa.Column("vision", sa.Text(), nullable=True),
        sa.Column("profile_self_assessment", sa.Integer(), nullable=False, server_default="0"),
        # Plan
        sa.Column("tasks", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("work_packages", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("outcome", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("impact", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("results", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("target_groups", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("utilization", sa.Text(), nullable=True),
        sa.Column("implementation_time", sa.Integer(), nullable=True),
        sa.Column("plan_self_assessment", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("inspiration_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["inspiration_id"], ["projects.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_created_by_id", "projects", ["created_by_id"])

    op.create_table(
        "project_memberships",
        *_base_columns(),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", _enum("membership_role"), nullable=False),
        sa.Column("motivation", sa.Text(), nullable=True),
        sa.Column("skills", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "user_id", name="uq_project_memberships_project_user"),
    )
    op.create_index("ix_project_memberships_project_id", "project_memberships", ["project_id"])
    op.create_index("ix_project_memberships_user_id", "project_memberships", ["user_id"])

    # Fund applications
    op.create_table(
        "fund_applications",
        *_base_columns(),
        sa.Column("fund_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "state",
            _enum("application_state"),
            nullable=False,
            server_default="CONCRETIZATION",
        ),
        sa.Column(
            "concretizations",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "concretization_self_assessment", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("application_self_assessment", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("requested_funding", sa.Integer(), nullable=True),
        sa.Column("jury_comment", sa.Text(), nullable=True),
        sa.Column("jury_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("submission_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["fund_id"], ["funds.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("fund_id", "project_id", name="uq_fund_applications_fund_project"),
    )
    op.create_index("ix_fund_applications_fund_id", "fund_applications", ["fund_id"])
    op.create_index("ix_fund_applications_project_id", "fund_applications", ["project_id"])

    op.create_table(
        "jury_ratings",
        *_base_columns(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("juror_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "ratings",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="open"),
        sa.ForeignKeyConstraint(["application_id"], ["fund_applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["juror_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_id", "juror_id", name="uq_jury_ratings_application_juror"),
    )
    op.create_index("ix_jury_ratings_application_id", "jury_ratings", ["application_id"])
    op.create_index("ix_jury_ratings_juror_id", "jury_ratings", ["juror_id"])

    # Validations (no updated_at, tokens are never modified)
    op.create_table(
        "validations",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", _enum("validation_type"), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("content", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "type", "token", name="uq_validations_user_type_token"),
    )
    op.create_index("ix_validations_user_id", "validations", ["user_id"])
    op.create_index("ix_validations_expires_at", "validations", ["expires_at"])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table("validations")
    op.drop_table("jury_ratings")
    op.drop_table("fund_applications")
    op.drop_table("project_memberships")
    op.drop_table("projects")
    op.drop_table("jury_criteria")
    op.drop_table("fund_concretizations")
    op.drop_table("funds")
    op.drop_table("processes")
    op.drop_table("user_object_roles")
    op.drop_table("users")

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        _enum(name).drop(bind, checkfirst=True)

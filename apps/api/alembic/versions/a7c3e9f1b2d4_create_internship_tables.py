"""create internship tables

Revision ID: a7c3e9f1b2d4
Revises:
Create Date: 2026-03-02 09:00:00.000000

This migration:
1. Creates the reference tables internships hang off (users, courses,
   cohorts, enrollments)
2. Creates internships and their locations
3. Creates the one-per-internship confirmation table with a unique token
4. Creates the append-only notification log

Enum types are created with checkfirst so the migration can run against
a database where the reference tables already exist.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a7c3e9f1b2d4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


USER_ROLE = postgresql.ENUM(
    "super_admin",
    "admin",
    "coordinator",
    "teacher",
    "student",
    name="user_role",
    create_type=False,
)
INTERNSHIP_STATUS = postgresql.ENUM(
    "PENDING",
    "IN_PROGRESS",
    "COMPLETED",
    "FAILED",
    "CANCELLED",
    name="internship_status",
    create_type=False,
)
NOTIFICATION_TYPE = postgresql.ENUM(
    "CONVOCATION_PENDING",
    "START_IMMINENT",
    "END_IMMINENT",
    "COMPLETION_REQUESTED",
    name="internship_notification_type",
    create_type=False,
)
NOTIFICATION_CHANNEL = postgresql.ENUM("EMAIL", name="notification_channel", create_type=False)


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
    """Create reference and internship tables."""
    bind = op.get_bind()
    for enum_type in (USER_ROLE, INTERNSHIP_STATUS, NOTIFICATION_TYPE, NOTIFICATION_CHANNEL):
        enum_type.create(bind, checkfirst=True)

    # Reference tables
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "courses",
        *_base_columns(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("mandatory_internship", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "cohorts",
        *_base_columns(),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cohorts_course_id", "cohorts", ["course_id"])

    op.create_table(
        "enrollments",
        *_base_columns(),
        sa.Column("cohort_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["cohort_id"], ["cohorts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_enrollments_cohort_id", "enrollments", ["cohort_id"])
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])

    # Internships
    op.create_table(
        "internships",
        *_base_columns(),
        sa.Column("course_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("cohort_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("enrollment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("mandatory", sa.Boolean(), nullable=False),
        sa.Column("status", INTERNSHIP_STATUS, nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_hours", sa.Integer(), nullable=True),
        sa.Column("primary_company", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("last_reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["cohort_id"], ["cohorts.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["enrollment_id"], ["enrollments.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["student_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_internships_course_id", "internships", ["course_id"])
    op.create_index("ix_internships_cohort_id", "internships", ["cohort_id"])
    op.create_index("ix_internships_enrollment_id", "internships", ["enrollment_id"])
    # Expiration watcher scans by status and end date
    op.create_index("ix_internships_status_end_date", "internships", ["status", "end_date"])

    op.create_table(
        "internship_locations",
        *_base_columns(),
        sa.Column("internship_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("company_document", sa.String(length=20), nullable=True),
        sa.Column("contact_name", sa.String(length=255), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=30), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("weekdays", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("weekly_hours", sa.Integer(), nullable=True),
        sa.Column("zip_code", sa.String(length=9), nullable=True),
        sa.Column("street", sa.String(length=255), nullable=True),
        sa.Column("number", sa.String(length=20), nullable=True),
        sa.Column("district", sa.String(length=120), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("complement", sa.String(length=120), nullable=True),
        sa.Column("reference_point", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(["internship_id"], ["internships.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_internship_locations_internship_id", "internship_locations", ["internship_id"]
    )

    op.create_table(
        "internship_confirmations",
        *_base_columns(),
        sa.Column("internship_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("protocol", sa.String(length=32), nullable=True),
        sa.Column("ip", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("device_type", sa.String(length=50), nullable=True),
        sa.Column("device_description", sa.String(length=120), nullable=True),
        sa.Column("device_id", sa.String(length=120), nullable=True),
        sa.Column("operating_system", sa.String(length=120), nullable=True),
        sa.Column("browser", sa.String(length=120), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["internship_id"], ["internships.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("internship_id"),
        sa.UniqueConstraint("token"),
        sa.UniqueConstraint("protocol"),
    )
    op.create_index(
        "ix_internship_confirmations_token", "internship_confirmations", ["token"]
    )

    op.create_table(
        "internship_notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("internship_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", NOTIFICATION_TYPE, nullable=False),
        sa.Column("channel", NOTIFICATION_CHANNEL, nullable=False),
        sa.Column("recipient", sa.String(length=255), nullable=False),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["internship_id"], ["internships.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_internship_notifications_internship_sent",
        "internship_notifications",
        ["internship_id", "sent_at"],
    )


def downgrade() -> None:
    """Drop internship and reference tables."""
    op.drop_index(
        "ix_internship_notifications_internship_sent", table_name="internship_notifications"
    )
    op.drop_table("internship_notifications")

    op.drop_index("ix_internship_confirmations_token", table_name="internship_confirmations")
    op.drop_table("internship_confirmations")

    op.drop_index("ix_internship_locations_internship_id", table_name="internship_locations")
    op.drop_table("internship_locations")

    op.drop_index("ix_internships_status_end_date", table_name="internships")
    op.drop_index("ix_internships_enrollment_id", table_name="internships")
    op.drop_index("ix_internships_cohort_id", table_name="internships")
    op.drop_index("ix_internships_course_id", table_name="internships")
    op.drop_table("internships")

    op.drop_index("ix_enrollments_student_id", table_name="enrollments")
    op.drop_index("ix_enrollments_cohort_id", table_name="enrollments")
    op.drop_table("enrollments")

    op.drop_index("ix_cohorts_course_id", table_name="cohorts")
    op.drop_table("cohorts")

    op.drop_table("courses")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (NOTIFICATION_CHANNEL, NOTIFICATION_TYPE, INTERNSHIP_STATUS, USER_ROLE):
        enum_type.drop(bind, checkfirst=True)

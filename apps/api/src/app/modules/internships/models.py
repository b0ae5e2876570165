"""
Internship Models

Database models for internships ("estágios"), their locations, the single
confirmation record issued per internship, and the append-only notification
log.
"""

import enum
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.courses.models import Cohort, Course, Enrollment
    from app.modules.users.models import User


class InternshipStatus(str, enum.Enum):
    """Lifecycle status of an internship."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Weekday(str, enum.Enum):
    """Days of the week a location is attended."""

    SUNDAY = "SUNDAY"
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"


class NotificationType(str, enum.Enum):
    """Kinds of outbound communication recorded in the notification log."""

    CONVOCATION_PENDING = "CONVOCATION_PENDING"
    START_IMMINENT = "START_IMMINENT"
    END_IMMINENT = "END_IMMINENT"
    COMPLETION_REQUESTED = "COMPLETION_REQUESTED"


class NotificationChannel(str, enum.Enum):
    EMAIL = "EMAIL"


class Internship(BaseModel):
    """
    A supervised work placement for one student enrollment.

    Never physically deleted; the lifecycle is carried by `status`.
    `completed_at` and `failed_at` are mutually exclusive.
    """

    __tablename__ = "internships"

    # Ownership
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id", ondelete="RESTRICT"), nullable=False
    )
    cohort_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("cohorts.id", ondelete="RESTRICT"), nullable=False
    )
    enrollment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("enrollments.id", ondelete="RESTRICT"), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )

    # Details
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    mandatory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[InternshipStatus] = mapped_column(
        Enum(InternshipStatus, name="internship_status"),
        nullable=False,
        default=InternshipStatus.PENDING,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    primary_company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle timestamps
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Reminder dedup
    last_reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Audit
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    course: Mapped["Course"] = relationship("Course")
    cohort: Mapped["Cohort"] = relationship("Cohort")
    enrollment: Mapped["Enrollment"] = relationship("Enrollment")
    student: Mapped["User"] = relationship("User", foreign_keys=[student_id])
    created_by: Mapped["User | None"] = relationship("User", foreign_keys=[created_by_id])
    updated_by: Mapped["User | None"] = relationship("User", foreign_keys=[updated_by_id])

    locations: Mapped[list["InternshipLocation"]] = relationship(
        "InternshipLocation",
        back_populates="internship",
        cascade="all, delete-orphan",
        order_by="InternshipLocation.created_at",
    )
    confirmation: Mapped["InternshipConfirmation | None"] = relationship(
        "InternshipConfirmation",
        back_populates="internship",
        cascade="all, delete-orphan",
        uselist=False,
    )
    notifications: Mapped[list["InternshipNotification"]] = relationship(
        "InternshipNotification",
        back_populates="internship",
    )

    __table_args__ = (
        Index("ix_internships_course_id", "course_id"),
        Index("ix_internships_cohort_id", "cohort_id"),
        Index("ix_internships_enrollment_id", "enrollment_id"),
        Index("ix_internships_status_end_date", "status", "end_date"),
    )


class InternshipLocation(BaseModel):
    """One of the places where an internship takes place."""

    __tablename__ = "internship_locations"

    internship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("internships.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str | None] = mapped_column(String(120), nullable=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_document: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Contact at the company
    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Schedule
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    # Stored as JSON array of Weekday values
    weekdays: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    weekly_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Address
    zip_code: Mapped[str | None] = mapped_column(String(9), nullable=True)
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    district: Mapped[str | None] = mapped_column(String(120), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    complement: Mapped[str | None] = mapped_column(String(120), nullable=True)
    reference_point: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    internship: Mapped["Internship"] = relationship("Internship", back_populates="locations")

    __table_args__ = (Index("ix_internship_locations_internship_id", "internship_id"),)


class InternshipConfirmation(BaseModel):
    """
    Confirmation record, exactly one per internship.

    The token is issued once at creation and never changes. Audit fields are
    filled in when the student confirms.
    """

    __tablename__ = "internship_confirmations"

    internship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("internships.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    protocol: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)

    # Audit bundle captured at confirmation
    ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    device_description: Mapped[str | None] = mapped_column(String(120), nullable=True)
    device_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    operating_system: Mapped[str | None] = mapped_column(String(120), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(120), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    internship: Mapped["Internship"] = relationship("Internship", back_populates="confirmation")

    __table_args__ = (Index("ix_internship_confirmations_token", "token"),)


class InternshipNotification(Base):
    """Append-only log of outbound communications for an internship."""

    __tablename__ = "internship_notifications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    internship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("internships.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="internship_notification_type"), nullable=False
    )
    channel: Mapped[NotificationChannel] = mapped_column(
        Enum(NotificationChannel, name="notification_channel"),
        nullable=False,
        default=NotificationChannel.EMAIL,
    )
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
    )
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)

    internship: Mapped["Internship"] = relationship("Internship", back_populates="notifications")

    __table_args__ = (
        Index("ix_internship_notifications_internship_sent", "internship_id", "sent_at"),
    )

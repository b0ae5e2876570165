"""
Course Models

Reference entities that internships hang off: a course, its cohorts
("turmas") and the students enrolled in each cohort ("inscrições").
Catalog management is handled elsewhere; only identifiers and display
fields are kept here.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.users.models import User


class Course(BaseModel):
    """A course offered by the institution."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    # Default for Internship.mandatory when the payload omits it
    mandatory_internship: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    cohorts: Mapped[list["Cohort"]] = relationship(
        "Cohort", back_populates="course", cascade="all, delete-orphan"
    )


class Cohort(BaseModel):
    """A scheduled offering of a course."""

    __tablename__ = "cohorts"

    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)

    course: Mapped["Course"] = relationship("Course", back_populates="cohorts")

    __table_args__ = (Index("ix_cohorts_course_id", "course_id"),)


class Enrollment(BaseModel):
    """A student's registration in a cohort."""

    __tablename__ = "enrollments"

    cohort_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("cohorts.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    cohort: Mapped["Cohort"] = relationship("Cohort")
    student: Mapped["User"] = relationship("User")

    __table_args__ = (
        Index("ix_enrollments_cohort_id", "cohort_id"),
        Index("ix_enrollments_student_id", "student_id"),
    )

"""
Course Repository

Lookups for the course, cohort and enrollment a request refers to.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.courses.models import Cohort, Course, Enrollment


class CourseRepository:
    """Read-only access to course reference data."""

    @staticmethod
    async def get_course(db: AsyncSession, course_id: UUID) -> Course | None:
        return await db.get(Course, course_id)

    @staticmethod
    async def get_cohort_for_course(
        db: AsyncSession, course_id: UUID, cohort_id: UUID
    ) -> Cohort | None:
        """Get a cohort only if it belongs to the given course."""
        result = await db.execute(
            select(Cohort)
            .options(selectinload(Cohort.course))
            .where(Cohort.id == cohort_id, Cohort.course_id == course_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_enrollment_for_cohort(
        db: AsyncSession, cohort_id: UUID, enrollment_id: UUID
    ) -> Enrollment | None:
        """Get an enrollment only if it belongs to the given cohort."""
        result = await db.execute(
            select(Enrollment)
            .options(selectinload(Enrollment.student))
            .where(Enrollment.id == enrollment_id, Enrollment.cohort_id == cohort_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_enrollment(db: AsyncSession, enrollment_id: UUID) -> Enrollment | None:
        return await db.get(Enrollment, enrollment_id)

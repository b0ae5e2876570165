"""
Courses module - Course, cohort and enrollment reference data.
"""

from app.modules.courses.models import Cohort, Course, Enrollment
from app.modules.courses.repository import CourseRepository

__all__ = ["Cohort", "Course", "Enrollment", "CourseRepository"]

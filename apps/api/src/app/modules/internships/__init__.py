"""
Internships Module

Lifecycle of supervised internships ("estágios") tied to a student's
enrollment in a course cohort:
1. Creation with one or more locations and a confirmation token
2. Convocation email with a confirmation link
3. Confirmation by the student (idempotent, device audit recorded)
4. Status changes by coordinators (COMPLETED, FAILED, CANCELLED, ...)
5. Reminders to the responsible party before the end date

API Endpoints:
- GET /courses/{id}/internships - Paginated list for a course
- POST /courses/{id}/cohorts/{id}/enrollments/{id}/internships - Create
- GET /courses/{id}/cohorts/{id}/enrollments/{id}/internships - List per enrollment
- GET/PUT /internships/{id} - Detail and partial update
- PATCH /internships/{id}/status - Change status
- POST /internships/{id}/resend-confirmation - Resend convocation
- POST /internships/confirmations/{token} - Public confirmation
- GET /me/enrollments/{id}/internships, GET /me/internships/{id} - Student views

Background Jobs (via APScheduler):
- internships_expiration_watcher: cron (hourly by default), reminds the
  internship's creator when the end date is within the horizon
"""

# Models referenced by internship relationships must be mapped too
from app.modules.courses import models as _course_models  # noqa: F401
from app.modules.users import models as _user_models  # noqa: F401

from .admin_router import router as admin_router
from .jobs import ExpirationWatcher
from .router import router

__all__ = ["router", "admin_router", "ExpirationWatcher"]

"""
Internships Admin Router

Endpoints for coordinators and administrators.

Endpoints:
- GET /courses/{course_id}/internships - List a course's internships
- POST /courses/{course_id}/cohorts/{cohort_id}/enrollments/{enrollment_id}/internships
- GET /courses/{course_id}/cohorts/{cohort_id}/enrollments/{enrollment_id}/internships
- GET /internships/{internship_id} - Internship detail
- PUT /internships/{internship_id} - Partial update
- PATCH /internships/{internship_id}/status - Change status
- POST /internships/{internship_id}/resend-confirmation - Resend convocation

Security:
- All endpoints require an administrative role
- Resending the convocation is rate limited per internship
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_admin_user
from app.core.database import get_db
from app.core.rate_limit import RateLimitExceeded, check_rate_limit
from app.modules.internships import service
from app.modules.internships.models import InternshipStatus
from app.modules.internships.notifications import InternshipNotifier, get_internship_notifier
from app.modules.internships.router import raise_service_error, raise_unexpected_error
from app.modules.internships.schemas import (
    InternshipCollectionResponse,
    InternshipCreate,
    InternshipListResponse,
    InternshipResponse,
    InternshipStatusUpdate,
    InternshipUpdate,
    ResendConfirmationRequest,
)
from app.modules.internships.service import InternshipServiceError

logger = logging.getLogger(__name__)

router = APIRouter()

# Each resend sends an email: 5 per hour per internship
RATE_LIMIT_RESEND = (5, 60 * 60)

ENROLLMENT_PATH = "/courses/{course_id}/cohorts/{cohort_id}/enrollments/{enrollment_id}/internships"


async def _check_resend_rate_limit(internship_id: UUID, admin: CurrentUser) -> None:
    limit, window_seconds = RATE_LIMIT_RESEND
    key = f"internship:resend:{internship_id}"

    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(
            f"Rate limit exceeded for resend of internship {internship_id} by {admin.id}: "
            f"{limit}/{window_seconds}s"
        )
        raise RateLimitExceeded(limit, window_seconds)


@router.get(
    "/courses/{course_id}/internships",
    response_model=InternshipListResponse,
    summary="List Internships",
    description="""
Paginated list of a course's internships, newest first.

**Filters:**
- `cohort_id`: Only internships of this cohort
- `status`: Filter by internship status
- `search`: Internship name, primary company, student name or email

**Pagination:**
- `page`: 1-based page number. Default: 1
- `page_size`: Items per page (1-100). Default: 20
""",
    responses={404: {"description": "Course not found"}},
)
async def list_internships(
    course_id: UUID,
    cohort_id: UUID | None = Query(None, description="Filter by cohort"),
    status: InternshipStatus | None = Query(None, description="Filter by status"),
    search: str | None = Query(None, min_length=1, max_length=100, description="Search term"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> InternshipListResponse:
    try:
        result = await service.list_internships(
            db,
            course_id,
            cohort_id=cohort_id,
            status=status,
            search=search,
            page=page,
            page_size=page_size,
        )
        logger.info(
            f"Admin {admin.id} listed internships of course {course_id}: "
            f"total={result.pagination.total}"
        )
        return result
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error listing internships: {e}")
        raise_unexpected_error("ESTAGIOS_LIST_ERROR", e)


@router.post(
    ENROLLMENT_PATH,
    response_model=InternshipResponse,
    status_code=201,
    summary="Create Internship",
    description="""
Create an internship for an enrollment.

The internship, its locations and its confirmation token are stored together
and the student receives a convocation email. A failed email does not undo
the creation; use resend-confirmation to retry.

The confirmation token is only returned by this endpoint.
""",
    responses={
        400: {"description": "Validation error"},
        404: {"description": "Cohort or enrollment not found"},
    },
)
async def create_internship(
    course_id: UUID,
    cohort_id: UUID,
    enrollment_id: UUID,
    data: InternshipCreate,
    db: AsyncSession = Depends(get_db),
    notifier: InternshipNotifier = Depends(get_internship_notifier),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> InternshipResponse:
    try:
        return await service.create_internship(
            db, notifier, course_id, cohort_id, enrollment_id, data, admin.id
        )
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error creating internship: {e}")
        raise_unexpected_error("ESTAGIO_CREATE_ERROR", e)


@router.get(
    ENROLLMENT_PATH,
    response_model=InternshipCollectionResponse,
    summary="List Enrollment Internships",
    responses={404: {"description": "Cohort or enrollment not found"}},
)
async def list_enrollment_internships(
    course_id: UUID,
    cohort_id: UUID,
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> InternshipCollectionResponse:
    try:
        internships = await service.list_by_enrollment(db, course_id, cohort_id, enrollment_id)
        return InternshipCollectionResponse(data=internships)
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error listing enrollment internships: {e}")
        raise_unexpected_error("ESTAGIO_LIST_ERROR", e)


@router.get(
    "/internships/{internship_id}",
    response_model=InternshipResponse,
    summary="Get Internship",
    responses={404: {"description": "Internship not found"}},
)
async def get_internship(
    internship_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> InternshipResponse:
    try:
        return await service.get_internship(
            db, internship_id, requester_id=admin.id, allow_admin=True
        )
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error getting internship: {e}")
        raise_unexpected_error("ESTAGIO_GET_ERROR", e)


@router.put(
    "/internships/{internship_id}",
    response_model=InternshipResponse,
    summary="Update Internship",
    description="""
Partially update an internship. Supplying `locations` replaces every location.
""",
    responses={
        400: {"description": "Validation error"},
        404: {"description": "Internship not found"},
    },
)
async def update_internship(
    internship_id: UUID,
    data: InternshipUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> InternshipResponse:
    try:
        return await service.update_internship(db, internship_id, data, admin.id)
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error updating internship: {e}")
        raise_unexpected_error("ESTAGIO_UPDATE_ERROR", e)


@router.patch(
    "/internships/{internship_id}/status",
    response_model=InternshipResponse,
    summary="Change Internship Status",
    description="""
Set the status of an internship.

- `COMPLETED`: sets `completed_at` (supplied or now) and clears failure fields
- `FAILED`: requires `failure_reason`, sets `failed_at` and clears `completed_at`
- `CANCELLED`: sets `failed_at` and the optional `failure_reason`

Any status may be set from any other; moves outside the normal lifecycle are
logged as overrides.
""",
    responses={
        400: {"description": "Validation error"},
        404: {"description": "Internship not found"},
    },
)
async def update_internship_status(
    internship_id: UUID,
    data: InternshipStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> InternshipResponse:
    try:
        return await service.update_internship_status(db, internship_id, data, admin.id)
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error changing internship status: {e}")
        raise_unexpected_error("ESTAGIO_STATUS_ERROR", e)


@router.post(
    "/internships/{internship_id}/resend-confirmation",
    response_model=InternshipResponse,
    summary="Resend Confirmation",
    description="""
Send the convocation email again with the original confirmation token,
to the student or to `alternate_recipient`.

**Rate limit:** 5 per hour per internship
""",
    responses={
        404: {"description": "Internship not found"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def resend_confirmation(
    internship_id: UUID,
    data: ResendConfirmationRequest | None = Body(None),
    db: AsyncSession = Depends(get_db),
    notifier: InternshipNotifier = Depends(get_internship_notifier),
    admin: CurrentUser = Depends(get_current_admin_user),
) -> InternshipResponse:
    await _check_resend_rate_limit(internship_id, admin)

    try:
        return await service.resend_confirmation(
            db,
            notifier,
            internship_id,
            admin.id,
            alternate_recipient=data.alternate_recipient if data else None,
        )
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error resending confirmation: {e}")
        raise_unexpected_error("ESTAGIO_REENVIAR_ERROR", e)

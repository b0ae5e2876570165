"""
Internships Service Layer

Business logic for supervised internships ("estágios").
Orchestrates reference lookups, repository writes, the state machine and
the notification dispatcher.

This module implements:
1. Creation:
   - Validate the cohort belongs to the course and the enrollment to the cohort
   - Create internship + locations + confirmation token in one transaction
   - Send the convocation email after commit (best effort)

2. Confirmation protocol:
   - Confirm by token, once; later calls return the stored state
   - Stamp protocol code and device audit fields
   - Advance PENDING to IN_PROGRESS
   - Resend the convocation with the original token

3. Administration:
   - Paginated listing per course, listing per enrollment
   - Partial updates (locations replaced as a set)
   - Explicit status changes with their field side effects

Security considerations:
- Tokens and protocol codes come from `secrets`
- Unknown and consumed tokens are indistinguishable to callers
- Tokens are never logged and only returned on creation
- Students can only read internships of their own enrollments
"""

import logging
import math
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.courses.repository import CourseRepository
from app.modules.internships import repository
from app.modules.internships.confirmation import (
    generate_confirmation_token,
    generate_protocol_code,
    merge_audit_fields,
)
from app.modules.internships.mappers import to_internship_response
from app.modules.internships.models import Internship, InternshipStatus
from app.modules.internships.notifications import InternshipNotifier
from app.modules.internships.schemas import (
    ConfirmationAudit,
    InternshipCreate,
    InternshipListResponse,
    InternshipResponse,
    InternshipStatusUpdate,
    InternshipUpdate,
    Pagination,
)
from app.modules.internships.transitions import status_after_confirmation, status_update_fields

logger = logging.getLogger(__name__)

CONVOCATION_DETAIL = "Convite de estágio enviado"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InternshipServiceError(Exception):
    """Base exception for internship service errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 400,
        issues: dict[str, list[str]] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.issues = issues
        super().__init__(message)


class InternshipValidationError(InternshipServiceError):
    """Raised when input is inconsistent with stored data."""

    def __init__(self, message: str, issues: dict[str, list[str]] | None = None):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            issues=issues,
        )


class CourseNotFoundError(InternshipServiceError):
    def __init__(self, course_id: UUID | None = None):
        super().__init__(
            message=f"Course {course_id} not found" if course_id else "Course not found",
            error_code="CURSO_NOT_FOUND",
            status_code=404,
        )


class CohortNotFoundError(InternshipServiceError):
    """Raised when the cohort does not exist or is not part of the course."""

    def __init__(self, cohort_id: UUID | None = None):
        super().__init__(
            message=(
                f"Cohort {cohort_id} not found for this course"
                if cohort_id
                else "Cohort not found"
            ),
            error_code="TURMA_NOT_FOUND",
            status_code=404,
        )


class EnrollmentNotFoundError(InternshipServiceError):
    """Raised when the enrollment does not exist or is not part of the cohort."""

    def __init__(self, enrollment_id: UUID | None = None):
        super().__init__(
            message=(
                f"Enrollment {enrollment_id} not found for this cohort"
                if enrollment_id
                else "Enrollment not found"
            ),
            error_code="INSCRICAO_NOT_FOUND",
            status_code=404,
        )


class InternshipNotFoundError(InternshipServiceError):
    def __init__(self, internship_id: UUID | None = None):
        super().__init__(
            message=(
                f"Internship {internship_id} not found" if internship_id else "Internship not found"
            ),
            error_code="ESTAGIO_NOT_FOUND",
            status_code=404,
        )


class InternshipAccessDeniedError(InternshipServiceError):
    def __init__(self, message: str = "You do not have access to this resource."):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


class InvalidConfirmationError(InternshipServiceError):
    """Raised for unknown confirmation tokens."""

    def __init__(self):
        super().__init__(
            message="Invalid or expired confirmation link.",
            error_code="CONFIRMACAO_INVALIDA",
            status_code=404,
        )


async def _get_or_404(db: AsyncSession, internship_id: UUID) -> Internship:
    internship = await repository.get_by_id(db, internship_id)
    if internship is None:
        raise InternshipNotFoundError(internship_id)
    return internship


# ============================================
# Queries
# ============================================


async def list_internships(
    db: AsyncSession,
    course_id: UUID,
    *,
    cohort_id: UUID | None = None,
    status: InternshipStatus | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> InternshipListResponse:
    """
    Paginated list of a course's internships.

    Raises:
        CourseNotFoundError: If the course does not exist
    """
    course = await CourseRepository.get_course(db, course_id)
    if course is None:
        raise CourseNotFoundError(course_id)

    internships, total = await repository.list_for_course(
        db,
        course_id,
        cohort_id=cohort_id,
        status=status,
        search=search,
        page=page,
        page_size=page_size,
    )

    return InternshipListResponse(
        data=[to_internship_response(internship) for internship in internships],
        pagination=Pagination(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if total else 0,
        ),
    )


async def list_by_enrollment(
    db: AsyncSession,
    course_id: UUID,
    cohort_id: UUID,
    enrollment_id: UUID,
) -> list[InternshipResponse]:
    """
    Internships of one enrollment, for administrators.

    Raises:
        CohortNotFoundError: If the cohort is not part of the course
        EnrollmentNotFoundError: If the enrollment is not part of the cohort
    """
    cohort = await CourseRepository.get_cohort_for_course(db, course_id, cohort_id)
    if cohort is None:
        raise CohortNotFoundError(cohort_id)

    enrollment = await CourseRepository.get_enrollment_for_cohort(db, cohort_id, enrollment_id)
    if enrollment is None:
        raise EnrollmentNotFoundError(enrollment_id)

    internships = await repository.list_by_enrollment(db, enrollment_id)
    return [to_internship_response(internship) for internship in internships]


async def list_for_student(
    db: AsyncSession,
    enrollment_id: UUID,
    student_id: UUID,
) -> list[InternshipResponse]:
    """
    Internships of an enrollment owned by the calling student.

    Raises:
        InternshipAccessDeniedError: If the enrollment is not the caller's
    """
    enrollment = await CourseRepository.get_enrollment(db, enrollment_id)
    if enrollment is None or enrollment.student_id != student_id:
        logger.warning(f"User {student_id} denied access to enrollment {enrollment_id}")
        raise InternshipAccessDeniedError("This enrollment does not belong to you.")

    internships = await repository.list_by_enrollment(db, enrollment_id)
    return [to_internship_response(internship) for internship in internships]


async def get_internship(
    db: AsyncSession,
    internship_id: UUID,
    *,
    requester_id: UUID | None = None,
    allow_admin: bool = False,
) -> InternshipResponse:
    """
    Get one internship.

    Without `allow_admin`, only the internship's student may read it.

    Raises:
        InternshipNotFoundError: If the internship does not exist
        InternshipAccessDeniedError: If the requester is not the student
    """
    internship = await _get_or_404(db, internship_id)

    if not allow_admin and internship.student_id != requester_id:
        logger.warning(f"User {requester_id} denied access to internship {internship_id}")
        raise InternshipAccessDeniedError()

    return to_internship_response(internship)


# ============================================
# Commands
# ============================================


async def create_internship(
    db: AsyncSession,
    notifier: InternshipNotifier,
    course_id: UUID,
    cohort_id: UUID,
    enrollment_id: UUID,
    data: InternshipCreate,
    actor_id: UUID | None,
) -> InternshipResponse:
    """
    Create an internship and send the convocation.

    The internship, its locations and its confirmation token are committed
    together. The convocation email is sent afterwards; a delivery failure
    is logged and does not undo the creation.

    Returns:
        The projection including the confirmation token

    Raises:
        CohortNotFoundError: If the cohort is not part of the course
        EnrollmentNotFoundError: If the enrollment is not part of the cohort
    """
    cohort = await CourseRepository.get_cohort_for_course(db, course_id, cohort_id)
    if cohort is None:
        raise CohortNotFoundError(cohort_id)

    enrollment = await CourseRepository.get_enrollment_for_cohort(db, cohort_id, enrollment_id)
    if enrollment is None:
        raise EnrollmentNotFoundError(enrollment_id)

    mandatory = data.mandatory if data.mandatory is not None else cohort.course.mandatory_internship

    internship = await repository.create(
        db,
        course_id=course_id,
        cohort_id=cohort_id,
        enrollment_id=enrollment_id,
        student_id=enrollment.student_id,
        data=data,
        mandatory=mandatory,
        token=generate_confirmation_token(),
        created_by_id=actor_id,
    )

    internship_id = internship.id
    logger.info(f"Internship {internship_id} created for enrollment {enrollment_id} by {actor_id}")

    await notifier.dispatch_convocation(db, internship, detail=CONVOCATION_DETAIL)

    internship = await repository.get_by_id(db, internship_id)
    return to_internship_response(internship, include_token=True)


async def update_internship(
    db: AsyncSession,
    internship_id: UUID,
    data: InternshipUpdate,
    actor_id: UUID | None,
) -> InternshipResponse:
    """
    Partially update an internship.

    A single date in the payload is checked against the stored other date.

    Raises:
        InternshipNotFoundError: If the internship does not exist
        InternshipValidationError: If the resulting end date precedes the start
    """
    internship = await _get_or_404(db, internship_id)

    start_date = data.start_date or internship.start_date
    end_date = data.end_date or internship.end_date
    if end_date < start_date:
        raise InternshipValidationError(
            "End date must be on or after start date.",
            issues={"end_date": ["end_date must be on or after start_date"]},
        )

    internship = await repository.update(db, internship, data, actor_id)
    logger.info(f"Internship {internship_id} updated by {actor_id}")

    return to_internship_response(internship)


async def update_internship_status(
    db: AsyncSession,
    internship_id: UUID,
    data: InternshipStatusUpdate,
    actor_id: UUID | None,
) -> InternshipResponse:
    """
    Change an internship's status.

    Any target status is accepted; see transitions.status_update_fields for
    the side effects applied.

    Raises:
        InternshipNotFoundError: If the internship does not exist
        InternshipValidationError: If FAILED is requested without a reason
    """
    internship = await _get_or_404(db, internship_id)
    previous = internship.status

    try:
        fields = status_update_fields(
            previous,
            data.status,
            _utcnow(),
            completed_at=data.completed_at,
            failure_reason=data.failure_reason,
        )
    except ValueError as e:
        raise InternshipValidationError(
            str(e), issues={"failure_reason": [str(e)]}
        ) from e

    # An explicit null clears the notes; omitting the field keeps them
    if "notes" in data.model_fields_set:
        fields["notes"] = data.notes

    internship = await repository.update_status(db, internship, fields, actor_id)
    logger.info(
        f"Internship {internship_id} status {previous.value} -> {data.status.value} by {actor_id}"
    )

    return to_internship_response(internship)


async def resend_confirmation(
    db: AsyncSession,
    notifier: InternshipNotifier,
    internship_id: UUID,
    actor_id: UUID | None,
    alternate_recipient: str | None = None,
) -> InternshipResponse:
    """
    Send the convocation again with the original token.

    Goes to the alternate recipient if given, else to the student.

    Raises:
        InternshipNotFoundError: If the internship or its confirmation is missing
    """
    internship = await repository.get_by_id(db, internship_id)
    if internship is None or internship.confirmation is None:
        raise InternshipNotFoundError(internship_id)

    await notifier.dispatch_convocation(
        db,
        internship,
        detail=f"Reenvio solicitado por {actor_id}",
        recipient=alternate_recipient,
    )

    internship = await repository.get_by_id(db, internship_id)
    return to_internship_response(internship)


async def confirm_internship(
    db: AsyncSession,
    token: str,
    audit: ConfirmationAudit,
) -> InternshipResponse:
    """
    Confirm receipt of a convocation.

    Idempotent: a token that was already confirmed returns the stored state
    without touching the protocol code, timestamps or audit fields.

    Raises:
        InvalidConfirmationError: If the token is unknown
    """
    confirmation = await repository.get_confirmation_by_token(db, token, for_update=True)
    if confirmation is None:
        raise InvalidConfirmationError()

    internship = await repository.get_by_id(db, confirmation.internship_id)

    if confirmation.confirmed_at is not None:
        response = to_internship_response(internship)
        # Release the row lock
        await db.rollback()
        return response

    now = _utcnow()
    supplied: dict[str, Any] = audit.model_dump()

    await repository.apply_confirmation(
        db,
        confirmation,
        internship,
        confirmed_at=now,
        protocol=confirmation.protocol or generate_protocol_code(),
        audit=merge_audit_fields(confirmation, supplied),
        status=status_after_confirmation(internship.status),
    )

    logger.info(f"Internship {internship.id} confirmed")

    internship = await repository.get_by_id(db, internship.id)
    return to_internship_response(internship)

"""
Mapping from loaded ORM graphs to response projections.

The repository always returns internships with every relationship used here
already loaded.
"""

from app.modules.internships.helpers import ensure_aware, weekday_label
from app.modules.internships.models import (
    Internship,
    InternshipConfirmation,
    InternshipLocation,
    Weekday,
)
from app.modules.internships.schemas import (
    CohortSummary,
    ConfirmationAuditResponse,
    ConfirmationResponse,
    CourseSummary,
    InternshipResponse,
    LocationResponse,
    NotificationResponse,
    UserSummary,
    WeekdayResponse,
)
from app.modules.users.models import User

# Only the most recent notifications are returned with an internship
NOTIFICATIONS_IN_PROJECTION = 20


def _user_summary(user: User | None) -> UserSummary | None:
    if user is None:
        return None
    return UserSummary(id=user.id, name=user.full_name, email=user.email)


def _location_to_response(location: InternshipLocation) -> LocationResponse:
    return LocationResponse(
        id=location.id,
        title=location.title,
        company_name=location.company_name,
        company_document=location.company_document,
        contact_name=location.contact_name,
        contact_email=location.contact_email,
        contact_phone=location.contact_phone,
        start_date=location.start_date,
        end_date=location.end_date,
        start_time=location.start_time,
        end_time=location.end_time,
        weekdays=[
            WeekdayResponse(code=Weekday(day), label=weekday_label(day))
            for day in location.weekdays or []
        ],
        weekly_hours=location.weekly_hours,
        zip_code=location.zip_code,
        street=location.street,
        number=location.number,
        district=location.district,
        city=location.city,
        state=location.state,
        complement=location.complement,
        reference_point=location.reference_point,
        notes=location.notes,
    )


def _confirmation_to_response(
    confirmation: InternshipConfirmation | None, include_token: bool
) -> ConfirmationResponse | None:
    if confirmation is None:
        return None

    audit = None
    if confirmation.confirmed_at is not None:
        audit = ConfirmationAuditResponse.model_validate(confirmation)

    return ConfirmationResponse(
        confirmed_at=confirmation.confirmed_at,
        protocol=confirmation.protocol,
        token=confirmation.token if include_token else None,
        audit=audit,
    )


def to_internship_response(
    internship: Internship, include_token: bool = False
) -> InternshipResponse:
    """
    Build the full projection of an internship.

    Args:
        internship: Internship with relationships loaded
        include_token: Expose the confirmation token (creation response only)
    """
    course = internship.course
    cohort = internship.cohort

    notifications = sorted(
        internship.notifications or [],
        key=lambda n: ensure_aware(n.sent_at),
        reverse=True,
    )[:NOTIFICATIONS_IN_PROJECTION]

    return InternshipResponse(
        id=internship.id,
        course=(
            CourseSummary(
                id=course.id,
                name=course.name,
                code=course.code,
                mandatory_internship=course.mandatory_internship,
            )
            if course is not None
            else None
        ),
        cohort=(
            CohortSummary(id=cohort.id, name=cohort.name, code=cohort.code)
            if cohort is not None
            else None
        ),
        enrollment_id=internship.enrollment_id,
        student=_user_summary(internship.student),
        name=internship.name,
        description=internship.description,
        mandatory=internship.mandatory,
        status=internship.status,
        start_date=internship.start_date,
        end_date=internship.end_date,
        total_hours=internship.total_hours,
        primary_company=internship.primary_company,
        notes=internship.notes,
        confirmed_at=internship.confirmed_at,
        completed_at=internship.completed_at,
        failed_at=internship.failed_at,
        failure_reason=internship.failure_reason,
        last_reminder_sent_at=internship.last_reminder_sent_at,
        created_by=_user_summary(internship.created_by),
        updated_by=_user_summary(internship.updated_by),
        created_at=internship.created_at,
        updated_at=internship.updated_at,
        locations=[_location_to_response(location) for location in internship.locations],
        confirmation=_confirmation_to_response(internship.confirmation, include_token),
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
    )

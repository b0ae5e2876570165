"""
Internship Schemas

Pydantic schemas for request validation and response serialization.
Naive datetimes in requests are interpreted as UTC.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)

from app.modules.internships.helpers import ensure_aware
from app.modules.internships.models import (
    InternshipStatus,
    NotificationChannel,
    NotificationType,
    Weekday,
)

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
ZIP_CODE_PATTERN = r"^\d{5}-?\d{3}$"


# Naive input is read as UTC
UtcDatetime = Annotated[datetime, AfterValidator(ensure_aware)]


def _end_not_before_start(end_date: datetime | None, info: ValidationInfo) -> datetime | None:
    # Reported on end_date so the error lands under that field
    start_date = info.data.get("start_date")
    if start_date and end_date and end_date < start_date:
        raise ValueError("end_date must be on or after start_date")
    return end_date


# ============================================
# Requests
# ============================================


class LocationInput(BaseModel):
    """One location of an internship."""

    title: str | None = Field(None, max_length=120)
    company_name: str = Field(..., min_length=2, max_length=255)
    company_document: str | None = Field(None, max_length=20)

    contact_name: str | None = Field(None, max_length=255)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=30)

    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    start_time: str | None = Field(None, pattern=TIME_PATTERN)
    end_time: str | None = Field(None, pattern=TIME_PATTERN)
    weekdays: list[Weekday] = Field(..., min_length=1)
    weekly_hours: int | None = Field(None, gt=0)

    zip_code: str | None = Field(None, pattern=ZIP_CODE_PATTERN)
    street: str | None = Field(None, max_length=255)
    number: str | None = Field(None, max_length=20)
    district: str | None = Field(None, max_length=120)
    city: str | None = Field(None, max_length=120)
    state: str | None = Field(None, max_length=2)
    complement: str | None = Field(None, max_length=120)
    reference_point: str | None = Field(None, max_length=255)
    notes: str | None = Field(None, max_length=500)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, value, info: ValidationInfo):
        return _end_not_before_start(value, info)


class InternshipCreate(BaseModel):
    """Request body for creating an internship."""

    name: str = Field(..., min_length=3, max_length=255)
    description: str | None = Field(None, max_length=2000)
    start_date: UtcDatetime
    end_date: UtcDatetime
    total_hours: int | None = Field(None, gt=0)
    primary_company: str | None = Field(None, max_length=255)
    # Defaults to the course's mandatory_internship flag when omitted
    mandatory: bool | None = None
    notes: str | None = Field(None, max_length=2000)
    locations: list[LocationInput] = Field(..., min_length=1)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, value, info: ValidationInfo):
        return _end_not_before_start(value, info)


class InternshipUpdate(BaseModel):
    """
    Partial update. Supplying `locations` replaces the whole set.
    """

    name: str | None = Field(None, min_length=3, max_length=255)
    description: str | None = Field(None, max_length=2000)
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    total_hours: int | None = Field(None, gt=0)
    primary_company: str | None = Field(None, max_length=255)
    mandatory: bool | None = None
    notes: str | None = Field(None, max_length=2000)
    locations: list[LocationInput] | None = Field(None, min_length=1)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, value, info: ValidationInfo):
        return _end_not_before_start(value, info)


class InternshipStatusUpdate(BaseModel):
    """Request body for an explicit status change."""

    status: InternshipStatus
    completed_at: UtcDatetime | None = None
    failure_reason: str | None = Field(None, max_length=2000, validate_default=True)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("failure_reason")
    @classmethod
    def validate_reason(cls, value: str | None, info: ValidationInfo) -> str | None:
        if info.data.get("status") == InternshipStatus.FAILED and not (value and value.strip()):
            raise ValueError("failure_reason is required when status is FAILED")
        return value


class ConfirmationAudit(BaseModel):
    """Device metadata sent by the confirmation page. All fields optional."""

    ip: str | None = Field(None, max_length=45)
    user_agent: str | None = Field(None, max_length=1000)
    device_type: str | None = Field(None, max_length=50)
    device_description: str | None = Field(None, max_length=120)
    device_id: str | None = Field(None, max_length=120)
    operating_system: str | None = Field(None, max_length=120)
    browser: str | None = Field(None, max_length=120)
    location: str | None = Field(None, max_length=255)


class ResendConfirmationRequest(BaseModel):
    alternate_recipient: EmailStr | None = Field(None, max_length=255)


# ============================================
# Responses
# ============================================


class UserSummary(BaseModel):
    id: UUID
    name: str
    email: str


class CourseSummary(BaseModel):
    id: UUID
    name: str
    code: str
    mandatory_internship: bool


class CohortSummary(BaseModel):
    id: UUID
    name: str
    code: str


class WeekdayResponse(BaseModel):
    code: Weekday
    label: str


class LocationResponse(BaseModel):
    id: UUID
    title: str | None = None
    company_name: str
    company_document: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    start_time: str | None = None
    end_time: str | None = None
    weekdays: list[WeekdayResponse]
    weekly_hours: int | None = None
    zip_code: str | None = None
    street: str | None = None
    number: str | None = None
    district: str | None = None
    city: str | None = None
    state: str | None = None
    complement: str | None = None
    reference_point: str | None = None
    notes: str | None = None


class ConfirmationAuditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ip: str | None = None
    user_agent: str | None = None
    device_type: str | None = None
    device_description: str | None = None
    device_id: str | None = None
    operating_system: str | None = None
    browser: str | None = None
    location: str | None = None


class ConfirmationResponse(BaseModel):
    confirmed_at: datetime | None = None
    protocol: str | None = None
    # Only present on the creation response
    token: str | None = None
    audit: ConfirmationAuditResponse | None = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: NotificationType
    channel: NotificationChannel
    recipient: str
    sent_at: datetime
    detail: str | None = None


class InternshipResponse(BaseModel):
    """Full projection of an internship."""

    id: UUID
    course: CourseSummary | None = None
    cohort: CohortSummary | None = None
    enrollment_id: UUID
    student: UserSummary | None = None

    name: str
    description: str | None = None
    mandatory: bool
    status: InternshipStatus
    start_date: datetime
    end_date: datetime
    total_hours: int | None = None
    primary_company: str | None = None
    notes: str | None = None

    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    failure_reason: str | None = None
    last_reminder_sent_at: datetime | None = None

    created_by: UserSummary | None = None
    updated_by: UserSummary | None = None
    created_at: datetime
    updated_at: datetime

    locations: list[LocationResponse]
    confirmation: ConfirmationResponse | None = None
    notifications: list[NotificationResponse] = []


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int


class InternshipListResponse(BaseModel):
    """Paginated list for a course."""

    data: list[InternshipResponse]
    pagination: Pagination


class InternshipCollectionResponse(BaseModel):
    """Unpaginated list (per enrollment)."""

    data: list[InternshipResponse]

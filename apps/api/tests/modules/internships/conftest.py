"""
Fixtures for internships tests.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from app.core.email import EmailSendResult
from app.modules.courses.models import Cohort, Course, Enrollment
from app.modules.internships.models import (
    Internship,
    InternshipConfirmation,
    InternshipLocation,
    InternshipNotification,
    InternshipStatus,
    NotificationChannel,
    NotificationType,
    Weekday,
)
from app.modules.internships.notifications import InternshipNotifier
from app.modules.internships.schemas import InternshipCreate, LocationInput
from app.modules.users.models import User, UserRole

SAMPLE_TOKEN = "ab" * 32


def make_user(first_name: str, last_name: str, email: str, role=UserRole.STUDENT):
    user = MagicMock(spec=User)
    user.id = uuid4()
    user.first_name = first_name
    user.last_name = last_name
    user.full_name = f"{first_name} {last_name}"
    user.email = email
    user.role = role
    return user


def make_location(**overrides):
    location = MagicMock(spec=InternshipLocation)
    values = {
        "id": uuid4(),
        "title": "Unidade Centro",
        "company_name": "Acme Corp",
        "company_document": None,
        "contact_name": "Maria Souza",
        "contact_email": "maria@acme.com",
        "contact_phone": None,
        "start_date": None,
        "end_date": None,
        "start_time": "08:00",
        "end_time": "12:00",
        "weekdays": ["MONDAY", "WEDNESDAY"],
        "weekly_hours": 8,
        "zip_code": "50000-000",
        "street": "Rua A",
        "number": "10",
        "district": "Centro",
        "city": "Recife",
        "state": "PE",
        "complement": None,
        "reference_point": "Ao lado da praça",
        "notes": None,
    }
    values.update(overrides)
    for field, value in values.items():
        setattr(location, field, value)
    return location


def make_confirmation(internship_id, **overrides):
    confirmation = MagicMock(spec=InternshipConfirmation)
    values = {
        "id": uuid4(),
        "internship_id": internship_id,
        "token": SAMPLE_TOKEN,
        "confirmed_at": None,
        "protocol": None,
        "ip": None,
        "user_agent": None,
        "device_type": None,
        "device_description": None,
        "device_id": None,
        "operating_system": None,
        "browser": None,
        "location": None,
    }
    values.update(overrides)
    for field, value in values.items():
        setattr(confirmation, field, value)
    return confirmation


def make_notification(internship_id, sent_at, type=NotificationType.CONVOCATION_PENDING):
    entry = MagicMock(spec=InternshipNotification)
    entry.id = uuid4()
    entry.internship_id = internship_id
    entry.type = type
    entry.channel = NotificationChannel.EMAIL
    entry.recipient = "aluno@example.com"
    entry.sent_at = sent_at
    entry.detail = "Convite de estágio enviado"
    return entry


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def mock_email_provider():
    """Email provider double that always succeeds."""
    provider = MagicMock()
    provider.send_email = AsyncMock(return_value=EmailSendResult(success=True, id="email-1"))
    return provider


@pytest.fixture
def notifier(mock_email_provider):
    return InternshipNotifier(
        email_provider=mock_email_provider,
        frontend_url="https://portal.example.com/",
        confirm_path="/estagios/confirmacao",
    )


@pytest.fixture
def sample_course():
    course = MagicMock(spec=Course)
    course.id = uuid4()
    course.name = "Enfermagem"
    course.code = "ENF"
    course.mandatory_internship = True
    return course


@pytest.fixture
def sample_cohort(sample_course):
    cohort = MagicMock(spec=Cohort)
    cohort.id = uuid4()
    cohort.course_id = sample_course.id
    cohort.course = sample_course
    cohort.name = "Turma 2025.1"
    cohort.code = "ENF-2025-1"
    return cohort


@pytest.fixture
def sample_student():
    return make_user("Ana", "Lima", "aluno@example.com")


@pytest.fixture
def sample_coordinator():
    return make_user("Carlos", "Pereira", "coord@example.com", role=UserRole.COORDINATOR)


@pytest.fixture
def sample_enrollment(sample_cohort, sample_student):
    enrollment = MagicMock(spec=Enrollment)
    enrollment.id = uuid4()
    enrollment.cohort_id = sample_cohort.id
    enrollment.student_id = sample_student.id
    enrollment.student = sample_student
    return enrollment


@pytest.fixture
def sample_internship(
    sample_course, sample_cohort, sample_enrollment, sample_student, sample_coordinator
):
    """A freshly created PENDING internship with its full graph loaded."""
    internship = MagicMock(spec=Internship)
    internship.id = uuid4()
    internship.course_id = sample_course.id
    internship.course = sample_course
    internship.cohort_id = sample_cohort.id
    internship.cohort = sample_cohort
    internship.enrollment_id = sample_enrollment.id
    internship.student_id = sample_student.id
    internship.student = sample_student
    internship.name = "Estágio Hospitalar"
    internship.description = None
    internship.mandatory = True
    internship.status = InternshipStatus.PENDING
    internship.start_date = datetime(2025, 2, 1, tzinfo=UTC)
    internship.end_date = datetime(2025, 4, 30, 23, 59, tzinfo=UTC)
    internship.total_hours = 120
    internship.primary_company = "Acme Corp"
    internship.notes = None
    internship.confirmed_at = None
    internship.completed_at = None
    internship.failed_at = None
    internship.failure_reason = None
    internship.last_reminder_sent_at = None
    internship.created_by_id = sample_coordinator.id
    internship.created_by = sample_coordinator
    internship.updated_by_id = sample_coordinator.id
    internship.updated_by = sample_coordinator
    internship.created_at = datetime(2025, 1, 20, 12, 0, tzinfo=UTC)
    internship.updated_at = datetime(2025, 1, 20, 12, 0, tzinfo=UTC)
    internship.locations = [make_location()]
    internship.confirmation = make_confirmation(internship.id)
    internship.notifications = []
    return internship


@pytest.fixture
def sample_create_payload():
    return InternshipCreate(
        name="Estágio Hospitalar",
        start_date=datetime(2025, 2, 1, tzinfo=UTC),
        end_date=datetime(2025, 4, 30, 23, 59, tzinfo=UTC),
        total_hours=120,
        primary_company="Acme Corp",
        locations=[
            LocationInput(
                company_name="Acme Corp",
                weekdays=[Weekday.MONDAY, Weekday.WEDNESDAY],
                start_time="08:00",
                end_time="12:00",
            )
        ],
    )

"""
Internships Repository

Database operations for internships, their locations, confirmation records
and notification log.

Design Principles:
- Multi-entity writes commit once (internship + locations + confirmation)
- Reads return the full graph the mappers and emails need
- Only database operations, no business rules
- Timezone-aware datetimes (UTC)
"""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.internships.models import (
    Internship,
    InternshipConfirmation,
    InternshipLocation,
    InternshipNotification,
    InternshipStatus,
    NotificationChannel,
    NotificationType,
)
from app.modules.internships.schemas import InternshipCreate, InternshipUpdate, LocationInput
from app.modules.internships.transitions import ACTIVE_STATUSES
from app.modules.users.models import User

# Columns that cannot be cleared by a partial update
_REQUIRED_FIELDS = {"name", "start_date", "end_date", "mandatory"}


def _with_graph(query: Select) -> Select:
    """Attach every relationship used by the projection and the emails."""
    return query.options(
        selectinload(Internship.course),
        selectinload(Internship.cohort),
        selectinload(Internship.student),
        selectinload(Internship.created_by),
        selectinload(Internship.updated_by),
        selectinload(Internship.locations),
        selectinload(Internship.confirmation),
        selectinload(Internship.notifications),
    )


def _build_location(data: LocationInput) -> InternshipLocation:
    values = data.model_dump(exclude={"weekdays"})
    return InternshipLocation(**values, weekdays=[day.value for day in data.weekdays])


async def create(
    db: AsyncSession,
    *,
    course_id: UUID,
    cohort_id: UUID,
    enrollment_id: UUID,
    student_id: UUID,
    data: InternshipCreate,
    mandatory: bool,
    token: str,
    created_by_id: UUID | None,
) -> Internship:
    """
    Create an internship with its locations and confirmation record.

    All rows are written in a single commit.
    """
    internship = Internship(
        course_id=course_id,
        cohort_id=cohort_id,
        enrollment_id=enrollment_id,
        student_id=student_id,
        name=data.name,
        description=data.description,
        mandatory=mandatory,
        status=InternshipStatus.PENDING,
        start_date=data.start_date,
        end_date=data.end_date,
        total_hours=data.total_hours,
        primary_company=data.primary_company,
        notes=data.notes,
        created_by_id=created_by_id,
        updated_by_id=created_by_id,
        locations=[_build_location(location) for location in data.locations],
        confirmation=InternshipConfirmation(token=token),
    )

    db.add(internship)
    await db.commit()

    return await get_by_id(db, internship.id)


async def get_by_id(
    db: AsyncSession, id: UUID, *, for_update: bool = False
) -> Internship | None:
    """
    Get an internship with its full graph, refreshing any cached state.

    With `for_update` the internship row stays locked until the transaction
    ends. A row already locked by another transaction is skipped and None is
    returned.
    """
    query = _with_graph(select(Internship)).where(Internship.id == id)
    if for_update:
        query = query.with_for_update(of=Internship, skip_locked=True)
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def list_for_course(
    db: AsyncSession,
    course_id: UUID,
    *,
    cohort_id: UUID | None = None,
    status: InternshipStatus | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Internship], int]:
    """
    List a course's internships with filters and pagination.

    `search` matches (case-insensitive) the internship name, the primary
    company, and the student's name or email.

    Returns:
        Tuple of (internships on this page, total matching)
    """
    query = select(Internship).where(Internship.course_id == course_id)

    if cohort_id:
        query = query.where(Internship.cohort_id == cohort_id)

    if status:
        query = query.where(Internship.status == status)

    if search:
        pattern = f"%{search}%"
        query = query.join(User, User.id == Internship.student_id).where(
            or_(
                Internship.name.ilike(pattern),
                Internship.primary_company.ilike(pattern),
                func.concat(User.first_name, " ", User.last_name).ilike(pattern),
                User.email.ilike(pattern),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        _with_graph(query)
        .order_by(Internship.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(query)

    return list(result.scalars().all()), total


async def list_by_enrollment(db: AsyncSession, enrollment_id: UUID) -> list[Internship]:
    """All internships of an enrollment, newest first."""
    result = await db.execute(
        _with_graph(select(Internship))
        .where(Internship.enrollment_id == enrollment_id)
        .order_by(Internship.created_at.desc())
    )
    return list(result.scalars().all())


async def update(
    db: AsyncSession,
    internship: Internship,
    data: InternshipUpdate,
    actor_id: UUID | None,
) -> Internship:
    """
    Apply a partial update.

    When `locations` is supplied the existing set is deleted and recreated
    in the same commit.
    """
    changes = data.model_dump(exclude_unset=True, exclude={"locations"})
    for field, value in changes.items():
        if value is None and field in _REQUIRED_FIELDS:
            continue
        setattr(internship, field, value)

    if data.locations is not None:
        # delete-orphan cascade removes the previous rows on flush
        internship.locations = [_build_location(location) for location in data.locations]

    internship.updated_by_id = actor_id
    await db.commit()

    return await get_by_id(db, internship.id)


async def update_status(
    db: AsyncSession,
    internship: Internship,
    fields: dict[str, Any],
    actor_id: UUID | None,
) -> Internship:
    """Write the fields computed for a status change."""
    for field, value in fields.items():
        setattr(internship, field, value)

    internship.updated_by_id = actor_id
    await db.commit()

    return await get_by_id(db, internship.id)


async def get_confirmation_by_token(
    db: AsyncSession, token: str, *, for_update: bool = False
) -> InternshipConfirmation | None:
    """
    Look up a confirmation record by token.

    With `for_update` the row stays locked until the transaction ends, which
    serializes concurrent confirmations of the same token.
    """
    query = select(InternshipConfirmation).where(InternshipConfirmation.token == token)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def apply_confirmation(
    db: AsyncSession,
    confirmation: InternshipConfirmation,
    internship: Internship,
    *,
    confirmed_at: datetime,
    protocol: str,
    audit: dict[str, Any],
    status: InternshipStatus,
) -> None:
    """Stamp the confirmation and its internship in one commit."""
    confirmation.confirmed_at = confirmed_at
    confirmation.protocol = protocol
    for field, value in audit.items():
        setattr(confirmation, field, value)

    internship.confirmed_at = confirmed_at
    internship.status = status

    await db.commit()


async def add_notification(
    db: AsyncSession,
    internship_id: UUID,
    type: NotificationType,
    *,
    recipient: str,
    detail: str | None = None,
) -> InternshipNotification:
    """Append an entry to the notification log and commit."""
    entry = InternshipNotification(
        internship_id=internship_id,
        type=type,
        channel=NotificationChannel.EMAIL,
        recipient=recipient,
        detail=detail,
    )
    db.add(entry)
    await db.commit()
    return entry


async def find_internships_ending_soon(
    db: AsyncSession,
    now: datetime,
    horizon_hours: int,
    dedup_hours: int,
) -> list[Internship]:
    """
    Internships the expiration watcher should remind about.

    Selects active internships whose end date falls in [now, now + horizon]
    and that were not reminded after now - dedup.
    """
    horizon_end = now + timedelta(hours=horizon_hours)
    dedup_cutoff = now - timedelta(hours=dedup_hours)

    result = await db.execute(
        _with_graph(select(Internship))
        .where(
            Internship.status.in_(ACTIVE_STATUSES),
            Internship.end_date >= now,
            Internship.end_date <= horizon_end,
            or_(
                Internship.last_reminder_sent_at.is_(None),
                Internship.last_reminder_sent_at < dedup_cutoff,
            ),
        )
        .order_by(Internship.end_date.asc())
    )
    return list(result.scalars().all())


async def record_reminder(
    db: AsyncSession,
    internship_id: UUID,
    now: datetime,
    *,
    recipient: str,
    detail: str,
) -> None:
    """Stamp last_reminder_sent_at and log the reminder in one commit."""
    await db.execute(
        sa_update(Internship)
        .where(Internship.id == internship_id)
        .values(last_reminder_sent_at=now)
    )
    db.add(
        InternshipNotification(
            internship_id=internship_id,
            type=NotificationType.END_IMMINENT,
            channel=NotificationChannel.EMAIL,
            recipient=recipient,
            sent_at=now,
            detail=detail,
        )
    )
    await db.commit()

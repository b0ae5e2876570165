"""
Internship Shared Helpers

Formatting and selection helpers used by the service, the notification
dispatcher and the expiration watcher.
"""

import math
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from app.modules.internships.models import Internship, InternshipLocation, Weekday
from app.modules.internships.transitions import ACTIVE_STATUSES
from app.modules.users.models import User

DISPLAY_TIMEZONE = ZoneInfo("America/Sao_Paulo")

WEEKDAY_LABELS: dict[Weekday, str] = {
    Weekday.SUNDAY: "Domingo",
    Weekday.MONDAY: "Segunda-feira",
    Weekday.TUESDAY: "Terça-feira",
    Weekday.WEDNESDAY: "Quarta-feira",
    Weekday.THURSDAY: "Quinta-feira",
    Weekday.FRIDAY: "Sexta-feira",
    Weekday.SATURDAY: "Sábado",
}


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def format_date(value: datetime) -> str:
    """Format a timestamp as dd/mm/yyyy in the display timezone."""
    return ensure_aware(value).astimezone(DISPLAY_TIMEZONE).strftime("%d/%m/%Y")


def weekday_label(day: Weekday | str) -> str:
    return WEEKDAY_LABELS.get(Weekday(day), str(day))


def format_weekdays(days: list) -> list[str]:
    return [weekday_label(day) for day in days or []]


def format_address(location: InternshipLocation) -> str | None:
    """
    Render a location's address on one line.

    Example: "Rua A, nº 10, Centro, Recife - PE, CEP 50000-000"

    Returns:
        The formatted address, or None if no address field is filled in
    """
    parts: list[str] = []
    if location.street:
        parts.append(location.street.strip())
    if location.number:
        parts.append(f"nº {location.number.strip()}")
    if location.district:
        parts.append(location.district.strip())

    city_state = " - ".join(
        value.strip() for value in (location.city, location.state) if value and value.strip()
    )
    if city_state:
        parts.append(city_state)
    if location.zip_code:
        parts.append(f"CEP {location.zip_code}")

    return ", ".join(parts) if parts else None


def format_schedule(start_time: str | None, end_time: str | None) -> str | None:
    """Render "08:00 às 12:00", or whichever bound is known."""
    if start_time and end_time:
        return f"{start_time} às {end_time}"
    return start_time or end_time or None


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, rounded up and never negative."""
    seconds = (ensure_aware(end) - ensure_aware(start)).total_seconds()
    return max(0, math.ceil(seconds / 86400))


def resolve_responsible_party(internship: Internship) -> User | None:
    """
    Who receives end-of-internship reminders.

    The creator of the internship is responsible. None when the creator is
    unknown or has no email.
    """
    creator = internship.created_by
    if creator is None or not creator.email:
        return None
    return creator


def is_due_for_reminder(
    internship: Internship,
    now: datetime,
    horizon_hours: int,
    dedup_hours: int,
) -> bool:
    """
    Whether the expiration watcher should remind about this internship.

    Conditions:
    - status is PENDING or IN_PROGRESS
    - end date falls within [now, now + horizon]
    - no reminder was sent within the dedup window
    """
    if internship.status not in ACTIVE_STATUSES:
        return False

    end_date = ensure_aware(internship.end_date)
    if end_date < now or end_date > now + timedelta(hours=horizon_hours):
        return False

    last = internship.last_reminder_sent_at
    if last is not None and ensure_aware(last) >= now - timedelta(hours=dedup_hours):
        return False

    return True

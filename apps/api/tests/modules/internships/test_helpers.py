"""
Unit tests for internships helpers module.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from app.modules.internships.helpers import (
    days_between,
    ensure_aware,
    format_address,
    format_date,
    format_schedule,
    format_weekdays,
    is_due_for_reminder,
    resolve_responsible_party,
)
from app.modules.internships.models import InternshipStatus, Weekday

from .conftest import make_location

HORIZON = 72
DEDUP = 24


def _internship(end_date, status=InternshipStatus.IN_PROGRESS, last_reminder_sent_at=None):
    internship = MagicMock()
    internship.status = status
    internship.end_date = end_date
    internship.last_reminder_sent_at = last_reminder_sent_at
    return internship


class TestFormatting:
    """Tests for display formatting."""

    def test_ensure_aware_treats_naive_as_utc(self):
        assert ensure_aware(datetime(2025, 1, 1)).tzinfo == UTC

    def test_format_date_uses_sao_paulo_timezone(self):
        # 02:00 UTC is still the previous day in Brasília time
        assert format_date(datetime(2025, 5, 1, 2, 0, tzinfo=UTC)) == "30/04/2025"

    def test_format_weekdays_in_portuguese(self):
        assert format_weekdays(["MONDAY", Weekday.SATURDAY]) == ["Segunda-feira", "Sábado"]

    def test_format_weekdays_empty(self):
        assert format_weekdays(None) == []

    def test_format_address_full(self):
        assert (
            format_address(make_location())
            == "Rua A, nº 10, Centro, Recife - PE, CEP 50000-000"
        )

    def test_format_address_partial(self):
        location = make_location(street=None, number=None, district=None, state=None, zip_code=None)
        assert format_address(location) == "Recife"

    def test_format_address_empty(self):
        location = make_location(
            street=None, number=None, district=None, city=None, state=None, zip_code=None
        )
        assert format_address(location) is None

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            ("08:00", "12:00", "08:00 às 12:00"),
            ("08:00", None, "08:00"),
            (None, "17:00", "17:00"),
            (None, None, None),
        ],
    )
    def test_format_schedule(self, start, end, expected):
        assert format_schedule(start, end) == expected

    def test_days_between_rounds_up(self):
        start = datetime(2025, 4, 28, tzinfo=UTC)
        assert days_between(start, start + timedelta(days=2, hours=1)) == 3

    def test_days_between_never_negative(self):
        start = datetime(2025, 4, 28, tzinfo=UTC)
        assert days_between(start, start - timedelta(days=1)) == 0


class TestResolveResponsibleParty:
    def test_creator_is_responsible(self):
        internship = MagicMock()
        internship.created_by.email = "coord@example.com"

        assert resolve_responsible_party(internship) is internship.created_by

    def test_no_creator(self):
        internship = MagicMock()
        internship.created_by = None

        assert resolve_responsible_party(internship) is None

    def test_creator_without_email(self):
        internship = MagicMock()
        internship.created_by.email = ""

        assert resolve_responsible_party(internship) is None


class TestIsDueForReminder:
    """Selection rules of the expiration watcher."""

    def test_within_horizon_and_never_reminded(self):
        now = datetime(2025, 4, 28, 0, 0, tzinfo=UTC)
        internship = _internship(datetime(2025, 4, 30, 23, 59, tzinfo=UTC))

        assert is_due_for_reminder(internship, now, HORIZON, DEDUP)

    def test_one_hour_after_reminder_not_due(self):
        reminded_at = datetime(2025, 4, 28, 0, 0, tzinfo=UTC)
        internship = _internship(
            datetime(2025, 4, 30, 23, 59, tzinfo=UTC), last_reminder_sent_at=reminded_at
        )

        assert not is_due_for_reminder(
            internship, reminded_at + timedelta(hours=1), HORIZON, DEDUP
        )

    def test_due_again_after_dedup_window(self):
        reminded_at = datetime(2025, 4, 28, 0, 0, tzinfo=UTC)
        internship = _internship(
            datetime(2025, 4, 30, 23, 59, tzinfo=UTC), last_reminder_sent_at=reminded_at
        )

        assert is_due_for_reminder(
            internship, reminded_at + timedelta(hours=25), HORIZON, DEDUP
        )

    def test_outside_horizon(self):
        now = datetime(2025, 4, 20, tzinfo=UTC)
        internship = _internship(datetime(2025, 4, 30, tzinfo=UTC))

        assert not is_due_for_reminder(internship, now, HORIZON, DEDUP)

    def test_already_ended(self):
        now = datetime(2025, 5, 1, tzinfo=UTC)
        internship = _internship(datetime(2025, 4, 30, tzinfo=UTC))

        assert not is_due_for_reminder(internship, now, HORIZON, DEDUP)

    @pytest.mark.parametrize(
        "status",
        [InternshipStatus.COMPLETED, InternshipStatus.FAILED, InternshipStatus.CANCELLED],
    )
    def test_terminal_status_never_due(self, status):
        now = datetime(2025, 4, 28, tzinfo=UTC)
        internship = _internship(datetime(2025, 4, 29, tzinfo=UTC), status=status)

        assert not is_due_for_reminder(internship, now, HORIZON, DEDUP)

    def test_pending_is_due(self):
        now = datetime(2025, 4, 28, tzinfo=UTC)
        internship = _internship(datetime(2025, 4, 29, tzinfo=UTC), status=InternshipStatus.PENDING)

        assert is_due_for_reminder(internship, now, HORIZON, DEDUP)

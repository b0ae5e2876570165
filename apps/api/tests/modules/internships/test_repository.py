"""
Unit tests for the internships repository layer.

Statements are captured from a mock session and compiled for PostgreSQL,
so these tests check the SQL the watcher relies on without a database.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import Select, Update
from sqlalchemy.dialects import postgresql

from app.modules.internships import repository
from app.modules.internships.models import (
    InternshipNotification,
    InternshipStatus,
    NotificationChannel,
    NotificationType,
)
from app.modules.internships.transitions import ACTIVE_STATUSES

NOW = datetime(2025, 4, 28, 0, 0, tzinfo=UTC)


def _compile(statement):
    return statement.compile(dialect=postgresql.dialect())


def _executed_statement(mock_db):
    return mock_db.execute.call_args.args[0]


def _result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    result.scalar_one_or_none.return_value = rows[0] if rows else None
    return result


class TestRecordReminder:
    """Tests for stamping a sent reminder."""

    @pytest.mark.asyncio
    async def test_stamps_last_reminder_sent_at(self, mock_db):
        internship_id = uuid4()

        await repository.record_reminder(
            mock_db, internship_id, NOW, recipient="coord@example.com", detail="Lembrete"
        )

        statement = _executed_statement(mock_db)
        assert isinstance(statement, Update)
        compiled = _compile(statement)
        assert str(compiled).startswith("UPDATE internships SET")
        assert compiled.params["last_reminder_sent_at"] == NOW
        assert internship_id in compiled.params.values()

    @pytest.mark.asyncio
    async def test_logs_end_imminent_in_same_commit(self, mock_db):
        internship_id = uuid4()

        await repository.record_reminder(
            mock_db, internship_id, NOW, recipient="coord@example.com", detail="Lembrete"
        )

        entry = mock_db.add.call_args.args[0]
        assert isinstance(entry, InternshipNotification)
        assert entry.internship_id == internship_id
        assert entry.type == NotificationType.END_IMMINENT
        assert entry.channel == NotificationChannel.EMAIL
        assert entry.recipient == "coord@example.com"
        assert entry.sent_at == NOW
        assert entry.detail == "Lembrete"
        mock_db.execute.assert_awaited_once()
        mock_db.commit.assert_awaited_once()


class TestFindInternshipsEndingSoon:
    """Tests for the watcher's selection query."""

    @pytest.mark.asyncio
    async def test_returns_rows(self, mock_db, sample_internship):
        mock_db.execute.return_value = _result([sample_internship])

        rows = await repository.find_internships_ending_soon(mock_db, NOW, 72, 24)

        assert rows == [sample_internship]

    @pytest.mark.asyncio
    async def test_horizon_and_dedup_bounds(self, mock_db):
        mock_db.execute.return_value = _result([])

        await repository.find_internships_ending_soon(mock_db, NOW, 72, 24)

        statement = _executed_statement(mock_db)
        assert isinstance(statement, Select)
        compiled = _compile(statement)
        sql = str(compiled)
        values = list(compiled.params.values())

        assert "internships.end_date >=" in sql
        assert "internships.end_date <=" in sql
        assert "internships.last_reminder_sent_at IS NULL" in sql
        assert "internships.last_reminder_sent_at <" in sql
        assert NOW in values
        assert NOW + timedelta(hours=72) in values
        assert NOW - timedelta(hours=24) in values

    @pytest.mark.asyncio
    async def test_only_active_statuses(self, mock_db):
        mock_db.execute.return_value = _result([])

        await repository.find_internships_ending_soon(mock_db, NOW, 72, 24)

        compiled = _compile(_executed_statement(mock_db))
        status_lists = [v for v in compiled.params.values() if isinstance(v, list)]
        assert len(status_lists) == 1
        assert set(status_lists[0]) == set(ACTIVE_STATUSES)
        assert InternshipStatus.COMPLETED not in status_lists[0]

    @pytest.mark.asyncio
    async def test_custom_windows(self, mock_db):
        mock_db.execute.return_value = _result([])

        await repository.find_internships_ending_soon(mock_db, NOW, 24, 6)

        values = list(_compile(_executed_statement(mock_db)).params.values())
        assert NOW + timedelta(hours=24) in values
        assert NOW - timedelta(hours=6) in values


class TestGetById:
    @pytest.mark.asyncio
    async def test_plain_read_takes_no_lock(self, mock_db):
        mock_db.execute.return_value = _result([])

        await repository.get_by_id(mock_db, uuid4())

        assert "FOR UPDATE" not in str(_compile(_executed_statement(mock_db)))

    @pytest.mark.asyncio
    async def test_for_update_skips_locked_rows(self, mock_db):
        mock_db.execute.return_value = _result([])

        result = await repository.get_by_id(mock_db, uuid4(), for_update=True)

        assert result is None
        sql = str(_compile(_executed_statement(mock_db)))
        assert "FOR UPDATE OF internships SKIP LOCKED" in sql

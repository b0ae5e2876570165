"""
Unit tests for the internship expiration watcher.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.scheduler import JobScheduler
from app.modules.internships.jobs import (
    JOB_ID_EXPIRATION_WATCHER,
    REMINDER_DETAIL,
    ExpirationWatcher,
)
from app.modules.internships.models import InternshipStatus
from app.modules.internships.notifications import DeliveryOutcome

REPO = "app.modules.internships.jobs.repository"

NOW = datetime(2025, 4, 28, 0, 0, tzinfo=UTC)


def _session_maker(db):
    maker = MagicMock()
    maker.return_value.__aenter__ = AsyncMock(return_value=db)
    maker.return_value.__aexit__ = AsyncMock(return_value=False)
    return maker


def _notifier(recipient="coord@example.com"):
    notifier = MagicMock()
    notifier.send_reminder = AsyncMock(
        return_value=DeliveryOutcome(recipient=recipient, delivered=True)
    )
    return notifier


def _watcher(db, notifier, alive=True):
    return ExpirationWatcher(
        session_maker=_session_maker(db),
        notifier=notifier,
        liveness_check=AsyncMock(return_value=alive),
        horizon_hours=72,
        dedup_hours=24,
    )


@pytest.fixture
def ending_internship(sample_internship):
    sample_internship.status = InternshipStatus.IN_PROGRESS
    sample_internship.end_date = datetime(2025, 4, 30, 23, 59, tzinfo=UTC)
    sample_internship.last_reminder_sent_at = None
    return sample_internship


class TestWatcherLiveness:
    @pytest.mark.asyncio
    async def test_database_down_skips_tick(self, mock_db):
        notifier = _notifier()
        watcher = _watcher(mock_db, notifier, alive=False)

        with patch(REPO) as mock_repo:
            mock_repo.find_internships_ending_soon = AsyncMock()
            mock_repo.record_reminder = AsyncMock()

            results = await watcher.tick(NOW)

            assert results["skipped_tick"] is True
            watcher.session_maker.assert_not_called()
            mock_repo.find_internships_ending_soon.assert_not_called()
            mock_repo.record_reminder.assert_not_called()
            notifier.send_reminder.assert_not_called()

    @pytest.mark.asyncio
    async def test_liveness_exception_treated_as_down(self, mock_db):
        watcher = _watcher(mock_db, _notifier())
        watcher.liveness_check = AsyncMock(side_effect=OSError("refused"))

        results = await watcher.tick(NOW)

        assert results["skipped_tick"] is True
        watcher.session_maker.assert_not_called()


class TestWatcherTick:
    """Tests for one watcher pass."""

    @pytest.mark.asyncio
    async def test_reminds_and_stamps(self, mock_db, ending_internship):
        notifier = _notifier()
        watcher = _watcher(mock_db, notifier)

        with patch(REPO) as mock_repo:
            mock_repo.find_internships_ending_soon = AsyncMock(return_value=[ending_internship])
            mock_repo.get_by_id = AsyncMock(return_value=ending_internship)
            mock_repo.record_reminder = AsyncMock()

            results = await watcher.tick(NOW)

            assert results["reminded"] == 1
            mock_repo.find_internships_ending_soon.assert_awaited_once_with(mock_db, NOW, 72, 24)
            mock_repo.get_by_id.assert_awaited_once_with(
                mock_db, ending_internship.id, for_update=True
            )
            notifier.send_reminder.assert_awaited_once_with(
                ending_internship, ending_internship.created_by, NOW
            )
            mock_repo.record_reminder.assert_awaited_once_with(
                mock_db,
                ending_internship.id,
                NOW,
                recipient="coord@example.com",
                detail=REMINDER_DETAIL,
            )
            assert watcher.total_processed == 1
            assert watcher.last_run_at == NOW

    @pytest.mark.asyncio
    async def test_reminded_recently_is_skipped_on_recheck(self, mock_db, ending_internship):
        notifier = _notifier()
        watcher = _watcher(mock_db, notifier)
        # Another tick stamped it after selection
        ending_internship.last_reminder_sent_at = NOW - timedelta(hours=1)

        with patch(REPO) as mock_repo:
            mock_repo.find_internships_ending_soon = AsyncMock(return_value=[ending_internship])
            mock_repo.get_by_id = AsyncMock(return_value=ending_internship)
            mock_repo.record_reminder = AsyncMock()

            results = await watcher.tick(NOW)

            assert results["skipped"] == 1
            notifier.send_reminder.assert_not_called()
            mock_repo.record_reminder.assert_not_called()

    @pytest.mark.asyncio
    async def test_row_locked_by_another_tick_is_skipped(self, mock_db, ending_internship):
        notifier = _notifier()
        watcher = _watcher(mock_db, notifier)

        with patch(REPO) as mock_repo:
            mock_repo.find_internships_ending_soon = AsyncMock(return_value=[ending_internship])
            # SKIP LOCKED returns no row while another transaction holds it
            mock_repo.get_by_id = AsyncMock(return_value=None)
            mock_repo.record_reminder = AsyncMock()

            results = await watcher.tick(NOW)

            assert results["skipped"] == 1
            notifier.send_reminder.assert_not_called()
            mock_repo.record_reminder.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_responsible_party_skipped(self, mock_db, ending_internship, caplog):
        notifier = _notifier()
        watcher = _watcher(mock_db, notifier)
        ending_internship.created_by = None

        with (
            patch(REPO) as mock_repo,
            caplog.at_level("DEBUG", logger="app.modules.internships.jobs"),
        ):
            mock_repo.find_internships_ending_soon = AsyncMock(return_value=[ending_internship])
            mock_repo.get_by_id = AsyncMock(return_value=ending_internship)
            mock_repo.record_reminder = AsyncMock()

            results = await watcher.tick(NOW)

            assert results["skipped"] == 1
            notifier.send_reminder.assert_not_called()
            mock_repo.record_reminder.assert_not_called()
            assert "no responsible party" in caplog.text

    @pytest.mark.asyncio
    async def test_failure_on_one_does_not_stop_others(self, mock_db, ending_internship):
        broken = MagicMock()
        broken.id = "broken"
        notifier = _notifier()
        watcher = _watcher(mock_db, notifier)

        async def get_by_id(db, internship_id, **kwargs):
            if internship_id == "broken":
                raise RuntimeError("corrupt row")
            return ending_internship

        with patch(REPO) as mock_repo:
            mock_repo.find_internships_ending_soon = AsyncMock(
                return_value=[broken, ending_internship]
            )
            mock_repo.get_by_id = AsyncMock(side_effect=get_by_id)
            mock_repo.record_reminder = AsyncMock()

            results = await watcher.tick(NOW)

            assert results["total_errors"] == 1
            assert results["reminded"] == 1

    @pytest.mark.asyncio
    async def test_connection_error_logged_as_warning(self, mock_db, caplog):
        watcher = _watcher(mock_db, _notifier())

        with (
            patch(REPO) as mock_repo,
            caplog.at_level("WARNING", logger="app.modules.internships.jobs"),
        ):
            mock_repo.find_internships_ending_soon = AsyncMock(
                side_effect=OperationalError("SELECT", {}, Exception("connection refused"))
            )

            results = await watcher.tick(NOW)

            assert results["total_errors"] == 1
            records = [r for r in caplog.records if r.name == "app.modules.internships.jobs"]
            assert records[-1].levelname == "WARNING"

    @pytest.mark.asyncio
    async def test_other_error_logged_as_error(self, mock_db, caplog):
        watcher = _watcher(mock_db, _notifier())

        with (
            patch(REPO) as mock_repo,
            caplog.at_level("WARNING", logger="app.modules.internships.jobs"),
        ):
            mock_repo.find_internships_ending_soon = AsyncMock(side_effect=ValueError("bug"))

            results = await watcher.tick(NOW)

            assert results["total_errors"] == 1
            records = [r for r in caplog.records if r.name == "app.modules.internships.jobs"]
            assert records[-1].levelname == "ERROR"


class TestWatcherRegistration:
    def test_register_adds_cron_job(self, mock_db):
        scheduler = JobScheduler()
        watcher = _watcher(mock_db, _notifier())

        watcher.register(scheduler)

        assert [job["job_id"] for job in scheduler.list_jobs()] == [JOB_ID_EXPIRATION_WATCHER]

    @pytest.mark.asyncio
    async def test_manual_trigger_runs_tick(self, mock_db):
        scheduler = JobScheduler()
        watcher = _watcher(mock_db, _notifier(), alive=False)
        watcher.register(scheduler)

        result = await scheduler.trigger_job_manually(JOB_ID_EXPIRATION_WATCHER)

        assert result["status"] == "success"
        assert result["result"]["skipped_tick"] is True

    @pytest.mark.asyncio
    async def test_manual_trigger_unknown_job(self):
        with pytest.raises(ValueError):
            await JobScheduler().trigger_job_manually("nope")

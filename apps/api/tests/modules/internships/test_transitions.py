"""
Unit tests for the internship state machine.

Status updates are an administrative override: every (current, target)
pair is accepted. The exhaustive pair tests below pin that behavior down.
"""

import itertools
from datetime import UTC, datetime, timedelta

import pytest

from app.modules.internships.models import InternshipStatus
from app.modules.internships.transitions import (
    ACTIVE_STATUSES,
    STATUS_FLOW,
    TERMINAL_STATUSES,
    is_transition_in_flow,
    status_after_confirmation,
    status_update_fields,
)

NOW = datetime(2025, 4, 28, 12, 0, tzinfo=UTC)

ALL_PAIRS = list(itertools.product(InternshipStatus, InternshipStatus))


class TestStatusSets:
    """Tests for the status groupings."""

    def test_active_and_terminal_partition_all_statuses(self):
        assert ACTIVE_STATUSES | TERMINAL_STATUSES == set(InternshipStatus)
        assert not ACTIVE_STATUSES & TERMINAL_STATUSES

    def test_terminal_statuses_have_no_outgoing_flow(self):
        for status in TERMINAL_STATUSES:
            assert STATUS_FLOW[status] == set()


class TestIsTransitionInFlow:
    """Tests for is_transition_in_flow."""

    def test_pending_to_in_progress(self):
        assert is_transition_in_flow(InternshipStatus.PENDING, InternshipStatus.IN_PROGRESS)

    def test_in_progress_to_completed(self):
        assert is_transition_in_flow(InternshipStatus.IN_PROGRESS, InternshipStatus.COMPLETED)

    def test_same_status_is_in_flow(self):
        assert is_transition_in_flow(InternshipStatus.FAILED, InternshipStatus.FAILED)

    def test_cancelled_back_to_pending_is_outside_flow(self):
        assert not is_transition_in_flow(InternshipStatus.CANCELLED, InternshipStatus.PENDING)

    def test_pending_to_completed_is_outside_flow(self):
        assert not is_transition_in_flow(InternshipStatus.PENDING, InternshipStatus.COMPLETED)


class TestStatusAfterConfirmation:
    """Confirmation only advances PENDING."""

    def test_pending_advances_to_in_progress(self):
        assert status_after_confirmation(InternshipStatus.PENDING) == InternshipStatus.IN_PROGRESS

    @pytest.mark.parametrize(
        "status",
        [
            InternshipStatus.IN_PROGRESS,
            InternshipStatus.COMPLETED,
            InternshipStatus.FAILED,
            InternshipStatus.CANCELLED,
        ],
    )
    def test_other_statuses_unchanged(self, status):
        assert status_after_confirmation(status) == status


class TestStatusUpdateFieldsPermissive:
    """Every status pair is accepted as long as its side-effect inputs are valid."""

    @pytest.mark.parametrize("current,target", ALL_PAIRS)
    def test_any_pair_is_accepted(self, current, target):
        fields = status_update_fields(current, target, NOW, failure_reason="Desistência")

        assert fields["status"] == target

    @pytest.mark.parametrize("current,target", ALL_PAIRS)
    def test_completed_and_failed_never_both_set(self, current, target):
        fields = status_update_fields(current, target, NOW, failure_reason="Motivo")

        if target == InternshipStatus.COMPLETED:
            assert fields["failed_at"] is None
            assert fields["failure_reason"] is None
        if target == InternshipStatus.FAILED:
            assert fields["completed_at"] is None

    @pytest.mark.parametrize("current", list(InternshipStatus))
    def test_failed_without_reason_always_rejected(self, current):
        with pytest.raises(ValueError):
            status_update_fields(current, InternshipStatus.FAILED, NOW)

    def test_override_outside_flow_is_logged(self, caplog):
        with caplog.at_level("INFO", logger="app.modules.internships.transitions"):
            status_update_fields(InternshipStatus.CANCELLED, InternshipStatus.PENDING, NOW)

        assert "CANCELLED -> PENDING" in caplog.text


class TestStatusUpdateFieldsSideEffects:
    """Field side effects of each target status."""

    def test_completed_defaults_completed_at_to_now(self):
        fields = status_update_fields(
            InternshipStatus.IN_PROGRESS, InternshipStatus.COMPLETED, NOW
        )

        assert fields["completed_at"] == NOW
        assert fields["failed_at"] is None
        assert fields["failure_reason"] is None

    def test_completed_uses_supplied_timestamp(self):
        completed_at = NOW - timedelta(days=2)

        fields = status_update_fields(
            InternshipStatus.IN_PROGRESS,
            InternshipStatus.COMPLETED,
            NOW,
            completed_at=completed_at,
        )

        assert fields["completed_at"] == completed_at

    def test_failed_sets_reason_and_clears_completed_at(self):
        fields = status_update_fields(
            InternshipStatus.COMPLETED,
            InternshipStatus.FAILED,
            NOW,
            failure_reason="Faltas excessivas",
        )

        assert fields["failed_at"] == NOW
        assert fields["failure_reason"] == "Faltas excessivas"
        assert fields["completed_at"] is None

    def test_failed_rejects_blank_reason(self):
        with pytest.raises(ValueError, match="failure_reason"):
            status_update_fields(
                InternshipStatus.IN_PROGRESS, InternshipStatus.FAILED, NOW, failure_reason="   "
            )

    def test_cancelled_sets_failed_at_and_optional_reason(self):
        fields = status_update_fields(InternshipStatus.PENDING, InternshipStatus.CANCELLED, NOW)

        assert fields["failed_at"] == NOW
        assert fields["failure_reason"] is None
        assert "completed_at" not in fields

    def test_in_progress_touches_only_status(self):
        fields = status_update_fields(
            InternshipStatus.PENDING, InternshipStatus.IN_PROGRESS, NOW
        )

        assert fields == {"status": InternshipStatus.IN_PROGRESS}

"""
Internship State Machine

Lifecycle:

    PENDING --confirm--> IN_PROGRESS --> COMPLETED | FAILED | CANCELLED

Creation always yields PENDING. Confirmation advances PENDING to IN_PROGRESS
and leaves every other status alone.

The explicit status update is an administrative override: any target status
is accepted, including moving a terminal internship back to PENDING. Only the
field side effects of each target are enforced. Targets outside STATUS_FLOW
are logged so that overrides stay visible.
"""

import logging
from datetime import datetime
from typing import Any

from app.modules.internships.models import InternshipStatus

logger = logging.getLogger(__name__)

# Statuses the expiration watcher considers
ACTIVE_STATUSES: frozenset[InternshipStatus] = frozenset(
    {InternshipStatus.PENDING, InternshipStatus.IN_PROGRESS}
)

TERMINAL_STATUSES: frozenset[InternshipStatus] = frozenset(
    {InternshipStatus.COMPLETED, InternshipStatus.FAILED, InternshipStatus.CANCELLED}
)

# Documented lifecycle. Not enforced by status updates.
STATUS_FLOW: dict[InternshipStatus, set[InternshipStatus]] = {
    InternshipStatus.PENDING: {
        InternshipStatus.IN_PROGRESS,
        InternshipStatus.CANCELLED,
    },
    InternshipStatus.IN_PROGRESS: {
        InternshipStatus.COMPLETED,
        InternshipStatus.FAILED,
        InternshipStatus.CANCELLED,
    },
    InternshipStatus.COMPLETED: set(),
    InternshipStatus.FAILED: set(),
    InternshipStatus.CANCELLED: set(),
}


def is_transition_in_flow(current: InternshipStatus, target: InternshipStatus) -> bool:
    """Whether current -> target follows the documented lifecycle."""
    if current == target:
        return True
    return target in STATUS_FLOW.get(current, set())


def status_after_confirmation(current: InternshipStatus) -> InternshipStatus:
    """Confirmation only advances PENDING; it never regresses a later status."""
    if current == InternshipStatus.PENDING:
        return InternshipStatus.IN_PROGRESS
    return current


def status_update_fields(
    current: InternshipStatus,
    target: InternshipStatus,
    now: datetime,
    *,
    completed_at: datetime | None = None,
    failure_reason: str | None = None,
) -> dict[str, Any]:
    """
    Compute the column changes for an explicit status update.

    Args:
        current: Status the internship is in now
        target: Requested status
        now: Timestamp used for defaults
        completed_at: Completion timestamp (COMPLETED only, defaults to now)
        failure_reason: Reason (required for FAILED, optional for CANCELLED)

    Returns:
        Mapping of attribute name to new value

    Raises:
        ValueError: If FAILED is requested without a reason
    """
    if not is_transition_in_flow(current, target):
        logger.info(f"Status override outside lifecycle: {current.value} -> {target.value}")

    fields: dict[str, Any] = {"status": target}

    if target == InternshipStatus.COMPLETED:
        fields["completed_at"] = completed_at or now
        fields["failed_at"] = None
        fields["failure_reason"] = None
    elif target == InternshipStatus.FAILED:
        if not failure_reason or not failure_reason.strip():
            raise ValueError("failure_reason is required when status is FAILED")
        fields["failed_at"] = now
        fields["failure_reason"] = failure_reason
        fields["completed_at"] = None
    elif target == InternshipStatus.CANCELLED:
        fields["failed_at"] = now
        fields["failure_reason"] = failure_reason

    return fields

"""
Internship Notification Dispatcher

Composes the convocation and reminder emails and sends them through the
injected email provider.

Delivery is best effort: a failed send is logged at warning level and never
propagates to the caller. The workflow state in the database stays the source
of truth, and an administrator can resend the convocation later. Every
attempted send produces exactly one notification log entry.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email import EmailProvider, EmailSendResult, get_email_provider
from app.modules.internships import repository
from app.modules.internships.emails import LocationSummary, render_convocation, render_reminder
from app.modules.internships.helpers import (
    days_between,
    format_address,
    format_date,
    format_schedule,
    format_weekdays,
)
from app.modules.internships.models import Internship, NotificationType
from app.modules.users.models import User

logger = logging.getLogger(__name__)


@dataclass
class DeliveryOutcome:
    """Result of one send attempt, as recorded in the notification log."""

    recipient: str
    delivered: bool
    error: str | None = None

    def describe(self, summary: str) -> str:
        """Log detail text, flagging failed deliveries."""
        if self.delivered:
            return summary
        reason = f": {self.error}" if self.error else ""
        return f"{summary} (falha no envio{reason})"


def _location_summaries(internship: Internship) -> list[LocationSummary]:
    return [
        LocationSummary(
            company_name=location.company_name,
            title=location.title,
            address=format_address(location),
            schedule=format_schedule(location.start_time, location.end_time),
            weekdays=format_weekdays(location.weekdays),
            reference_point=location.reference_point,
            notes=location.notes,
        )
        for location in internship.locations
    ]


class InternshipNotifier:
    """Sends internship emails and records them in the notification log."""

    def __init__(self, email_provider: EmailProvider, frontend_url: str, confirm_path: str):
        self.email_provider = email_provider
        self.frontend_url = frontend_url.rstrip("/")
        self.confirm_path = confirm_path

    def build_confirmation_url(self, token: str) -> str:
        return f"{self.frontend_url}{self.confirm_path}?token={token}"

    async def _deliver(
        self, to: str, to_name: str | None, subject: str, html: str, text: str
    ) -> DeliveryOutcome:
        try:
            result: EmailSendResult = await self.email_provider.send_email(
                to=to, subject=subject, html=html, text=text, to_name=to_name
            )
        except Exception as e:
            logger.warning(f"Email provider raised while sending to {to}: {e}")
            return DeliveryOutcome(recipient=to, delivered=False, error=str(e))

        if not result.success:
            logger.warning(f"Email delivery to {to} failed: {result.error}")
            return DeliveryOutcome(recipient=to, delivered=False, error=result.error)

        return DeliveryOutcome(recipient=to, delivered=True)

    async def send_convocation(
        self, internship: Internship, recipient: str | None = None
    ) -> DeliveryOutcome:
        """
        Send the convocation email for an internship.

        Args:
            internship: Internship with student, course, cohort, locations
                and confirmation loaded
            recipient: Alternate address; defaults to the student's email
        """
        student = internship.student
        to = recipient or student.email

        email = render_convocation(
            student_name=student.full_name,
            course_name=internship.course.name,
            cohort_name=internship.cohort.name,
            internship_name=internship.name,
            start_date=format_date(internship.start_date),
            end_date=format_date(internship.end_date),
            confirmation_url=self.build_confirmation_url(internship.confirmation.token),
            mandatory=internship.mandatory,
            primary_company=internship.primary_company,
            total_hours=internship.total_hours,
            notes=internship.notes,
            locations=_location_summaries(internship),
        )

        logger.info(f"Sending internship convocation for {internship.id} to {to}")
        return await self._deliver(to, student.full_name, email.subject, email.html, email.text)

    async def send_reminder(
        self, internship: Internship, responsible: User, now: datetime | None = None
    ) -> DeliveryOutcome:
        """Send the end-of-internship reminder to the responsible party."""
        now = now or datetime.now(UTC)

        email = render_reminder(
            recipient_name=responsible.full_name,
            student_name=internship.student.full_name,
            course_name=internship.course.name,
            cohort_name=internship.cohort.name,
            internship_name=internship.name,
            start_date=format_date(internship.start_date),
            end_date=format_date(internship.end_date),
            days_remaining=days_between(now, internship.end_date),
        )

        logger.info(f"Sending end reminder for internship {internship.id} to {responsible.email}")
        return await self._deliver(
            responsible.email, responsible.full_name, email.subject, email.html, email.text
        )

    async def dispatch_convocation(
        self,
        db: AsyncSession,
        internship: Internship,
        detail: str,
        recipient: str | None = None,
    ) -> DeliveryOutcome | None:
        """
        Send the convocation and append its log entry.

        Runs after the owning transaction has committed. The log entry is
        written in its own commit. Nothing raised here reaches the caller.

        Returns:
            The delivery outcome, or None if the send could not be attempted
        """
        try:
            outcome = await self.send_convocation(internship, recipient=recipient)
        except Exception as e:
            logger.warning(
                f"Could not compose convocation for internship {internship.id}: {e}",
                exc_info=True,
            )
            return None

        try:
            await repository.add_notification(
                db,
                internship.id,
                NotificationType.CONVOCATION_PENDING,
                recipient=outcome.recipient,
                detail=outcome.describe(detail),
            )
        except Exception as e:
            logger.warning(
                f"Failed to record convocation log for internship {internship.id}: {e}"
            )
            await db.rollback()

        return outcome


def get_internship_notifier(
    email_provider: EmailProvider = Depends(get_email_provider),
) -> InternshipNotifier:
    """FastAPI dependency building the notifier from settings."""
    return InternshipNotifier(
        email_provider=email_provider,
        frontend_url=settings.frontend_url,
        confirm_path=settings.internship_confirm_path,
    )

"""
Email Service using Resend

Outbound email goes through an `EmailProvider`. The default provider calls
the Resend SDK; tests and alternative transports supply their own provider
through `get_email_provider` or the notifier constructor.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

import resend

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailSendResult:
    """Outcome of a send attempt."""

    success: bool
    id: str | None = None
    error: str | None = None


class EmailProvider(Protocol):
    """A transport able to deliver one email."""

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        to_name: str | None = None,
    ) -> EmailSendResult: ...


class ResendEmailProvider:
    """
    Sends email through Resend.

    Without an API key the email is logged instead of sent and the result is
    reported as successful, which keeps local development usable.
    """

    def __init__(self, api_key: str | None, sender: str):
        self.api_key = api_key
        self.sender = sender

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        to_name: str | None = None,
    ) -> EmailSendResult:
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set - logging email instead of sending")
            logger.info(f"EMAIL TO: {to} | SUBJECT: {subject}")
            return EmailSendResult(success=True)

        recipient = f"{to_name} <{to}>" if to_name else to
        params: resend.Emails.SendParams = {
            "from": self.sender,
            "to": [recipient],
            "subject": subject,
            "html": html,
            "text": text,
        }

        try:
            resend.api_key = self.api_key
            # Resend's SDK is synchronous
            email = await asyncio.to_thread(resend.Emails.send, params)
            logger.info(f"Email sent successfully to {to}, id: {email['id']}")
            return EmailSendResult(success=True, id=email["id"])
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return EmailSendResult(success=False, error=str(e))


@lru_cache
def get_email_provider() -> EmailProvider:
    """FastAPI dependency returning the configured email provider."""
    return ResendEmailProvider(api_key=settings.resend_api_key, sender=settings.email_from)

"""
Internship Background Jobs

Expiration watcher: reminds the person responsible for an internship that
its end date is near.

Each tick:
1. Skips entirely if the database is unreachable (zero reads, writes, sends)
2. Selects active internships ending within the horizon and not reminded
   within the dedup window
3. Skips internships without a responsible party (logged at debug)
4. Sends the reminder, then stamps last_reminder_sent_at and logs an
   END_IMMINENT notification in one transaction

Design Principles:
- Each internship is processed in its own session
- One internship's failure never stops the others
- Database connection errors are warnings; anything else is an error
- The tick never raises, so the scheduler always reaches the next run

Each internship row is locked (SKIP LOCKED) from the re-check until the
stamp commits, so concurrent ticks in other processes skip it.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.scheduler import JobScheduler
from app.modules.internships import repository
from app.modules.internships.helpers import is_due_for_reminder, resolve_responsible_party
from app.modules.internships.notifications import InternshipNotifier

logger = logging.getLogger(__name__)

JOB_ID_EXPIRATION_WATCHER = "internships_expiration_watcher"

REMINDER_DETAIL = "Aviso de encerramento enviado"


def _is_connection_error(error: Exception) -> bool:
    if isinstance(error, (OperationalError, InterfaceError)):
        return True
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


class ExpirationWatcher:
    """
    Periodic end-of-internship reminder job.

    Call `tick()` directly to run one pass synchronously (tests, manual runs),
    or `register()` it with a JobScheduler.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        notifier: InternshipNotifier,
        liveness_check: Callable[[], Awaitable[bool]],
        *,
        horizon_hours: int = 72,
        dedup_hours: int = 24,
        cron: str = "0 * * * *",
    ):
        self.session_maker = session_maker
        self.notifier = notifier
        self.liveness_check = liveness_check
        self.horizon_hours = horizon_hours
        self.dedup_hours = dedup_hours
        self.cron = cron

        # Simple counters exposed through the debug endpoints
        self.total_processed = 0
        self.last_run_at: datetime | None = None
        self.processed_last_run = 0

    def register(self, scheduler: JobScheduler) -> None:
        """Register the watcher's cron schedule."""
        scheduler.register_job(
            job_id=JOB_ID_EXPIRATION_WATCHER,
            func=self.run,
            trigger=CronTrigger.from_crontab(self.cron, timezone=UTC),
        )
        logger.info(
            f"Registered internship expiration watcher "
            f"(cron='{self.cron}', horizon={self.horizon_hours}h)"
        )

    async def run(self) -> dict[str, Any]:
        """Scheduler entry point."""
        return await self.tick()

    async def tick(self, now: datetime | None = None) -> dict[str, Any]:
        """
        Run one watcher pass.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            Summary dict with counts of reminded, skipped and failed internships
        """
        now = now or datetime.now(UTC)
        results: dict[str, Any] = {
            "executed_at": now.isoformat(),
            "skipped_tick": False,
            "reminded": 0,
            "skipped": 0,
            "total_errors": 0,
        }

        try:
            alive = await self.liveness_check()
        except Exception as e:
            logger.info(f"Liveness check raised, skipping watcher tick: {e}")
            alive = False

        if not alive:
            logger.info("Database unavailable, skipping internship expiration watcher tick")
            results["skipped_tick"] = True
            return results

        try:
            async with self.session_maker() as db:
                candidates = await repository.find_internships_ending_soon(
                    db, now, self.horizon_hours, self.dedup_hours
                )
                candidate_ids = [internship.id for internship in candidates]
        except Exception as e:
            self._log_failure("Failed to select internships ending soon", e)
            results["total_errors"] += 1
            return results

        logger.info(f"Found {len(candidate_ids)} internships ending within {self.horizon_hours}h")

        for internship_id in candidate_ids:
            try:
                outcome = await self._process(internship_id, now)
            except Exception as e:
                self._log_failure(f"Failed to process reminder for internship {internship_id}", e)
                results["total_errors"] += 1
                continue

            results[outcome] += 1

        self.last_run_at = now
        self.processed_last_run = results["reminded"]
        self.total_processed += results["reminded"]

        logger.info(
            f"Expiration watcher completed: reminded={results['reminded']}, "
            f"skipped={results['skipped']}, errors={results['total_errors']}"
        )
        return results

    async def _process(self, internship_id: UUID, now: datetime) -> str:
        async with self.session_maker() as db:
            internship = await repository.get_by_id(db, internship_id, for_update=True)

            # Locked re-check; a concurrent tick holding the row or a recent stamp skips it
            if internship is None or not is_due_for_reminder(
                internship, now, self.horizon_hours, self.dedup_hours
            ):
                return "skipped"

            responsible = resolve_responsible_party(internship)
            if responsible is None:
                logger.debug(
                    f"Internship {internship_id} has no responsible party, skipping reminder"
                )
                return "skipped"

            outcome = await self.notifier.send_reminder(internship, responsible, now)

            await repository.record_reminder(
                db,
                internship_id,
                now,
                recipient=outcome.recipient,
                detail=outcome.describe(REMINDER_DETAIL),
            )

        logger.info(f"Sent end reminder for internship {internship_id}")
        return "reminded"

    def _log_failure(self, message: str, error: Exception) -> None:
        if _is_connection_error(error):
            logger.warning(f"{message}: database connection error: {error}")
        else:
            logger.error(f"{message}: {error}", exc_info=True)

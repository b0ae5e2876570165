"""
Background Job Scheduler

Scheduled task execution using APScheduler with AsyncIO support.

Design Principles:
- The scheduler is an explicit object with its own start/stop lifecycle
- Jobs registered before start() are added when the scheduler starts
- Failed jobs are logged but don't crash the scheduler
- Jobs can be triggered manually for testing
- Only one instance of each job runs at a time within the process

Usage:
    scheduler = JobScheduler()
    watcher.register(scheduler)

    # In FastAPI lifespan:
    scheduler.start()
    yield
    scheduler.stop()
"""

import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Coroutine[Any, Any, Any]]


class SchedulerConfig:
    """Configuration for the background scheduler."""

    TIMEZONE = "UTC"

    JOB_COALESCE = True  # Combine multiple missed executions into one
    JOB_MAX_INSTANCES = 1  # Only one instance of each job can run at a time
    JOB_MISFIRE_GRACE_TIME = 60 * 5  # 5 minutes grace time for missed jobs

    JOB_DEFAULTS = {
        "coalesce": JOB_COALESCE,
        "max_instances": JOB_MAX_INSTANCES,
        "misfire_grace_time": JOB_MISFIRE_GRACE_TIME,
    }


@dataclass
class RegisteredJob:
    job_id: str
    func: JobFunc
    trigger: BaseTrigger


def _job_listener(event: JobExecutionEvent) -> None:
    """Log job execution results."""
    if event.exception:
        logger.error(
            f"Job {event.job_id} failed with exception: {event.exception}",
            exc_info=event.exception,
        )
    else:
        logger.info(f"Job {event.job_id} executed successfully at {datetime.now(UTC).isoformat()}")


class JobScheduler:
    """Owns an AsyncIOScheduler and the registry of application jobs."""

    def __init__(self, timezone: str = SchedulerConfig.TIMEZONE):
        self.timezone = timezone
        self._scheduler: AsyncIOScheduler | None = None
        self._registry: dict[str, RegisteredJob] = {}

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def register_job(
        self,
        job_id: str,
        func: JobFunc,
        trigger: BaseTrigger,
        replace_existing: bool = True,
    ) -> None:
        """
        Register a job.

        Jobs registered before start() are scheduled when it runs; jobs
        registered later are scheduled immediately.

        Args:
            job_id: Unique identifier for the job
            func: Async function to execute
            trigger: APScheduler trigger (CronTrigger, IntervalTrigger, etc.)
            replace_existing: Whether to replace an existing job with the same ID
        """
        self._registry[job_id] = RegisteredJob(job_id=job_id, func=func, trigger=trigger)

        if self._scheduler is None:
            logger.debug(f"Scheduler not started, job {job_id} will be added on start")
            return

        self._scheduler.add_job(
            func, trigger=trigger, id=job_id, replace_existing=replace_existing
        )
        logger.info(f"Registered job: {job_id}")

    def start(self) -> None:
        """
        Start the scheduler and add every registered job.

        Must be called from within a running event loop.
        """
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Initializing background job scheduler...")

        self._scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults=SchedulerConfig.JOB_DEFAULTS,
        )
        self._scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

        for job in self._registry.values():
            self._scheduler.add_job(
                job.func, trigger=job.trigger, id=job.job_id, replace_existing=True
            )
            logger.info(f"Registered job: {job.job_id}")

        self._scheduler.start()
        logger.info(f"Background job scheduler started with {len(self._registry)} jobs")

    def stop(self) -> None:
        """Stop the scheduler, waiting for running jobs to finish."""
        if not self.running:
            logger.debug("Scheduler not running, nothing to stop")
            return

        logger.info("Stopping background job scheduler...")
        self._scheduler.shutdown(wait=True)
        self._scheduler = None
        logger.info("Background job scheduler stopped")

    async def trigger_job_manually(self, job_id: str) -> dict[str, Any]:
        """
        Run a registered job now, bypassing its schedule.

        Returns:
            Dict with job_id, status ("success" or "error"), executed_at,
            the job's return value as result, and error if it failed

        Raises:
            ValueError: If job_id is not registered
        """
        if job_id not in self._registry:
            raise ValueError(
                f"Job {job_id} not found in registry. Available jobs: {list(self._registry)}"
            )

        executed_at = datetime.now(UTC)
        logger.info(f"Manually triggering job: {job_id}")

        try:
            result = await self._registry[job_id].func()
            logger.info(f"Manual execution of job {job_id} completed successfully")
            return {
                "job_id": job_id,
                "status": "success",
                "executed_at": executed_at.isoformat(),
                "result": result,
            }
        except Exception as e:
            logger.error(f"Manual execution of job {job_id} failed: {e}", exc_info=True)
            return {
                "job_id": job_id,
                "status": "error",
                "executed_at": executed_at.isoformat(),
                "error": str(e),
            }

    def list_jobs(self) -> list[dict[str, Any]]:
        """List registered jobs with their next run time and pause state."""
        jobs = []

        for job_id in self._registry:
            job_info: dict[str, Any] = {"job_id": job_id, "registered": True}

            scheduled = self._scheduler.get_job(job_id) if self._scheduler else None
            if scheduled:
                job_info["next_run_time"] = (
                    scheduled.next_run_time.isoformat() if scheduled.next_run_time else None
                )
                job_info["is_paused"] = scheduled.next_run_time is None
            else:
                job_info["next_run_time"] = None
                job_info["is_paused"] = True

            jobs.append(job_info)

        return jobs

    def pause_job(self, job_id: str) -> bool:
        """Pause a scheduled job. Returns False if it is not scheduled."""
        if self._scheduler is None or self._scheduler.get_job(job_id) is None:
            logger.warning(f"Job not found for pausing: {job_id}")
            return False

        self._scheduler.pause_job(job_id)
        logger.info(f"Paused job: {job_id}")
        return True

    def resume_job(self, job_id: str) -> bool:
        """Resume a paused job. Returns False if it is not scheduled."""
        if self._scheduler is None or self._scheduler.get_job(job_id) is None:
            logger.warning(f"Job not found for resuming: {job_id}")
            return False

        self._scheduler.resume_job(job_id)
        logger.info(f"Resumed job: {job_id}")
        return True

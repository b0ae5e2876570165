"""
Internships API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- Background job scheduler and the internship expiration watcher
- CORS middleware
- Validation error format
- API routing
- Health check endpoints
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import api_router
from app.core.config import settings
from app.core.database import async_session_maker, check_database_connection, close_db, init_db
from app.core.email import get_email_provider
from app.core.redis import close_redis, init_redis
from app.core.scheduler import JobScheduler
from app.modules.internships.jobs import ExpirationWatcher
from app.modules.internships.notifications import InternshipNotifier


def build_expiration_watcher() -> ExpirationWatcher:
    """Create the watcher from settings."""
    notifier = InternshipNotifier(
        email_provider=get_email_provider(),
        frontend_url=settings.frontend_url,
        confirm_path=settings.internship_confirm_path,
    )
    return ExpirationWatcher(
        session_maker=async_session_maker,
        notifier=notifier,
        liveness_check=check_database_connection,
        horizon_hours=settings.internship_reminder_horizon_hours,
        dedup_hours=settings.internship_reminder_dedup_hours,
        cron=settings.internship_watcher_cron,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Redis connection
    - Database connection
    - Background job scheduler
    """
    print(f"Starting Internships API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    scheduler = JobScheduler()
    app.state.scheduler = scheduler

    if settings.watcher_active:
        try:
            build_expiration_watcher().register(scheduler)
            scheduler.start()
            print("[OK] Background scheduler started")
        except Exception as e:
            print(f"[FAIL] Background scheduler failed to start: {e}")
            if settings.is_production:
                raise
    else:
        print("[SKIP] Internship expiration watcher disabled")

    yield

    print("Shutting down Internships API...")

    # Stop the scheduler first (wait for running jobs)
    scheduler.stop()
    print("[OK] Background scheduler stopped")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Internships API",
    description="Supervised internship lifecycle: scheduling, confirmation and reminders",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request validation failures as VALIDATION_ERROR with a field map."""
    issues: dict[str, list[str]] = {}
    for error in exc.errors():
        # Drop the location prefix ("body", "query", "path")
        loc = [str(part) for part in error.get("loc", ())[1:]]
        field = ".".join(loc) or "_root"
        issues.setdefault(field, []).append(error.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "error": "VALIDATION_ERROR",
                "message": "Request validation failed.",
                "issues": issues,
            }
        },
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Internships API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check: the database must answer."""
    if not await check_database_connection():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "DATABASE_UNAVAILABLE", "message": "Database is not reachable."},
        )
    return {"status": "ready"}


# ============================================
# Background Job Debug Endpoints
# ============================================
# Manual control of background jobs, only exposed in development.


def _get_scheduler(request: Request) -> JobScheduler:
    if not settings.is_development:
        raise HTTPException(status_code=404, detail="Not Found")
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")
    return scheduler


@app.get("/debug/jobs", tags=["Debug"])
async def list_jobs(request: Request):
    """List registered background jobs with next run time and pause state."""
    return {"jobs": _get_scheduler(request).list_jobs()}


@app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
async def trigger_job(job_id: str, request: Request):
    """
    Run a background job immediately, bypassing its schedule.

    Available jobs:
        - internships_expiration_watcher
    """
    try:
        return await _get_scheduler(request).trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/debug/jobs/{job_id}/pause", tags=["Debug"])
async def pause_job_endpoint(job_id: str, request: Request):
    """Pause a scheduled job; it stays registered."""
    return {"job_id": job_id, "paused": _get_scheduler(request).pause_job(job_id)}


@app.post("/debug/jobs/{job_id}/resume", tags=["Debug"])
async def resume_job_endpoint(job_id: str, request: Request):
    """Resume a paused job."""
    return {"job_id": job_id, "resumed": _get_scheduler(request).resume_job(job_id)}

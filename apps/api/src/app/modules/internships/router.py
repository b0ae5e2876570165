"""
Internships Public and Student Router

Endpoints:
- POST /internships/confirmations/{token} - Confirm a convocation (public)
- GET /me/enrollments/{enrollment_id}/internships - Student's internships
- GET /me/internships/{internship_id} - One of the student's internships

Security:
- Confirmation is unauthenticated and rate limited per IP
- Unknown and already-used tokens are reported the same way
- Student endpoints only return the caller's own internships
"""

import logging
from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.rate_limit import rate_limit
from app.modules.internships import service
from app.modules.internships.schemas import (
    ConfirmationAudit,
    InternshipCollectionResponse,
    InternshipResponse,
)
from app.modules.internships.service import InternshipServiceError

logger = logging.getLogger(__name__)

router = APIRouter()

TOKEN_PATTERN = r"^[0-9a-f]{64}$"

# Public confirmation: 20 attempts per minute per IP
RATE_LIMIT_CONFIRM = (20, 60)


# ============================================
# Error translation (shared with admin_router)
# ============================================


def raise_service_error(e: InternshipServiceError) -> NoReturn:
    """Convert a service error to an HTTPException."""
    detail: dict = {"error": e.error_code, "message": e.message}
    if e.issues:
        detail["issues"] = e.issues
    raise HTTPException(status_code=e.status_code, detail=detail) from e


def raise_unexpected_error(error_code: str, e: Exception) -> NoReturn:
    """500 response carrying the underlying message for operators."""
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": error_code,
            "message": "An unexpected error occurred.",
            "cause": str(e),
        },
    ) from e


# ============================================
# Public confirmation
# ============================================


@router.post(
    "/internships/confirmations/{token}",
    response_model=InternshipResponse,
    summary="Confirm Internship",
    description="""
Confirm receipt of an internship convocation using the token from the email.

Confirming an already-confirmed token returns the stored confirmation
unchanged. The token is never included in the response.

Device metadata in the body is optional. When `ip` or `user_agent` are not
supplied they are taken from the request.
""",
    responses={
        400: {"description": "Malformed token or metadata"},
        404: {"description": "Invalid confirmation token"},
        429: {"description": "Too many attempts"},
    },
)
@rate_limit(*RATE_LIMIT_CONFIRM)
async def confirm_internship(
    request: Request,
    token: str = Path(..., pattern=TOKEN_PATTERN, description="Confirmation token"),
    audit: ConfirmationAudit | None = Body(None),
    db: AsyncSession = Depends(get_db),
) -> InternshipResponse:
    audit = audit or ConfirmationAudit()
    if audit.ip is None and request.client:
        audit.ip = request.client.host
    if audit.user_agent is None:
        audit.user_agent = request.headers.get("user-agent")

    try:
        return await service.confirm_internship(db, token, audit)
    except InternshipServiceError as e:
        logger.info(f"Confirmation rejected: {e.error_code}")
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error confirming internship: {e}")
        raise_unexpected_error("ESTAGIO_CONFIRM_ERROR", e)


# ============================================
# Student endpoints
# ============================================


@router.get(
    "/me/enrollments/{enrollment_id}/internships",
    response_model=InternshipCollectionResponse,
    summary="List My Internships",
    responses={403: {"description": "Enrollment does not belong to the caller"}},
)
async def list_my_internships(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> InternshipCollectionResponse:
    try:
        internships = await service.list_for_student(db, enrollment_id, user.id)
        return InternshipCollectionResponse(data=internships)
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error listing internships for student: {e}")
        raise_unexpected_error("ESTAGIO_LIST_ERROR", e)


@router.get(
    "/me/internships/{internship_id}",
    response_model=InternshipResponse,
    summary="Get My Internship",
    responses={
        403: {"description": "Internship belongs to another student"},
        404: {"description": "Internship not found"},
    },
)
async def get_my_internship(
    internship_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> InternshipResponse:
    try:
        return await service.get_internship(db, internship_id, requester_id=user.id)
    except InternshipServiceError as e:
        raise_service_error(e)
    except Exception as e:
        logger.exception(f"Error getting internship: {e}")
        raise_unexpected_error("ESTAGIO_GET_ERROR", e)

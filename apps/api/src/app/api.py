from fastapi import APIRouter

from app.modules.internships import admin_router as internships_admin_router
from app.modules.internships import router as internships_router

api_router = APIRouter()

api_router.include_router(internships_router, tags=["Internships"])

api_router.include_router(internships_admin_router, tags=["Admin - Internships"])

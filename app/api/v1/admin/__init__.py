"""Admin API (ADMIN only)."""
from fastapi import APIRouter
from app.api.v1.admin import jobs as admin_jobs

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_jobs.router, prefix="/jobs", tags=["admin-jobs"])

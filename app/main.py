"""
Attendance and leave management backend - main application entry point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import OperationalError

from app.api.router import api_router
from app.core.config import settings
from app.core.errors import (
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from app.core.logging import setup_logging
from app.db.session import SessionLocal, create_sqlite_schema
from app.models.employee import Employee, Role

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return url
    if parsed.password:
        netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))
    return url


app = FastAPI(
    title="Attendance & Leave Backend",
    description="Punch in/out, breaks, auto-logout and leave management",
    version=settings.VERSION or "1.0.0"
)

# Configure CORS - must be before other middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=settings.ALLOWED_ORIGINS != "*",
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL and timezone at startup so they can be verified against Alembic."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))
    logger.info("Organisation timezone: %s (storage is UTC)", settings.APP_TIMEZONE)
    create_sqlite_schema()


@app.on_event("startup")
def bootstrap_initial_admin() -> None:
    """
    Create the initial admin (ADM-001) if no ADMIN employee exists.
    This ensures the system always has at least one admin user.
    """
    db = SessionLocal()
    try:
        if db.query(Employee.id).filter(Employee.role == Role.ADMIN.value).first():
            logger.info("Admin user already exists, skipping initial bootstrap")
            return

        db.add(Employee(
            emp_code="ADM-001",
            email=settings.INITIAL_ADMIN_EMAIL,
            name="System Administrator",
            role=Role.ADMIN.value,
            active=True,
        ))
        db.commit()
        logger.info("Initial admin user created: ADM-001 <%s>", settings.INITIAL_ADMIN_EMAIL)
    except OperationalError as e:
        db.rollback()
        # Tables may not exist before the first `alembic upgrade head`
        if "no such table" in str(e).lower() or "does not exist" in str(e).lower():
            logger.warning("Database tables not ready yet, skipping initial bootstrap")
        else:
            logger.error("Database error during admin bootstrap: %s", e)
    finally:
        db.close()

"""
Central error handling: engine results to HTTP status, and the JSON error body
"""
import logging
import traceback

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import EngineResult, ErrorKind

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.ALREADY_PUNCHED_IN: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_COMPLETED: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_PUNCHED_OUT: status.HTTP_409_CONFLICT,
    ErrorKind.BREAK_IN_PROGRESS: status.HTTP_409_CONFLICT,
    ErrorKind.NO_ACTIVE_BREAK: status.HTTP_409_CONFLICT,
    ErrorKind.NO_PUNCH_IN: status.HTTP_409_CONFLICT,
    ErrorKind.ATTENDANCE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_PROCESSED: status.HTTP_409_CONFLICT,
    ErrorKind.SYSTEM_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(kind: ErrorKind) -> int:
    """Validation and policy rejections not listed above are 400."""
    return ERROR_STATUS.get(kind, status.HTTP_400_BAD_REQUEST)


def raise_for_result(result: EngineResult) -> EngineResult:
    """Return a successful result unchanged; raise HTTPException for a failed one."""
    if result.success:
        return result
    if result.error is None:
        # skipped operations (e.g. quota reset on a date other than Dec 31)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    raise HTTPException(status_code=status_for(result.error), detail=result.message)


def _error_body(request: Request, status_code: int, detail, **extra) -> dict:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": str(request.url.path),
    }
    body.update(extra)
    return body


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(request, 422, "Validation error: Invalid request data"),
        )

    # ctx may hold exception instances (e.g. ValueError from a validator); stringify them
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (v if isinstance(v, (str, int, float, bool, type(None))) else str(v))
                for k, v in err["ctx"].items()
            }
        err.pop("url", None)
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, 422, "Validation error", errors=errors),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, 500, "Internal server error"),
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request,
            500,
            str(exc),
            traceback=traceback.format_exc() if settings.APP_ENV == "local" else None,
        ),
    )

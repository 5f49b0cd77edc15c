"""
Application-wide exception handlers.

Every error leaves the API as `{"success": false, "message": ..., "error": ...}`.
Request validation failures are reported as 400 rather than FastAPI's 422.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class IDGenerationError(Exception):
    """No free human-readable code could be allocated after several attempts."""


def _format_validation_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        errors.append(
            {
                "field": ".".join(location),
                "message": str(error.get("msg", "Invalid value")).removeprefix(
                    "Value error, "
                ),
            }
        )
    return errors


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = _format_validation_errors(exc)
    message = errors[0]["message"] if len(errors) == 1 else "Validation failed"
    logger.info(f"Validation failed on {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message, "errors": errors},
    )


async def id_generation_exception_handler(request: Request, exc: IDGenerationError):
    logger.error(f"Code allocation failed on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"success": False, "message": str(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True
    )
    # Outside DEBUG only the exception type leaves the service
    error = str(exc) if settings.DEBUG else type(exc).__name__
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Server error", "error": error},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IDGenerationError, id_generation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

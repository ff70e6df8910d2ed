"""
Global exception handlers
"""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.constants.messages import MessageConstants
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTPException as the standard failure envelope"""
    if isinstance(exc.detail, str):
        content = {"success": False, "message": exc.detail}
    else:
        content = {"success": False, "message": MessageConstants.REQUEST_FAILED, "error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Query/path validation failures are client errors (400)"""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or None,
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    logger.warning("Validation error on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": MessageConstants.INVALID_REQUEST_PARAMETERS,
            "errors": errors,
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    content = {"success": False, "message": MessageConstants.INTERNAL_SERVER_ERROR}
    if settings.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)

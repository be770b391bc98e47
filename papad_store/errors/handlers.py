"""Error handlers for the application

Every error leaves the API as ``{"error": <message>, ...}``.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from papad_store.core.config import settings

logger = logging.getLogger(__name__)


def _internal_message(exc: Exception) -> str:
    if settings.is_production:
        return "Internal server error"
    return str(exc) or exc.__class__.__name__


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handle raised HTTP exceptions, including the custom ones in errors.exceptions
    """
    content = {"error": exc.detail}
    content.update(getattr(exc, "extra", None) or {})

    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.url}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors
    """
    details = []
    for error in exc.errors():
        field = ".".join(str(x) for x in error["loc"] if x != "body")
        message = error["msg"].removeprefix("Value error, ")
        details.append(f"{field}: {message}" if field else message)

    logger.warning(f"Validation error on {request.url}: {details}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "details": details
        }
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """
    Handle SQLAlchemy database errors
    """
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error on {request.url}: {exc.orig}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"error": "Resource already exists"}
        )

    logger.error(f"Database error on {request.url}: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": _internal_message(exc)}
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle general exceptions
    """
    logger.error(f"Unhandled exception on {request.url}: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": _internal_message(exc)}
    )

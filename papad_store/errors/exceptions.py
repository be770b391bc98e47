"""Custom exceptions for error handling"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BaseHTTPException(HTTPException):
    """Base exception class for all custom HTTP exceptions

    ``extra`` holds additional top-level fields rendered next to ``error``
    in the JSON body (e.g. ``remainingAttempts``).
    """
    extra: Dict[str, Any] = {}

    def __init__(
        self,
        detail: str = None,
        headers: dict = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.detail,
            headers=headers
        )
        self.extra = dict(extra or self.extra)


class BadRequestException(BaseHTTPException):
    """400 Bad Request"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request"


class UnauthorizedException(BaseHTTPException):
    """401 Unauthorized"""
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"

    def __init__(self, detail: str = None):
        super().__init__(
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class ForbiddenException(BaseHTTPException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Insufficient permissions"


class NotFoundException(BaseHTTPException):
    """404 Not Found"""
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"


class ConflictException(BaseHTTPException):
    """409 Conflict"""
    status_code = status.HTTP_409_CONFLICT
    detail = "Resource already exists"


class TooManyRequestsException(BaseHTTPException):
    """429 Too Many Requests"""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Too many requests"


class InternalServerException(BaseHTTPException):
    """500 Internal Server Error"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"


class EmailDeliveryException(InternalServerException):
    """Transactional email could not be sent"""
    detail = "Failed to send verification email. Please try again."


# ── OTP verification outcomes ─────────────────────────────────────────────────

class OTPInvalidOrExpiredException(BadRequestException):
    """No active OTP for the email"""
    detail = "Invalid or expired OTP. Please request a new one."


class OTPIncorrectException(BadRequestException):
    """Submitted code did not match"""
    detail = "Invalid OTP. Please try again."

    def __init__(self, remaining_attempts: int):
        super().__init__(extra={"remainingAttempts": remaining_attempts})
        self.remaining_attempts = remaining_attempts


class OTPAttemptsExceededException(TooManyRequestsException):
    """Attempt cap reached; the OTP has been burned"""
    detail = "Too many verification attempts. Please request a new OTP."

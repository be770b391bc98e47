"""Error handling module"""
from papad_store.errors.exceptions import (
    BaseHTTPException,
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    TooManyRequestsException,
    InternalServerException,
    EmailDeliveryException,
    OTPInvalidOrExpiredException,
    OTPIncorrectException,
    OTPAttemptsExceededException,
)

__all__ = [
    "BaseHTTPException",
    "BadRequestException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "TooManyRequestsException",
    "InternalServerException",
    "EmailDeliveryException",
    "OTPInvalidOrExpiredException",
    "OTPIncorrectException",
    "OTPAttemptsExceededException",
]

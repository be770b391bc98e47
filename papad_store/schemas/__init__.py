"""Pydantic schemas for request/response validation"""
from papad_store.schemas.auth_schemas import (
    RegisterRequest,
    OTPVerifyRequest,
    ResendOTPRequest,
    LoginRequest,
    GoogleAuthRequest,
    ProfileUpdate,
    UserResponse,
    RegisterResponse,
    AuthResponse,
    UserEnvelope,
    ProfileUpdateResponse,
    MessageResponse,
)

__all__ = [
    "RegisterRequest",
    "OTPVerifyRequest",
    "ResendOTPRequest",
    "LoginRequest",
    "GoogleAuthRequest",
    "ProfileUpdate",
    "UserResponse",
    "RegisterResponse",
    "AuthResponse",
    "UserEnvelope",
    "ProfileUpdateResponse",
    "MessageResponse",
]

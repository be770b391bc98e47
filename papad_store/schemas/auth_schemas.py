"""Authentication and user schemas

JSON bodies use camelCase keys (``accessToken``, ``isVerified`` ...) while the
Python attributes stay snake_case.
"""
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional
from datetime import datetime
import re

from papad_store.core.config import settings
from papad_store.models.user import UserRole

PROFILE_PICTURE_RE = re.compile(r"^https?://.+\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name is required")
    if len(v) > 50:
        raise ValueError("Name cannot exceed 50 characters")
    return v


def _clean_email(v: str) -> str:
    return v.strip().lower()


Name = Annotated[str, AfterValidator(_clean_name)]
NormalizedEmail = Annotated[EmailStr, AfterValidator(_clean_email)]


class RegisterRequest(CamelModel):
    """Schema for starting a registration"""
    name: Name
    email: NormalizedEmail
    password: str = Field(..., max_length=72)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength"""
        if len(v) < 8:
            raise ValueError('Password must be at least 8 characters long')
        if not any(char.isdigit() for char in v):
            raise ValueError('Password must contain at least one number')
        if not any(char.isupper() for char in v):
            raise ValueError('Password must contain at least one uppercase letter')
        if not any(char.islower() for char in v):
            raise ValueError('Password must contain at least one lowercase letter')
        return v


class OTPVerifyRequest(CamelModel):
    """Schema for submitting the emailed code"""
    email: NormalizedEmail
    otp: str

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v: str) -> str:
        v = v.strip()
        if len(v) != settings.OTP_LENGTH or not v.isdigit():
            raise ValueError(f"OTP must be a {settings.OTP_LENGTH}-digit number")
        return v


class ResendOTPRequest(CamelModel):
    email: NormalizedEmail


class LoginRequest(CamelModel):
    """Schema for login request"""
    email: NormalizedEmail
    password: str = Field(..., min_length=1)


class GoogleAuthRequest(CamelModel):
    """Schema for Google Sign-In via ID token from frontend"""
    credential: str = Field(..., min_length=1, description="Google ID token from the Sign-In button")


class ProfileUpdate(CamelModel):
    """Partial update of the current user's profile"""
    name: Optional[Name] = None
    profile_picture: Optional[str] = None

    @field_validator("profile_picture")
    @classmethod
    def validate_profile_picture(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not PROFILE_PICTURE_RE.match(v):
            raise ValueError("Profile picture must be a valid image URL")
        return v


class UserResponse(CamelModel):
    """Public view of a user; never includes the password hash"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole
    is_verified: bool
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RegisterResponse(CamelModel):
    message: str
    email: str
    expires_in: int = Field(..., description="OTP lifetime in minutes")


class AuthResponse(CamelModel):
    """Returned whenever a token pair is issued; the refresh token travels only as a cookie"""
    message: str
    user: UserResponse
    access_token: str


class UserEnvelope(CamelModel):
    user: UserResponse


class ProfileUpdateResponse(CamelModel):
    message: str
    user: UserResponse


class MessageResponse(CamelModel):
    message: str

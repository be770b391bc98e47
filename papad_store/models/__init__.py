"""Database models"""
from papad_store.models.user import User, UserRole
from papad_store.models.otp import OTP

__all__ = ["User", "UserRole", "OTP"]

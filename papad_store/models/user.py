"""User model with role-based access control"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from enum import Enum
from papad_store.db.base import Base


class UserRole(str, Enum):
    """User role enumeration"""
    ADMIN = "admin"
    CUSTOMER = "customer"


class User(Base):
    """
    Storefront account.

    Rows start unverified at registration and flip to verified once the emailed
    OTP is confirmed. An unverified row is replaced wholesale if the same email
    registers again.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    role = Column(
        SQLEnum(UserRole, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=UserRole.CUSTOMER,
        index=True,
    )
    is_verified = Column(Boolean, default=False, nullable=False)
    profile_picture = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles

"""OTP — hashed one-time codes that prove ownership of a registration email."""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.sql import func

from papad_store.db.base import Base


class OTP(Base):
    """
    Holds a bcrypt hash of the code emailed to a user during registration.

    Lifecycle
    ---------
    1. User registers (or asks for a resend) → row inserted (used=False).
    2. Wrong code submitted → attempts += 1.
    3. Right code, or any call once attempts hit the cap → used=True.
    4. Used / expired rows for the email are deleted after a successful verify.
    """

    __tablename__ = "otps"
    __table_args__ = (
        Index("ix_otps_email_used_expires", "user_email", "used", "expires_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String(255), nullable=False, index=True)
    code_hash = Column(String(255), nullable=False)

    # Naive UTC
    expires_at = Column(DateTime(timezone=False), nullable=False, index=True)
    used = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(
        DateTime(timezone=False), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<OTP(id={self.id}, user_email={self.user_email!r}, "
            f"expires_at={self.expires_at}, used={self.used}, attempts={self.attempts})>"
        )

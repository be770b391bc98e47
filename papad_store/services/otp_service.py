"""One-time verification codes for email ownership.

Codes are numeric, emailed in plain text and stored only as bcrypt hashes.
A verification call only ever looks at the newest active (unused, unexpired)
row for an email and is capped at ``OTP_MAX_ATTEMPTS`` wrong guesses.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import logging
import secrets
import string

from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from papad_store.core.config import settings
from papad_store.errors.exceptions import (
    OTPAttemptsExceededException,
    OTPIncorrectException,
    OTPInvalidOrExpiredException,
)
from papad_store.models.otp import OTP

logger = logging.getLogger(__name__)

otp_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.OTP_HASH_ROUNDS,
)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the OTP table's column type."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_otp(length: Optional[int] = None) -> str:
    """Return a numeric OTP drawn from the OS CSPRNG."""
    length = length or settings.OTP_LENGTH
    return "".join(secrets.choice(string.digits) for _ in range(length))


def hash_otp(code: str) -> str:
    return otp_context.hash(code)


def verify_otp_hash(code: str, code_hash: str) -> bool:
    if not code or not code_hash:
        return False
    return otp_context.verify(code, code_hash)


def generate_expiry_date(minutes: Optional[int] = None) -> datetime:
    return utcnow() + timedelta(minutes=minutes or settings.OTP_EXPIRE_MINUTES)


def get_active_otp(db: Session, email: str) -> Optional[OTP]:
    """Latest unused, unexpired OTP for *email*, or None."""
    return (
        db.query(OTP)
        .filter(
            OTP.user_email == email,
            OTP.used == False,  # noqa: E712
            OTP.expires_at > utcnow(),
        )
        .order_by(OTP.created_at.desc(), OTP.id.desc())
        .first()
    )


def build_otp(email: str) -> Tuple[str, OTP]:
    """
    Create (but do not persist) a fresh OTP row for *email*.

    Returns the plain-text code alongside the row; the code is never stored.
    """
    code = generate_otp()
    otp_row = OTP(
        user_email=email,
        code_hash=hash_otp(code),
        expires_at=generate_expiry_date(),
        used=False,
        attempts=0,
    )
    return code, otp_row


def issue_otp(db: Session, email: str) -> Tuple[str, OTP]:
    """
    Invalidate any active OTPs for *email*, persist a new one and return
    ``(plain_code, row)`` so only the latest code is accepted.
    """
    db.query(OTP).filter(
        OTP.user_email == email,
        OTP.used == False,  # noqa: E712
    ).update({OTP.used: True}, synchronize_session=False)

    code, otp_row = build_otp(email)
    db.add(otp_row)
    db.commit()
    db.refresh(otp_row)
    return code, otp_row


def verify_otp(db: Session, email: str, code: str) -> OTP:
    """
    Check *code* against the active OTP for *email*.

    The attempt cap is enforced before the comparison: once a row has
    accumulated ``OTP_MAX_ATTEMPTS`` wrong guesses, the next call burns it and
    fails even when the submitted code is right.

    On success the row is marked used but NOT committed; the caller commits it
    together with the user's verification flag.

    Raises
    ------
    OTPInvalidOrExpiredException  no active OTP
    OTPAttemptsExceededException  attempt cap reached (row burned)
    OTPIncorrectException         wrong code (attempt recorded)
    """
    otp_row = get_active_otp(db, email)
    if otp_row is None:
        raise OTPInvalidOrExpiredException()

    max_attempts = settings.OTP_MAX_ATTEMPTS

    if otp_row.attempts >= max_attempts:
        otp_row.used = True
        db.commit()
        logger.warning(f"[OTP] Attempt cap reached for {email}; code burned")
        raise OTPAttemptsExceededException()

    if not verify_otp_hash(code.strip(), otp_row.code_hash):
        # Atomic increment so concurrent guesses cannot share one attempt slot
        db.query(OTP).filter(OTP.id == otp_row.id).update(
            {OTP.attempts: OTP.attempts + 1}, synchronize_session=False
        )
        db.commit()
        db.refresh(otp_row)
        remaining = max(0, max_attempts - otp_row.attempts)
        logger.info(f"[OTP] Incorrect code for {email}; {remaining} attempts left")
        raise OTPIncorrectException(remaining_attempts=remaining)

    otp_row.used = True
    return otp_row


def cleanup_otps(db: Session, email: str) -> int:
    """
    Delete used or expired OTP rows for *email*.

    Best effort: failures are logged and rolled back, never raised.
    """
    try:
        deleted = (
            db.query(OTP)
            .filter(
                OTP.user_email == email,
                or_(OTP.used == True, OTP.expires_at < utcnow()),  # noqa: E712
            )
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(f"[OTP] Cleanup failed for {email}: {exc}")
        return 0


def delete_otps_for_email(db: Session, email: str) -> None:
    """Remove every OTP row for *email* (re-registration and rollback paths)."""
    db.query(OTP).filter(OTP.user_email == email).delete(synchronize_session=False)

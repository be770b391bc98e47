"""Authentication service with password hashing and account management"""
from typing import Optional, Tuple
import logging
import re
import secrets
from urllib.parse import urlparse

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from papad_store.core.config import settings
from papad_store.models.otp import OTP
from papad_store.models.user import User, UserRole
from papad_store.schemas.auth_schemas import RegisterRequest
from papad_store.services.otp_service import build_otp, delete_otps_for_email

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_SALT_ROUNDS
)

GOOGLE_PICTURE_HOSTS = (
    "lh3.googleusercontent.com",
    "lh4.googleusercontent.com",
    "lh5.googleusercontent.com",
    "lh6.googleusercontent.com",
    "graph.google.com",
    "googleusercontent.com",
)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Get user by email
    """
    return db.query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """
    Get user by ID
    """
    return db.query(User).filter(User.id == user_id).first()


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Return the user whose credentials match, or None.

    Verification state is not checked here; callers decide how to report it.
    """
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def remove_unverified_user(db: Session, email: str) -> None:
    """
    Delete an unverified account and all of its OTPs so the email can
    register again. Does not commit.
    """
    db.query(User).filter(
        User.email == email,
        User.is_verified == False,  # noqa: E712
    ).delete(synchronize_session=False)
    delete_otps_for_email(db, email)


def create_pending_registration(db: Session, data: RegisterRequest) -> Tuple[User, OTP, str]:
    """
    Persist an unverified customer together with its first OTP.

    Any earlier unverified account for the same email is replaced. Returns
    ``(user, otp_row, plain_code)``; the caller emails the code.
    """
    remove_unverified_user(db, data.email)

    user = User(
        name=data.name,
        email=data.email,
        password_hash=get_password_hash(data.password),
        role=UserRole.CUSTOMER,
        is_verified=False,
    )
    code, otp_row = build_otp(data.email)

    db.add(user)
    db.add(otp_row)
    db.commit()
    db.refresh(user)
    db.refresh(otp_row)
    return user, otp_row, code


def discard_pending_registration(db: Session, email: str) -> None:
    """Compensating cleanup when the verification email could not be sent."""
    try:
        remove_unverified_user(db, email)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"[Register] Could not roll back pending registration for {email}", exc_info=True)
        raise


def normalize_google_picture(picture: Optional[str]) -> Optional[str]:
    """
    Keep only Google-hosted avatars, forced to https and resized to 200px.
    """
    if not picture:
        return None

    try:
        url = urlparse(picture)
    except ValueError:
        logger.warning(f"[Google] Unparseable profile picture URL: {picture!r}")
        return None

    host = (url.hostname or "").lower()
    is_google_host = any(host == d or host.endswith("." + d) for d in GOOGLE_PICTURE_HOSTS)
    if not is_google_host or url.scheme not in ("http", "https"):
        return None

    normalized = "https:" + picture[len(url.scheme) + 1:]
    if "googleusercontent.com" in normalized:
        normalized = re.sub(r"=s\d+.*$", "", normalized)
        normalized += "=s200-c"
    return normalized


def get_or_create_google_user(
    db: Session,
    email: str,
    name: Optional[str],
    picture: Optional[str],
) -> Tuple[User, bool]:
    """
    Find the account for a Google-verified email or create one.

    Google has already proven ownership of the address, so the account is
    marked verified either way. Returns ``(user, created)``.
    """
    email = normalize_email(email)
    picture_url = normalize_google_picture(picture)

    user = get_user_by_email(db, email)
    if user:
        changed = False
        if picture_url and user.profile_picture != picture_url:
            user.profile_picture = picture_url
            changed = True
        if not user.is_verified:
            user.is_verified = True
            changed = True
        if changed:
            db.commit()
            db.refresh(user)
        return user, False

    user = User(
        name=(name or email.split("@")[0])[:50],
        email=email,
        # Unusable for password login unless the user resets it
        password_hash=get_password_hash(secrets.token_urlsafe(32)),
        role=UserRole.CUSTOMER,
        is_verified=True,
        profile_picture=picture_url,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True

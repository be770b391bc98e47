"""JWT access / refresh token issuance and verification"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from papad_store.core.config import settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Base class for every token verification failure"""


class TokenExpiredError(TokenError):
    """Signature is valid but ``exp`` is in the past"""


class TokenTypeError(TokenError):
    """Signature is valid but the token is of the other type"""


class TokenMalformedError(TokenError):
    """Bad signature, undecodable token or missing claims"""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    token_type: str
    email: Optional[str] = None
    role: Optional[str] = None


def _encode(claims: dict, secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def generate_access_token(
    user_id: int, email: str, role: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a short-lived access token carrying id, email and role
    """
    claims = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
    }
    return _encode(
        claims,
        settings.JWT_ACCESS_SECRET,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def generate_refresh_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a long-lived refresh token; it only identifies the user
    """
    claims = {"sub": str(user_id), "type": REFRESH_TOKEN_TYPE}
    return _encode(
        claims,
        settings.JWT_REFRESH_SECRET,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def generate_token_pair(user_id: int, email: str, role: str) -> TokenPair:
    return TokenPair(
        access_token=generate_access_token(user_id, email, role),
        refresh_token=generate_refresh_token(user_id),
    )


def _decode(token: str, secret: str, expected_type: str) -> TokenPayload:
    if not token:
        raise TokenMalformedError("Token is empty")

    try:
        payload = jwt.decode(token, secret, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError(f"{expected_type} token has expired") from exc
    except JWTError as exc:
        raise TokenMalformedError(f"Could not decode {expected_type} token: {exc}") from exc

    token_type = payload.get("type")
    if token_type != expected_type:
        raise TokenTypeError(f"Expected a {expected_type} token, got {token_type!r}")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise TokenMalformedError("Token subject is missing or not a user id") from exc

    return TokenPayload(
        user_id=user_id,
        token_type=token_type,
        email=payload.get("email"),
        role=payload.get("role"),
    )


def verify_access_token(token: str) -> TokenPayload:
    """
    Decode and validate an access token.

    Raises TokenExpiredError, TokenTypeError or TokenMalformedError.
    """
    return _decode(token, settings.JWT_ACCESS_SECRET, ACCESS_TOKEN_TYPE)


def verify_refresh_token(token: str) -> TokenPayload:
    """
    Decode and validate a refresh token.

    Raises TokenExpiredError, TokenTypeError or TokenMalformedError.
    """
    return _decode(token, settings.JWT_REFRESH_SECRET, REFRESH_TOKEN_TYPE)

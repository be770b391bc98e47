"""Authentication endpoints — OTP registration, login and token lifecycle"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import logging

from papad_store.core.config import settings
from papad_store.core.dependencies import get_db
from papad_store.errors.exceptions import (
    BadRequestException,
    ConflictException,
    EmailDeliveryException,
    ForbiddenException,
    NotFoundException,
    OTPAttemptsExceededException,
    OTPIncorrectException,
    UnauthorizedException,
)
from papad_store.models.user import User
from papad_store.schemas.auth_schemas import (
    AuthResponse,
    GoogleAuthRequest,
    LoginRequest,
    MessageResponse,
    OTPVerifyRequest,
    RegisterRequest,
    RegisterResponse,
    ResendOTPRequest,
    UserResponse,
)
from papad_store.services.auth_service import (
    authenticate_user,
    create_pending_registration,
    discard_pending_registration,
    get_or_create_google_user,
    get_user_by_email,
    get_user_by_id,
)
from papad_store.services.otp_service import cleanup_otps, issue_otp, verify_otp
from papad_store.services.token_service import TokenError, generate_token_pair, verify_refresh_token
from papad_store.utils.email import send_otp_email, send_welcome_email
from papad_store.utils.logger import log_auth_event
from google.oauth2 import id_token as google_id_token
from google.auth.transport import requests as google_requests

router = APIRouter()
logger = logging.getLogger(__name__)

REFRESH_COOKIE_MAX_AGE = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60


# ── refresh cookie helpers ────────────────────────────────────────────────────

def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=REFRESH_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def issue_session(response: Response, user: User, message: str) -> AuthResponse:
    """Mint a token pair: refresh token into the cookie, access token into the body."""
    tokens = generate_token_pair(user.id, user.email, user.role.value)
    set_refresh_cookie(response, tokens.refresh_token)
    return AuthResponse(
        message=message,
        user=UserResponse.model_validate(user),
        access_token=tokens.access_token,
    )


def _refresh_failure(status_code: int, message: str) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"error": message})
    clear_refresh_cookie(response)
    return response


# ── registration ──────────────────────────────────────────────────────────────

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """
    ## Register a new customer account (Step 1 of 2)

    **Role:** Public — no authentication required.

    Stores an **unverified** customer and emails a numeric OTP to the address.
    An earlier unverified registration for the same email is replaced.

    ### Required fields (JSON body)
    | Field    | Type   | Description                                  |
    |----------|--------|----------------------------------------------|
    | name     | string | Display name (max 50 characters)             |
    | email    | string | Valid email — OTP is sent here               |
    | password | string | 8+ chars, upper, lower and a digit           |

    ### Response (201)
    `{ "message": "...", "email": "<email>", "expiresIn": <OTP minutes> }`

    ### Errors
    - 400 → validation failed (`details` lists every problem)
    - 409 → a verified account already owns the email
    - 500 → verification email could not be sent (nothing is kept)
    """
    existing = get_user_by_email(db, body.email)
    if existing and existing.is_verified:
        raise ConflictException(detail="User already exists with this email")

    user, _, code = create_pending_registration(db, body)

    if not send_otp_email(to=body.email, otp=code, name=body.name):
        # The discard commit expires ``user`` and deletes its row; use body values only
        discard_pending_registration(db, body.email)
        log_auth_event("REGISTER aborted, OTP email failed", email=body.email)
        raise EmailDeliveryException()

    log_auth_event("REGISTER pending verification", email=user.email, user_id=user.id, level=logging.INFO)

    return RegisterResponse(
        message="Registration initiated. Please check your email for verification code.",
        email=user.email,
        expires_in=settings.OTP_EXPIRE_MINUTES,
    )


@router.post("/verify-otp", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def verify_otp_code(
    body: OTPVerifyRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """
    ## Verify OTP and activate the account (Step 2 of 2)

    **Role:** Public — no authentication required.

    On success the account is marked verified, the code is burned and the
    client is logged in: the access token is returned in the body and the
    refresh token is set as an httpOnly cookie.

    ### Required fields (JSON body)
    | Field | Type   | Description                              |
    |-------|--------|------------------------------------------|
    | email | string | Same email used at registration          |
    | otp   | string | Code from the verification email         |

    ### Errors
    - 400 `{error}` → no active code (wrong email, expired or already used)
    - 400 `{error, remainingAttempts}` → wrong code
    - 429 → too many wrong codes; the code is burned, request a new one
    - 404 → the pending account no longer exists
    """
    try:
        verify_otp(db, body.email, body.otp)
    except OTPIncorrectException as exc:
        log_auth_event(f"OTP incorrect ({exc.remaining_attempts} left)", email=body.email, level=logging.INFO)
        raise
    except OTPAttemptsExceededException:
        log_auth_event("OTP attempts exceeded", email=body.email)
        raise

    user = get_user_by_email(db, body.email)
    if not user:
        db.rollback()
        raise NotFoundException(detail="User not found. Please register again.")

    user.is_verified = True
    db.commit()
    db.refresh(user)

    cleanup_otps(db, body.email)

    background_tasks.add_task(send_welcome_email, user.email, user.name)
    log_auth_event("EMAIL VERIFIED", email=user.email, user_id=user.id)

    return issue_session(response, user, "Email verified successfully")


@router.post("/resend-otp", response_model=RegisterResponse, status_code=status.HTTP_200_OK)
async def resend_otp(body: ResendOTPRequest, db: Session = Depends(get_db)):
    """
    ## Resend the verification code

    Invalidates any previously issued code for the email and sends a new one.
    Only works while the account is still unverified.

    - 404 → no pending registration for the email
    - 409 → account already verified, log in instead
    """
    user = get_user_by_email(db, body.email)
    if not user:
        raise NotFoundException(detail="No pending registration found for this email. Please register first.")
    if user.is_verified:
        raise ConflictException(detail="This account is already verified. Please log in.")

    code, _ = issue_otp(db, user.email)
    if not send_otp_email(to=user.email, otp=code, name=user.name):
        logger.warning(f"[ResendOTP] Email delivery failed for {user.email}")
        raise EmailDeliveryException()

    return RegisterResponse(
        message="A new verification code has been sent to your email.",
        email=user.email,
        expires_in=settings.OTP_EXPIRE_MINUTES,
    )


# ── sessions ──────────────────────────────────────────────────────────────────

@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """
    ## Login with email and password

    **Role:** Public — no authentication required.

    ### Response
    `{ "message": "...", "user": {...}, "accessToken": "<JWT>" }` plus the
    `refreshToken` httpOnly cookie.

    ### Frontend integration
    - Keep `accessToken` in memory/localStorage and send it as
      `Authorization: Bearer <token>`.
    - HTTP 401 → "Invalid email or password".
    - HTTP 403 with `code: EMAIL_NOT_VERIFIED` → route to the OTP screen.
    """
    user = authenticate_user(db, body.email, body.password)
    if not user:
        log_auth_event("LOGIN failed", email=body.email, level=logging.INFO)
        raise UnauthorizedException(detail="Invalid email or password")

    if not user.is_verified:
        raise ForbiddenException(
            detail="Account not verified. Please verify your email first.",
            extra={"code": "EMAIL_NOT_VERIFIED"},
        )

    log_auth_event("LOGIN", email=user.email, user_id=user.id, level=logging.INFO)
    return issue_session(response, user, "Login successful")


@router.post("/refresh", response_model=AuthResponse)
async def refresh_session(request: Request, response: Response, db: Session = Depends(get_db)):
    """
    ## Exchange the refresh cookie for a new token pair

    The refresh token is rotated on every call. Any failure clears the cookie.
    """
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not refresh_token:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Refresh token not found"})

    try:
        payload = verify_refresh_token(refresh_token)
    except TokenError as exc:
        logger.info(f"[Refresh] Rejected refresh token ({exc.__class__.__name__}): {exc}")
        return _refresh_failure(status.HTTP_401_UNAUTHORIZED, "Invalid refresh token")

    user = get_user_by_id(db, payload.user_id)
    if not user:
        return _refresh_failure(status.HTTP_401_UNAUTHORIZED, "User not found")
    if not user.is_verified:
        return _refresh_failure(status.HTTP_403_FORBIDDEN, "Account not verified")

    return issue_session(response, user, "Token refreshed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Clear the refresh cookie. The client drops its access token."""
    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.post("/google", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def google_sign_in(payload: GoogleAuthRequest, response: Response, db: Session = Depends(get_db)):
    """
    ## Sign in / sign up via Google

    **Role:** Public — no authentication required.

    Accepts the Google **ID token** (`credential`) from the Google Sign-In
    button. The token is verified server-side; an existing account with the
    same email is logged in (and marked verified), otherwise a verified
    customer account is created.

    - HTTP 400 → Google Sign-In is not configured, or the token has no email.
    - HTTP 401 → invalid / expired Google token, or email not verified by Google.
    """
    if not settings.GOOGLE_CLIENT_ID:
        raise BadRequestException(detail="Google Sign-In is not configured on this server.")

    try:
        idinfo = google_id_token.verify_oauth2_token(
            payload.credential,
            google_requests.Request(),
            settings.GOOGLE_CLIENT_ID,
        )
    except ValueError as exc:
        raise UnauthorizedException(detail=f"Invalid Google ID token: {exc}")

    email = idinfo.get("email")
    if not email:
        raise BadRequestException(detail="Invalid Google token")
    if not idinfo.get("email_verified", False):
        raise UnauthorizedException(detail="Google account email is not verified.")

    user, created = get_or_create_google_user(
        db,
        email=email,
        name=idinfo.get("name"),
        picture=idinfo.get("picture"),
    )
    log_auth_event(
        "GOOGLE SIGN-UP" if created else "GOOGLE LOGIN",
        email=user.email,
        user_id=user.id,
        level=logging.INFO,
    )

    return issue_session(response, user, "Google login successful")

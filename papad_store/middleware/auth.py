"""Authentication middleware and dependencies

Every protected request decodes the access token and reloads the user from
the database; role checks use the stored role, never the token's claim.
"""
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import Optional
import logging

from papad_store.core.dependencies import get_db
from papad_store.services.auth_service import get_user_by_id
from papad_store.services.token_service import TokenError, TokenPayload, verify_access_token
from papad_store.models.user import User, UserRole
from papad_store.errors.exceptions import UnauthorizedException, ForbiddenException

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

ACCESS_TOKEN_COOKIE = "accessToken"


def get_access_token(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[str]:
    """Bearer header first, then the ``accessToken`` cookie."""
    return token or request.cookies.get(ACCESS_TOKEN_COOKIE)


def decode_request_token(token: Optional[str] = Depends(get_access_token)) -> TokenPayload:
    if not token:
        raise UnauthorizedException(detail="Access token required")

    try:
        return verify_access_token(token)
    except TokenError as exc:
        logger.info(f"[Auth] Rejected access token ({exc.__class__.__name__}): {exc}")
        raise UnauthorizedException(detail="Invalid or expired token")


async def get_current_user(
    token_data: TokenPayload = Depends(decode_request_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current verified user from the access token"""
    user = get_user_by_id(db, user_id=token_data.user_id)

    if user is None:
        raise UnauthorizedException(detail="User not found")

    if not user.is_verified:
        raise ForbiddenException(detail="Account not verified. Please verify your email.")

    return user


def require_role(*roles: UserRole):
    """Dependency to require one of *roles*, checked against the stored user"""
    async def role_checker(
        current_user: User = Depends(get_current_user),
        token_data: TokenPayload = Depends(decode_request_token),
    ) -> User:
        if token_data.role != current_user.role.value:
            logger.warning(
                f"[Auth] Stale role claim for user {current_user.id}: "
                f"token={token_data.role!r} stored={current_user.role.value!r}"
            )
        if not current_user.has_role(*roles):
            raise ForbiddenException(detail="Insufficient permissions")
        return current_user
    return role_checker


require_admin = require_role(UserRole.ADMIN)

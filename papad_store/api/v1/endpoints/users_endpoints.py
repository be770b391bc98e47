"""User profile endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from papad_store.core.dependencies import get_db
from papad_store.errors.exceptions import BadRequestException, NotFoundException
from papad_store.middleware.auth import get_current_user, require_admin
from papad_store.models.user import User
from papad_store.schemas.auth_schemas import (
    ProfileUpdate,
    ProfileUpdateResponse,
    UserEnvelope,
    UserResponse,
)
from papad_store.services.auth_service import get_user_by_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/me", response_model=UserEnvelope)
async def read_current_user(current_user: User = Depends(get_current_user)):
    """
    Return the profile of the logged-in user.

    **Role:** any verified user. The password hash is never part of the response.
    """
    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.put("/me", response_model=ProfileUpdateResponse)
async def update_current_user(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    ## Update own profile

    Only `name` and `profilePicture` can be changed. Send at least one of them;
    an empty `profilePicture` removes the picture.
    """
    provided = body.model_fields_set
    if not provided:
        raise BadRequestException(detail="At least one field must be provided for update")

    if "name" in provided:
        if body.name is None:
            raise BadRequestException(detail="Name cannot be empty")
        current_user.name = body.name

    if "profile_picture" in provided:
        current_user.profile_picture = body.profile_picture

    db.commit()
    db.refresh(current_user)
    logger.info(f"[Users] Profile updated for user {current_user.id}: {sorted(provided)}")

    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(current_user),
    )


@router.get("/{user_id}", response_model=UserEnvelope)
async def read_user(
    user_id: int,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """**Role:** ADMIN only. Look up any account by id."""
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundException(detail="User not found")
    return UserEnvelope(user=UserResponse.model_validate(user))

"""User profile routes. All require an authenticated session."""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_user_repo
from api.models import (
    AvatarRequest,
    AvatarResponse,
    BirthdayResponse,
    MessageResponse,
    ProfileEnvelope,
    ProfileResponse,
    ProfileUpdateRequest,
)
from api.security import get_current_user_required
from domain.model.user import User
from port.user_repository import UserRepository
from services import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["users"],
    dependencies=[Depends(get_current_user_required)],
)


@router.get("/profile", response_model=ProfileEnvelope)
async def get_profile(current_user: User = Depends(get_current_user_required)):
    return ProfileEnvelope(user=ProfileResponse.from_domain(current_user))


@router.put("/profile", response_model=ProfileEnvelope)
async def update_profile(
    request: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    """Update name and/or date of birth. ``dateOfBirth: null`` clears it."""
    kwargs = {}
    if "date_of_birth" in request.model_fields_set:
        kwargs["date_of_birth"] = request.date_of_birth
    user = profile_service.update_profile(repo, current_user.id, name=request.name, **kwargs)
    return ProfileEnvelope(user=ProfileResponse.from_domain(user))


@router.put("/avatar", response_model=AvatarResponse)
async def update_avatar(
    request: AvatarRequest,
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    user = profile_service.update_avatar(repo, current_user.id, request.avatar)
    return AvatarResponse(avatar=user.avatar)


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    current_user: User = Depends(get_current_user_required),
    repo: UserRepository = Depends(get_user_repo),
):
    profile_service.delete_account(repo, current_user.id)
    return MessageResponse(message="Account deleted successfully")


@router.get("/birthday", response_model=BirthdayResponse)
async def get_birthday(current_user: User = Depends(get_current_user_required)):
    result = profile_service.birthday_status(current_user)
    return BirthdayResponse(
        is_birthday=result.is_birthday,
        age=result.age,
        message=result.message,
        date_of_birth=result.date_of_birth,
    )

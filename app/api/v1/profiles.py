"""Profile endpoints: anyone can read, only the owner can update."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.core.config import get_settings
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.profile import ProfileResponse, ProfileUpdateRequest
from app.services.profiles import get_profile, update_profile

router = APIRouter()


@router.get("/{profile_id}", response_model=ProfileResponse)
def read_profile(
    profile_id: uuid.UUID,
    db: Annotated[Session, Depends(get_db)],
) -> ProfileResponse:
    return ProfileResponse.model_validate(get_profile(db, profile_id))


@router.patch("/{profile_id}", response_model=ProfileResponse)
def patch_profile(
    profile_id: uuid.UUID,
    body: ProfileUpdateRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ProfileResponse:
    """Change username and/or avatar_url of the caller's own profile."""
    profile = update_profile(
        db,
        actor_id=user.id,
        profile_id=profile_id,
        settings=get_settings(),
        username=body.username,
        avatar_url=body.avatar_url,
    )
    return ProfileResponse.model_validate(profile)

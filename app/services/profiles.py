"""Profile reads (public) and owner-only updates."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import is_unique_violation
from app.models import Profile
from app.services.provisioning import (
    ConflictError,
    normalize_username,
    placeholder_avatar_url,
    username_taken,
)

if TYPE_CHECKING:
    from app.core.config import Settings


class ProfileNotFoundError(Exception):
    """Raised when no profile exists for the given user id."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PermissionDeniedError(Exception):
    """Raised when the acting user is not allowed to modify the target row."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def get_profile(session: Session, user_id: uuid.UUID) -> Profile:
    profile = session.get(Profile, user_id)
    if profile is None:
        raise ProfileNotFoundError("Profile not found.")
    return profile


def update_profile(
    session: Session,
    actor_id: uuid.UUID,
    profile_id: uuid.UUID,
    settings: Settings,
    username: str | None = None,
    avatar_url: str | None = None,
) -> Profile:
    """
    Update username and/or avatar_url of the actor's own profile, then commit.

    The new username goes through the signup rules (format, case-insensitive
    uniqueness). A blank avatar_url resets to the generated placeholder, and a
    placeholder avatar is regenerated when the username changes.
    """
    profile = get_profile(session, profile_id)
    if profile.id != actor_id:
        raise PermissionDeniedError("Users can only update their own profile.")

    if username is not None:
        new_username = normalize_username({"username": username})
        if username_taken(session, new_username, exclude_user_id=profile.id):
            raise ConflictError("username already exists")
        # A generated avatar follows the name; a custom one is left alone.
        if avatar_url is None and profile.avatar_url == placeholder_avatar_url(
            profile.username, settings
        ):
            profile.avatar_url = placeholder_avatar_url(new_username, settings)
        profile.username = new_username
    if avatar_url is not None:
        profile.avatar_url = avatar_url.strip() or placeholder_avatar_url(
            profile.username, settings
        )

    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if is_unique_violation(e):
            raise ConflictError("username already exists") from e
        raise
    session.refresh(profile)
    return profile

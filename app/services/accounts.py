"""Account creation (the identity side) and login lookups."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import hash_password, verify_password
from app.models import User
from app.schemas.account import SignupResponse
from app.services.provisioning import ConflictError, ProvisioningFailure, provision_user

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def create_account(
    session: Session,
    email: str,
    password: str,
    user_metadata: Mapping[str, Any] | None,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> SignupResponse:
    """
    Insert a User and provision it in the same transaction, then commit.

    Any provisioning failure rolls back the whole transaction, so no account is
    left without its profile. Raises ConflictError for a registered email and
    re-raises provisioning failures unchanged.
    """
    email = email.strip().lower()
    existing = session.execute(select(User.id).where(User.email == email)).first()
    if existing is not None:
        raise ConflictError("email already registered")

    user = User(
        email=email,
        password_hash=hash_password(password),
        user_metadata=dict(user_metadata or {}),
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError as e:
        session.rollback()
        raise ConflictError("email already registered") from e

    try:
        result = provision_user(session, user.id, user.user_metadata, settings, sleep=sleep)
    except ProvisioningFailure as e:
        session.rollback()
        logger.info(
            "Signup rejected",
            extra={"reason": type(e).__name__, "detail": e.message[:200]},
        )
        raise
    except Exception:
        session.rollback()
        raise

    session.commit()
    return SignupResponse(user_id=result.user_id, email=email, profile=result)


def authenticate(session: Session, email: str, password: str) -> User | None:
    """Return the user for valid credentials, else None."""
    user = session.execute(
        select(User).where(User.email == email.strip().lower())
    ).scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user

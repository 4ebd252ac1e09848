"""
Provision a newly created account: profile, welcome balance, ledger entry, notification.

Runs in the caller's transaction right after the User row is flushed, so a
failure here rolls back the account as well. Each attempt runs in its own
SAVEPOINT; an attempt that loses a username race at insert time is retried with
exponential backoff, anything else aborts immediately.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import is_unique_violation
from app.models import (
    WELCOME_BONUS_TYPE,
    Notification,
    Profile,
    Transaction,
    UserBalance,
)
from app.schemas.account import ProvisioningResult

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_-]{3,20}")

WELCOME_TRANSACTION_DESCRIPTION = "Welcome bonus for new user"


class ProvisioningFailure(Exception):
    """Base for every way provisioning can fail."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ProvisioningFailure):
    """Username missing or malformed. Never retried."""


class ConflictError(ProvisioningFailure):
    """Username (or email) already taken when checked. Never retried."""


class UniquenessRace(ProvisioningFailure):
    """Unique violation at insert time: a concurrent signup claimed the key first."""


class ProvisioningError(ProvisioningFailure):
    """Every attempt lost a uniqueness race."""

    def __init__(self, message: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)


class CleanupError(ProvisioningFailure):
    """Compensating delete failed. Logged only; never raised to callers."""


def normalize_username(metadata: Mapping[str, Any]) -> str:
    """Return the trimmed username from signup metadata or raise ValidationError."""
    raw = metadata.get("username")
    username = raw.strip() if isinstance(raw, str) else ""
    if not username:
        raise ValidationError("username required")
    if not USERNAME_PATTERN.fullmatch(username):
        raise ValidationError("invalid username format")
    return username


def placeholder_avatar_url(username: str, settings: Settings) -> str:
    """Deterministic generated-avatar URL for a username."""
    return (
        f"{settings.AVATAR_PLACEHOLDER_BASE_URL}"
        f"?name={quote(username, safe='')}&background=random"
    )


def resolve_avatar_url(
    metadata: Mapping[str, Any], username: str, settings: Settings
) -> str:
    """Use the provided avatar_url when non-blank, else the generated placeholder."""
    raw = metadata.get("avatar_url")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return placeholder_avatar_url(username, settings)


def backoff_delay(attempt: int, base_sec: float) -> float:
    """Delay after the given failed attempt (1-based): 2*base, 4*base, 8*base, ..."""
    return base_sec * (2 ** attempt)


def username_taken(
    session: Session, username: str, exclude_user_id: uuid.UUID | None = None
) -> bool:
    """
    Case-insensitive existence check on profiles.username.

    Locks the matching row (FOR UPDATE) but skips rows already locked by another
    in-flight transaction, so racing signups fail fast instead of queueing; the
    unique constraint then decides the winner.
    """
    stmt = select(Profile.id).where(func.lower(Profile.username) == username.lower())
    if exclude_user_id is not None:
        stmt = stmt.where(Profile.id != exclude_user_id)
    stmt = stmt.with_for_update(skip_locked=True).limit(1)
    return session.execute(stmt).first() is not None


def _insert_welcome_rows(
    session: Session,
    user_id: uuid.UUID,
    username: str,
    avatar_url: str,
    settings: Settings,
) -> Decimal:
    amount = Decimal(str(settings.WELCOME_BONUS_AMOUNT))
    session.add(Profile(id=user_id, username=username, avatar_url=avatar_url))
    session.add(UserBalance(user_id=user_id, balance=amount))
    session.add(
        Transaction(
            user_id=user_id,
            amount=amount,
            type=WELCOME_BONUS_TYPE,
            description=WELCOME_TRANSACTION_DESCRIPTION,
        )
    )
    session.add(
        Notification(
            user_id=user_id,
            title=f"Welcome to {settings.APP_NAME}!",
            message=(
                f"Thanks for joining! You've received {amount.normalize():f} "
                f"{settings.WELCOME_BONUS_CURRENCY} as a welcome bonus."
            ),
            type=WELCOME_BONUS_TYPE,
        )
    )
    session.flush()
    return amount


def _attempt(
    session: Session,
    user_id: uuid.UUID,
    username: str,
    avatar_url: str,
    settings: Settings,
) -> Decimal:
    """One check-and-insert pass inside a SAVEPOINT. Raises UniquenessRace on a lost race."""
    try:
        with session.begin_nested():
            if username_taken(session, username):
                raise ConflictError("username already exists")
            return _insert_welcome_rows(session, user_id, username, avatar_url, settings)
    except IntegrityError as e:
        if is_unique_violation(e):
            raise UniquenessRace(str(e.orig)) from e
        raise


def cleanup_failed_user(session: Session, user_id: uuid.UUID) -> bool:
    """
    Best-effort delete of any provisioning rows for user_id.

    Returns False (after logging a CleanupError) if the deletes fail; never raises
    for database errors.
    """
    try:
        with session.begin_nested():
            session.execute(delete(Profile).where(Profile.id == user_id))
            session.execute(delete(UserBalance).where(UserBalance.user_id == user_id))
            session.execute(delete(Transaction).where(Transaction.user_id == user_id))
            session.execute(delete(Notification).where(Notification.user_id == user_id))
        return True
    except SQLAlchemyError as e:
        err = CleanupError(f"Error during user cleanup: {e}")
        logger.warning(
            err.message,
            extra={"user_id": str(user_id), "error_type": type(e).__name__},
        )
        return False


def provision_user(
    session: Session,
    user_id: uuid.UUID,
    metadata: Mapping[str, Any] | None,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> ProvisioningResult:
    """
    Create Profile, UserBalance, welcome Transaction and welcome Notification for user_id.

    Raises ValidationError or ConflictError without retrying. A unique violation at
    insert time is retried up to PROVISIONING_MAX_ATTEMPTS in total, sleeping
    backoff_delay() between attempts; when attempts run out, partial rows are
    cleaned up and ProvisioningError is raised. Any other error triggers cleanup
    and propagates unchanged. Does not commit.
    """
    metadata = metadata or {}
    username = normalize_username(metadata)
    avatar_url = resolve_avatar_url(metadata, username, settings)
    max_attempts = settings.PROVISIONING_MAX_ATTEMPTS

    last_race: UniquenessRace | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            amount = _attempt(session, user_id, username, avatar_url, settings)
        except UniquenessRace as e:
            last_race = e
            if attempt < max_attempts:
                delay = backoff_delay(attempt, settings.PROVISIONING_BACKOFF_BASE_SEC)
                logger.warning(
                    "Username race lost; retrying",
                    extra={
                        "user_id": str(user_id),
                        "attempt": attempt,
                        "delay_sec": delay,
                    },
                )
                sleep(delay)
            continue
        except Exception:
            cleanup_failed_user(session, user_id)
            raise

        logger.info(
            "User provisioned",
            extra={"user_id": str(user_id), "attempts": attempt},
        )
        return ProvisioningResult(
            user_id=user_id,
            username=username,
            avatar_url=avatar_url,
            balance=amount,
            attempts=attempt,
        )

    cleanup_failed_user(session, user_id)
    logger.error(
        "User provisioning exhausted retries",
        extra={
            "user_id": str(user_id),
            "attempts": max_attempts,
            "reason": (last_race.message if last_race else "")[:500],
        },
    )
    raise ProvisioningError("exhausted retries", attempts=max_attempts) from last_race

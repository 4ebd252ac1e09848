"""Audio rooms: public reads, host-only room changes, self-only join/leave."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.database import is_unique_violation
from app.models import AudioRoom, AudioRoomParticipant, Profile
from app.schemas.rooms import RoomParticipant
from app.services.profiles import PermissionDeniedError

logger = logging.getLogger(__name__)


class RoomNotFoundError(Exception):
    """Raised when the room id does not exist."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AlreadyJoinedError(Exception):
    """Raised when the user is already a participant of the room."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotParticipantError(Exception):
    """Raised when leaving a room the user is not in."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def list_rooms(session: Session) -> list[AudioRoom]:
    return list(
        session.execute(
            select(AudioRoom).order_by(AudioRoom.created_at.desc(), AudioRoom.id)
        ).scalars()
    )


def get_room(session: Session, room_id: uuid.UUID) -> AudioRoom:
    room = session.get(AudioRoom, room_id)
    if room is None:
        raise RoomNotFoundError("Room not found.")
    return room


def _get_hosted_room(
    session: Session, actor_id: uuid.UUID, room_id: uuid.UUID
) -> AudioRoom:
    room = get_room(session, room_id)
    if room.host_id != actor_id:
        raise PermissionDeniedError("Only the room host can modify this room.")
    return room


def create_room(session: Session, actor_id: uuid.UUID, title: str) -> AudioRoom:
    """Create a room hosted by the actor."""
    room = AudioRoom(title=title, host_id=actor_id)
    session.add(room)
    session.commit()
    session.refresh(room)
    logger.info("Room created", extra={"room_id": str(room.id), "host_id": str(actor_id)})
    return room


def update_room(
    session: Session, actor_id: uuid.UUID, room_id: uuid.UUID, title: str
) -> AudioRoom:
    room = _get_hosted_room(session, actor_id, room_id)
    room.title = title
    session.commit()
    session.refresh(room)
    return room


def delete_room(session: Session, actor_id: uuid.UUID, room_id: uuid.UUID) -> None:
    """Delete a room (host only); participant rows go with it."""
    room = _get_hosted_room(session, actor_id, room_id)
    session.delete(room)
    session.commit()
    logger.info("Room deleted", extra={"room_id": str(room_id), "host_id": str(actor_id)})


def join_room(
    session: Session, actor_id: uuid.UUID, room_id: uuid.UUID
) -> AudioRoomParticipant:
    """Add the actor (never anyone else) to the room."""
    get_room(session, room_id)
    participant = AudioRoomParticipant(room_id=room_id, user_id=actor_id)
    session.add(participant)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        if is_unique_violation(e):
            raise AlreadyJoinedError("Already a participant of this room.") from e
        raise
    session.refresh(participant)
    return participant


def leave_room(session: Session, actor_id: uuid.UUID, room_id: uuid.UUID) -> None:
    """Remove the actor's own participant row."""
    participant = session.execute(
        select(AudioRoomParticipant).where(
            AudioRoomParticipant.room_id == room_id,
            AudioRoomParticipant.user_id == actor_id,
        )
    ).scalar_one_or_none()
    if participant is None:
        raise NotParticipantError("Not a participant of this room.")
    session.delete(participant)
    session.commit()


def get_room_participants(session: Session, room_id: uuid.UUID) -> list[RoomParticipant]:
    """(user_id, username, avatar_url) for everyone currently in the room."""
    rows = session.execute(
        select(AudioRoomParticipant.user_id, Profile.username, Profile.avatar_url)
        .join(Profile, Profile.id == AudioRoomParticipant.user_id)
        .where(AudioRoomParticipant.room_id == room_id)
        .order_by(AudioRoomParticipant.joined_at, Profile.username)
    ).all()
    return [
        RoomParticipant(user_id=user_id, username=username, avatar_url=avatar_url)
        for user_id, username, avatar_url in rows
    ]

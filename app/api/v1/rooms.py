"""Audio room endpoints: public reads, host-only changes, self-only join/leave."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user
from app.core.database import get_db
from app.schemas.auth import CurrentUser
from app.schemas.rooms import (
    RoomCreateRequest,
    RoomParticipantsResponse,
    RoomResponse,
    RoomsListResponse,
    RoomUpdateRequest,
)
from app.services import audio_rooms

router = APIRouter()


def _participants(db: Session, room_id: uuid.UUID) -> RoomParticipantsResponse:
    return RoomParticipantsResponse(
        room_id=room_id,
        participants=audio_rooms.get_room_participants(db, room_id),
    )


@router.get("", response_model=RoomsListResponse)
def list_rooms(db: Annotated[Session, Depends(get_db)]) -> RoomsListResponse:
    return RoomsListResponse(
        rooms=[RoomResponse.model_validate(r) for r in audio_rooms.list_rooms(db)]
    )


@router.post("", response_model=RoomResponse, status_code=201)
def create_room(
    body: RoomCreateRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> RoomResponse:
    """Create a room hosted by the caller."""
    return RoomResponse.model_validate(audio_rooms.create_room(db, user.id, body.title))


@router.get("/{room_id}", response_model=RoomResponse)
def read_room(
    room_id: uuid.UUID,
    db: Annotated[Session, Depends(get_db)],
) -> RoomResponse:
    return RoomResponse.model_validate(audio_rooms.get_room(db, room_id))


@router.patch("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: uuid.UUID,
    body: RoomUpdateRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> RoomResponse:
    """Rename a room; host only."""
    return RoomResponse.model_validate(
        audio_rooms.update_room(db, user.id, room_id, body.title)
    )


@router.delete("/{room_id}", status_code=204)
def delete_room(
    room_id: uuid.UUID,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Response:
    audio_rooms.delete_room(db, user.id, room_id)
    return Response(status_code=204)


@router.get("/{room_id}/participants", response_model=RoomParticipantsResponse)
def list_participants(
    room_id: uuid.UUID,
    db: Annotated[Session, Depends(get_db)],
) -> RoomParticipantsResponse:
    """Current participants with username and avatar (no pagination)."""
    audio_rooms.get_room(db, room_id)
    return _participants(db, room_id)


@router.post("/{room_id}/participants", response_model=RoomParticipantsResponse, status_code=201)
def join_room(
    room_id: uuid.UUID,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> RoomParticipantsResponse:
    """Join the room as the caller; returns the updated participant list."""
    audio_rooms.join_room(db, user.id, room_id)
    return _participants(db, room_id)


@router.delete("/{room_id}/participants/me", status_code=204)
def leave_room(
    room_id: uuid.UUID,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Response:
    audio_rooms.leave_room(db, user.id, room_id)
    return Response(status_code=204)

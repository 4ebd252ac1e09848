"""Request/response schemas for audio room endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RoomCreateRequest(BaseModel):
    """Body for POST /rooms; the caller becomes the host."""

    title: str = Field(..., min_length=1, max_length=255)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v.strip()


class RoomUpdateRequest(RoomCreateRequest):
    """Body for PATCH /rooms/{room_id} (host only)."""


class RoomResponse(BaseModel):
    """One audio room."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    host_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class RoomsListResponse(BaseModel):
    """Response for GET /rooms (newest first)."""

    rooms: list[RoomResponse]


class RoomParticipant(BaseModel):
    """Participant of a room joined with their public profile."""

    user_id: uuid.UUID
    username: str
    avatar_url: str | None


class RoomParticipantsResponse(BaseModel):
    """Response for GET /rooms/{room_id}/participants."""

    room_id: uuid.UUID
    participants: list[RoomParticipant]

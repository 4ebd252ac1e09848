"""ORM models for audio rooms and their participants."""

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
    func,
)

from app.models.base import Base


class AudioRoom(Base):
    """Live audio room; removed together with its host."""

    __tablename__ = "audio_rooms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    host_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class AudioRoomParticipant(Base):
    """Membership of one user in one room."""

    __tablename__ = "audio_room_participants"
    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_audio_room_participants_room_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    room_id = Column(
        Uuid,
        ForeignKey("audio_rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    joined_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

"""Audio rooms and room participants.

Revision ID: 20250305120500
Revises: 20250129000000
Create Date: 2025-03-05

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20250305120500"
down_revision: Union[str, None] = "20250129000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "audio_rooms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column(
            "host_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audio_rooms_host_id"), "audio_rooms", ["host_id"])

    op.create_table(
        "audio_room_participants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "room_id",
            sa.Uuid(),
            sa.ForeignKey("audio_rooms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "room_id", "user_id", name="uq_audio_room_participants_room_user"
        ),
    )
    op.create_index(
        op.f("ix_audio_room_participants_room_id"),
        "audio_room_participants",
        ["room_id"],
    )
    op.create_index(
        op.f("ix_audio_room_participants_user_id"),
        "audio_room_participants",
        ["user_id"],
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_audio_room_participants_user_id"), table_name="audio_room_participants"
    )
    op.drop_index(
        op.f("ix_audio_room_participants_room_id"), table_name="audio_room_participants"
    )
    op.drop_table("audio_room_participants")
    op.drop_index(op.f("ix_audio_rooms_host_id"), table_name="audio_rooms")
    op.drop_table("audio_rooms")

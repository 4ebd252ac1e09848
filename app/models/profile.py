"""ORM model for public user profiles."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)

from app.models.base import Base

USERNAME_MAX_LEN = 20


class Profile(Base):
    """
    One profile per user (same primary key as users.id).

    Usernames are case-preserving but unique case-insensitively: the plain
    unique constraint and the unique lower(username) index are the final
    authority behind the provisioning pre-check.
    """

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("username", name="profiles_username_unique"),
    )

    id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    username = Column(String(USERNAME_MAX_LEN), nullable=False)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


Index(
    "ix_profiles_username_lower",
    func.lower(Profile.username),
    unique=True,
)

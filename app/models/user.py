"""ORM model for identity records (accounts created at signup)."""

import uuid

from sqlalchemy import Column, DateTime, String, Uuid, func

from app.models.base import Base, JSONType


class User(Base):
    """
    Account created by signup; credentials plus free-form metadata.

    user_metadata carries the signup hints read by provisioning:
    'username' (required) and 'avatar_url' (optional).
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    user_metadata = Column(JSONType, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

"""ORM models for user balances and the append-only transaction ledger."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid, func

from app.models.base import Base

# Transaction/notification type tag for the signup credit.
WELCOME_BONUS_TYPE = "welcome_bonus"


class UserBalance(Base):
    """Current spendable balance; exactly one row per user."""

    __tablename__ = "user_balances"

    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    balance = Column(Numeric(12, 2), nullable=False, default=0)
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


class Transaction(Base):
    """Ledger entry. Rows are never updated after insert."""

    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(64), nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

"""Pydantic schemas for provisioning results and the caller's own balance/notifications."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProvisioningResult(BaseModel):
    """Outcome of a successful provisioning run for one new user."""

    user_id: uuid.UUID
    username: str = Field(..., description="Username as stored (case preserved).")
    avatar_url: str = Field(..., description="Provided avatar URL or generated placeholder.")
    balance: Decimal = Field(..., description="Initial balance (the welcome bonus).")
    attempts: int = Field(..., ge=1, description="Attempts needed, including retries.")


class SignupResponse(BaseModel):
    """Response for POST /auth/signup."""

    user_id: uuid.UUID
    email: str
    profile: ProvisioningResult


class BalanceResponse(BaseModel):
    """Current balance of the authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    balance: Decimal
    updated_at: datetime


class NotificationItem(BaseModel):
    """One notification row."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    message: str
    type: str
    is_read: bool
    created_at: datetime


class NotificationsResponse(BaseModel):
    """Response for GET /me/notifications (newest first)."""

    notifications: list[NotificationItem]

"""Pydantic request/response schemas."""

from app.schemas.account import (
    BalanceResponse,
    NotificationItem,
    NotificationsResponse,
    ProvisioningResult,
    SignupResponse,
)
from app.schemas.auth import CurrentUser, LoginRequest, SignupRequest, TokenResponse
from app.schemas.health import HealthResponse
from app.schemas.profile import ProfileResponse, ProfileUpdateRequest
from app.schemas.rooms import (
    RoomCreateRequest,
    RoomParticipant,
    RoomParticipantsResponse,
    RoomResponse,
    RoomsListResponse,
    RoomUpdateRequest,
)

__all__ = [
    "BalanceResponse",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "NotificationItem",
    "NotificationsResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "ProvisioningResult",
    "RoomCreateRequest",
    "RoomParticipant",
    "RoomParticipantsResponse",
    "RoomResponse",
    "RoomsListResponse",
    "RoomUpdateRequest",
    "SignupRequest",
    "SignupResponse",
    "TokenResponse",
]

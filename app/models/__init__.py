"""SQLAlchemy ORM models."""

from app.models.audio_room import AudioRoom, AudioRoomParticipant
from app.models.base import Base
from app.models.ledger import WELCOME_BONUS_TYPE, Transaction, UserBalance
from app.models.notification import Notification
from app.models.profile import Profile
from app.models.user import User

__all__ = [
    "AudioRoom",
    "AudioRoomParticipant",
    "Base",
    "Notification",
    "Profile",
    "Transaction",
    "User",
    "UserBalance",
    "WELCOME_BONUS_TYPE",
]

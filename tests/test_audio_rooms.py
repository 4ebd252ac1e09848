"""Tests for app.services.audio_rooms: host-only changes, self-only membership, participants join."""

import unittest
import uuid

from sqlalchemy import func, select

from app.core.config import Settings
from app.models import AudioRoom, AudioRoomParticipant, User
from app.services.audio_rooms import (
    AlreadyJoinedError,
    NotParticipantError,
    RoomNotFoundError,
    create_room,
    delete_room,
    get_room,
    get_room_participants,
    join_room,
    leave_room,
    list_rooms,
    update_room,
)
from app.services.profiles import PermissionDeniedError
from app.services.provisioning import placeholder_avatar_url, provision_user
from tests.db_helpers import add_user, make_session_factory


class AudioRoomTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.session = make_session_factory()()
        self.settings = Settings()
        self.host = self._provisioned("host_user")
        self.guest = self._provisioned("guest_user", avatar_url="https://cdn.example.com/g.png")

    def tearDown(self) -> None:
        self.session.close()

    def _provisioned(self, username: str, **metadata: str) -> User:
        user = add_user(self.session, username=username, **metadata)
        provision_user(self.session, user.id, user.user_metadata, self.settings)
        self.session.commit()
        return user

    def _participant_count(self) -> int:
        return self.session.execute(
            select(func.count()).select_from(AudioRoomParticipant)
        ).scalar_one()


class TestRoomHostRules(AudioRoomTestCase):
    def test_create_sets_actor_as_host(self) -> None:
        room = create_room(self.session, self.host.id, "Late night jazz")
        self.assertEqual(room.host_id, self.host.id)
        self.assertEqual(get_room(self.session, room.id).title, "Late night jazz")
        self.assertEqual([r.id for r in list_rooms(self.session)], [room.id])

    def test_host_can_update_and_delete(self) -> None:
        room = create_room(self.session, self.host.id, "Draft")
        updated = update_room(self.session, self.host.id, room.id, "Final")
        self.assertEqual(updated.title, "Final")
        delete_room(self.session, self.host.id, room.id)
        with self.assertRaises(RoomNotFoundError):
            get_room(self.session, room.id)

    def test_non_host_cannot_update_or_delete(self) -> None:
        room = create_room(self.session, self.host.id, "Mine")
        with self.assertRaises(PermissionDeniedError):
            update_room(self.session, self.guest.id, room.id, "Hijacked")
        with self.assertRaises(PermissionDeniedError):
            delete_room(self.session, self.guest.id, room.id)
        self.assertEqual(get_room(self.session, room.id).title, "Mine")

    def test_unknown_room(self) -> None:
        with self.assertRaises(RoomNotFoundError):
            update_room(self.session, self.host.id, uuid.uuid4(), "x")


class TestRoomMembership(AudioRoomTestCase):
    def test_join_and_list_participants_with_profiles(self) -> None:
        room = create_room(self.session, self.host.id, "Open mic")
        join_room(self.session, self.host.id, room.id)
        join_room(self.session, self.guest.id, room.id)

        participants = {p.user_id: p for p in get_room_participants(self.session, room.id)}
        self.assertEqual(set(participants), {self.host.id, self.guest.id})
        self.assertEqual(participants[self.guest.id].username, "guest_user")
        self.assertEqual(participants[self.guest.id].avatar_url, "https://cdn.example.com/g.png")
        self.assertEqual(
            participants[self.host.id].avatar_url,
            placeholder_avatar_url("host_user", self.settings),
        )

    def test_participants_scoped_to_requested_room(self) -> None:
        room_a = create_room(self.session, self.host.id, "A")
        room_b = create_room(self.session, self.host.id, "B")
        join_room(self.session, self.host.id, room_a.id)
        join_room(self.session, self.guest.id, room_b.id)
        self.assertEqual(
            [p.user_id for p in get_room_participants(self.session, room_a.id)],
            [self.host.id],
        )
        self.assertEqual(get_room_participants(self.session, uuid.uuid4()), [])

    def test_double_join_rejected(self) -> None:
        room = create_room(self.session, self.host.id, "Once")
        join_room(self.session, self.guest.id, room.id)
        with self.assertRaises(AlreadyJoinedError):
            join_room(self.session, self.guest.id, room.id)
        self.assertEqual(self._participant_count(), 1)

    def test_join_unknown_room(self) -> None:
        with self.assertRaises(RoomNotFoundError):
            join_room(self.session, self.guest.id, uuid.uuid4())

    def test_leave_removes_only_own_row(self) -> None:
        room = create_room(self.session, self.host.id, "Leaving")
        join_room(self.session, self.host.id, room.id)
        join_room(self.session, self.guest.id, room.id)
        leave_room(self.session, self.guest.id, room.id)
        self.assertEqual(
            [p.user_id for p in get_room_participants(self.session, room.id)],
            [self.host.id],
        )
        with self.assertRaises(NotParticipantError):
            leave_room(self.session, self.guest.id, room.id)


class TestCascades(AudioRoomTestCase):
    def test_deleting_room_removes_participants(self) -> None:
        room = create_room(self.session, self.host.id, "Short lived")
        join_room(self.session, self.guest.id, room.id)
        delete_room(self.session, self.host.id, room.id)
        self.assertEqual(self._participant_count(), 0)

    def test_deleting_host_removes_rooms(self) -> None:
        room = create_room(self.session, self.host.id, "Orphan")
        join_room(self.session, self.guest.id, room.id)
        self.session.delete(self.session.get(User, self.host.id))
        self.session.commit()
        self.session.expire_all()
        self.assertIsNone(self.session.get(AudioRoom, room.id))
        self.assertEqual(self._participant_count(), 0)


if __name__ == "__main__":
    unittest.main()

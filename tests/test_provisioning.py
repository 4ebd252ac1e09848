"""Tests for app.services.provisioning: validation, avatar fallback, retries, cleanup."""

import unittest
import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.config import Settings
from app.models import Notification, Profile, Transaction, UserBalance
from app.services.provisioning import (
    ConflictError,
    ProvisioningError,
    UniquenessRace,
    ValidationError,
    backoff_delay,
    cleanup_failed_user,
    normalize_username,
    placeholder_avatar_url,
    provision_user,
    resolve_avatar_url,
)
from tests.db_helpers import add_user, make_session_factory


def _settings(**overrides: object) -> Settings:
    return Settings(**overrides)


def _row_counts(session, user_id: uuid.UUID) -> dict[str, int]:
    def count(model, column) -> int:
        return session.execute(
            select(func.count()).select_from(model).where(column == user_id)
        ).scalar_one()

    return {
        "profiles": count(Profile, Profile.id),
        "balances": count(UserBalance, UserBalance.user_id),
        "transactions": count(Transaction, Transaction.user_id),
        "notifications": count(Notification, Notification.user_id),
    }


NO_ROWS = {"profiles": 0, "balances": 0, "transactions": 0, "notifications": 0}
ONE_ROW_EACH = {"profiles": 1, "balances": 1, "transactions": 1, "notifications": 1}


class TestNormalizeUsername(unittest.TestCase):
    """Username must be present after trimming and match ^[A-Za-z0-9_-]{3,20}$."""

    def test_trims_and_keeps_case(self) -> None:
        self.assertEqual(normalize_username({"username": "  Alice_01 "}), "Alice_01")

    def test_accepts_boundaries(self) -> None:
        self.assertEqual(normalize_username({"username": "abc"}), "abc")
        self.assertEqual(normalize_username({"username": "a" * 20}), "a" * 20)
        self.assertEqual(normalize_username({"username": "x-y_z"}), "x-y_z")

    def test_missing_or_blank_is_required_error(self) -> None:
        for metadata in ({}, {"username": None}, {"username": "   "}, {"username": 42}):
            with self.subTest(metadata=metadata):
                with self.assertRaises(ValidationError) as ctx:
                    normalize_username(metadata)
                self.assertEqual(ctx.exception.message, "username required")

    def test_bad_format(self) -> None:
        for username in ("ab", "this_username_is_22chars!", "has space", "a" * 21, "émile", "dot.ted"):
            with self.subTest(username=username):
                with self.assertRaises(ValidationError) as ctx:
                    normalize_username({"username": username})
                self.assertEqual(ctx.exception.message, "invalid username format")


class TestAvatarUrl(unittest.TestCase):
    """Provided avatar_url wins when non-blank; otherwise a deterministic placeholder."""

    def setUp(self) -> None:
        self.settings = _settings()

    def test_provided_url_used_verbatim_after_trim(self) -> None:
        url = resolve_avatar_url(
            {"avatar_url": "  https://cdn.example.com/a.png "}, "alice", self.settings
        )
        self.assertEqual(url, "https://cdn.example.com/a.png")

    def test_blank_falls_back_to_placeholder(self) -> None:
        for metadata in ({}, {"avatar_url": ""}, {"avatar_url": "   "}):
            with self.subTest(metadata=metadata):
                self.assertEqual(
                    resolve_avatar_url(metadata, "alice", self.settings),
                    placeholder_avatar_url("alice", self.settings),
                )

    def test_placeholder_is_deterministic_and_encodes_username(self) -> None:
        first = placeholder_avatar_url("a_b-c", self.settings)
        self.assertEqual(first, placeholder_avatar_url("a_b-c", self.settings))
        self.assertEqual(
            first, "https://ui-avatars.com/api/?name=a_b-c&background=random"
        )
        self.assertNotEqual(first, placeholder_avatar_url("other", self.settings))


class TestBackoffDelay(unittest.TestCase):
    def test_doubles_per_attempt(self) -> None:
        self.assertEqual([backoff_delay(n, 1.0) for n in (1, 2, 3)], [2.0, 4.0, 8.0])
        self.assertEqual(backoff_delay(2, 0.5), 2.0)


class TestProvisionUser(unittest.TestCase):
    """provision_user against an in-memory database."""

    def setUp(self) -> None:
        self.factory = make_session_factory()
        self.session = self.factory()
        self.settings = _settings()
        self.sleep = MagicMock()

    def tearDown(self) -> None:
        self.session.close()

    def test_end_to_end_creates_all_four_rows(self) -> None:
        user = add_user(self.session, username="alice_01")
        result = provision_user(
            self.session, user.id, user.user_metadata, self.settings, sleep=self.sleep
        )
        self.session.commit()

        self.assertEqual(result.username, "alice_01")
        self.assertEqual(result.attempts, 1)
        self.assertEqual(result.balance, Decimal("5.0"))
        self.assertEqual(_row_counts(self.session, user.id), ONE_ROW_EACH)

        profile = self.session.get(Profile, user.id)
        self.assertEqual(profile.username, "alice_01")
        self.assertEqual(
            profile.avatar_url, placeholder_avatar_url("alice_01", self.settings)
        )
        self.assertEqual(self.session.get(UserBalance, user.id).balance, Decimal("5.0"))

        txn = self.session.execute(select(Transaction)).scalar_one()
        self.assertEqual(txn.amount, Decimal("5.0"))
        self.assertEqual(txn.type, "welcome_bonus")
        note = self.session.execute(select(Notification)).scalar_one()
        self.assertEqual(note.type, "welcome_bonus")
        self.assertEqual(note.title, "Welcome to Celflicks!")
        self.assertIn("5 XCE", note.message)
        self.sleep.assert_not_called()

    def test_provided_avatar_url_is_stored(self) -> None:
        user = add_user(
            self.session, username="bob", avatar_url="https://cdn.example.com/bob.png"
        )
        provision_user(self.session, user.id, user.user_metadata, self.settings)
        self.assertEqual(
            self.session.get(Profile, user.id).avatar_url,
            "https://cdn.example.com/bob.png",
        )

    def test_invalid_username_creates_nothing(self) -> None:
        for username in ("ab", "this_username_is_22chars!", "has space"):
            with self.subTest(username=username):
                user = add_user(self.session, username=username)
                with self.assertRaises(ValidationError):
                    provision_user(
                        self.session, user.id, user.user_metadata, self.settings, sleep=self.sleep
                    )
                self.assertEqual(_row_counts(self.session, user.id), NO_ROWS)
        self.sleep.assert_not_called()

    def test_missing_metadata_is_validation_error(self) -> None:
        user = add_user(self.session)
        with self.assertRaises(ValidationError) as ctx:
            provision_user(self.session, user.id, None, self.settings)
        self.assertEqual(ctx.exception.message, "username required")

    def test_case_insensitive_duplicate_is_conflict(self) -> None:
        first = add_user(self.session, username="Alice_01")
        provision_user(self.session, first.id, first.user_metadata, self.settings)
        self.session.commit()

        second = add_user(self.session, username="alice_01")
        with self.assertRaises(ConflictError) as ctx:
            provision_user(
                self.session, second.id, second.user_metadata, self.settings, sleep=self.sleep
            )
        self.assertEqual(ctx.exception.message, "username already exists")
        self.assertEqual(_row_counts(self.session, second.id), NO_ROWS)
        self.assertEqual(_row_counts(self.session, first.id), ONE_ROW_EACH)
        self.sleep.assert_not_called()

    def test_repeated_conflicts_fail_identically_without_side_effects(self) -> None:
        owner = add_user(self.session, username="taken")
        provision_user(self.session, owner.id, owner.user_metadata, self.settings)
        self.session.commit()

        other = add_user(self.session, username="TAKEN")
        for _ in range(3):
            with self.assertRaises(ConflictError):
                provision_user(self.session, other.id, other.user_metadata, self.settings)
        self.session.commit()
        self.assertEqual(_row_counts(self.session, other.id), NO_ROWS)
        self.assertEqual(
            self.session.execute(select(func.count()).select_from(Transaction)).scalar_one(),
            1,
        )

    def test_lost_race_retries_with_backoff_then_exhausts(self) -> None:
        owner = add_user(self.session, username="racer")
        provision_user(self.session, owner.id, owner.user_metadata, self.settings)
        self.session.commit()

        loser = add_user(self.session, username="Racer")
        # Pre-check misses the winner (as when its row is still locked), so the
        # unique index is what rejects the insert.
        with patch("app.services.provisioning.username_taken", return_value=False):
            with self.assertRaises(ProvisioningError) as ctx:
                provision_user(
                    self.session, loser.id, loser.user_metadata, self.settings, sleep=self.sleep
                )

        self.assertEqual(ctx.exception.message, "exhausted retries")
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIsInstance(ctx.exception.__cause__, UniquenessRace)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [2.0, 4.0])
        self.assertEqual(_row_counts(self.session, loser.id), NO_ROWS)
        self.assertEqual(_row_counts(self.session, owner.id), ONE_ROW_EACH)

    def test_race_then_success_on_retry(self) -> None:
        user = add_user(self.session, username="late_winner")
        calls = {"n": 0}

        def flaky_check(session, username, exclude_user_id=None):
            calls["n"] += 1
            if calls["n"] == 1:
                raise UniquenessRace("duplicate key value violates unique constraint")
            return False

        with patch("app.services.provisioning.username_taken", side_effect=flaky_check):
            result = provision_user(
                self.session, user.id, user.user_metadata, self.settings, sleep=self.sleep
            )
        self.assertEqual(result.attempts, 2)
        self.sleep.assert_called_once_with(2.0)
        self.assertEqual(_row_counts(self.session, user.id), ONE_ROW_EACH)

    def test_max_attempts_and_backoff_follow_settings(self) -> None:
        settings = _settings(PROVISIONING_MAX_ATTEMPTS=4, PROVISIONING_BACKOFF_BASE_SEC=0.5)
        owner = add_user(self.session, username="dup")
        provision_user(self.session, owner.id, owner.user_metadata, settings)
        loser = add_user(self.session, username="DUP")
        with patch("app.services.provisioning.username_taken", return_value=False):
            with self.assertRaises(ProvisioningError) as ctx:
                provision_user(
                    self.session, loser.id, loser.user_metadata, settings, sleep=self.sleep
                )
        self.assertEqual(ctx.exception.attempts, 4)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [1.0, 2.0, 4.0])

    def test_non_unique_integrity_error_is_not_retried(self) -> None:
        # No users row for this id: the foreign key rejects the insert.
        orphan_id = uuid.uuid4()
        with self.assertRaises(IntegrityError):
            provision_user(
                self.session, orphan_id, {"username": "ghost"}, self.settings, sleep=self.sleep
            )
        self.sleep.assert_not_called()
        self.assertEqual(_row_counts(self.session, orphan_id), NO_ROWS)

    def test_unexpected_error_triggers_cleanup_and_propagates(self) -> None:
        user = add_user(self.session, username="boom")
        with patch(
            "app.services.provisioning._insert_welcome_rows",
            side_effect=RuntimeError("disk full"),
        ), patch("app.services.provisioning.cleanup_failed_user") as cleanup:
            with self.assertRaises(RuntimeError):
                provision_user(
                    self.session, user.id, user.user_metadata, self.settings, sleep=self.sleep
                )
        cleanup.assert_called_once_with(self.session, user.id)
        self.sleep.assert_not_called()


class TestCleanupFailedUser(unittest.TestCase):
    """Compensating delete removes all four kinds of row; its own failures are only logged."""

    def test_deletes_rows_for_user_only(self) -> None:
        session = make_session_factory()()
        settings = _settings()
        keep = add_user(session, username="keeper")
        drop = add_user(session, username="dropper")
        provision_user(session, keep.id, keep.user_metadata, settings)
        provision_user(session, drop.id, drop.user_metadata, settings)
        session.commit()

        self.assertTrue(cleanup_failed_user(session, drop.id))
        session.commit()
        self.assertEqual(_row_counts(session, drop.id), NO_ROWS)
        self.assertEqual(_row_counts(session, keep.id), ONE_ROW_EACH)
        session.close()

    def test_database_error_is_logged_not_raised(self) -> None:
        session = MagicMock()
        session.begin_nested.side_effect = OperationalError(
            "DELETE FROM profiles", {}, Exception("connection lost")
        )
        with self.assertLogs("app.services.provisioning", level="WARNING") as logs:
            self.assertFalse(cleanup_failed_user(session, uuid.uuid4()))
        self.assertIn("Error during user cleanup", logs.output[0])

    def test_cleanup_failure_does_not_replace_exhaustion_error(self) -> None:
        session = MagicMock()
        session.begin_nested.side_effect = OperationalError(
            "DELETE FROM profiles", {}, Exception("connection lost")
        )
        sleep = MagicMock()
        with patch(
            "app.services.provisioning._attempt",
            side_effect=UniquenessRace("duplicate key"),
        ):
            with self.assertLogs("app.services.provisioning", level="WARNING"):
                with self.assertRaises(ProvisioningError):
                    provision_user(
                        session, uuid.uuid4(), {"username": "someone"}, _settings(), sleep=sleep
                    )
        self.assertEqual(sleep.call_count, 2)


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import date, datetime, timezone

from fastapi import HTTPException

from fritter import freets, upvotes, users
from fritter import guards as g
from fritter.db import DuplicateUpvoteError, DuplicateUsernameError, InMemoryDbClient
from fritter.formatters import (
    DELETED_USER,
    format_birthday,
    format_date,
    upvote_response,
    user_response,
)


class FormatterTests(unittest.TestCase):
    def test_format_date(self):
        self.assertEqual(
            format_date(datetime(2026, 10, 19, 15, 4, 5)),
            "October 19th 2026, 3:04:05 pm",
        )
        self.assertEqual(
            format_date(datetime(2022, 3, 1, 0, 0, 9)),
            "March 1st 2022, 12:00:09 am",
        )

    def test_format_date_from_epoch_is_utc(self):
        ts = datetime(2022, 12, 22, 12, 30, 0, tzinfo=timezone.utc).timestamp()
        self.assertEqual(format_date(ts), "December 22nd 2022, 12:30:00 pm")

    def test_ordinals(self):
        expected = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 11: "11th", 12: "12th",
                    13: "13th", 21: "21st", 23: "23rd", 31: "31st"}
        for day, text in expected.items():
            self.assertEqual(format_birthday(date(2000, 1, day)), f"January {text} 2000")

    def test_responses_resolve_usernames(self):
        db = InMemoryDbClient()
        alice = db.create_user("alice", "secret", date(1990, 1, 1), False)
        freet = db.create_freet(alice.user_id, "hi", [])
        upvote = db.create_upvote(alice.user_id, freet.freet_id)

        shaped = upvote_response(db, upvote)
        self.assertEqual(shaped["author"], "alice")
        self.assertEqual(shaped["freetId"], freet.freet_id)

        db.delete_user(alice.user_id)
        self.assertEqual(upvote_response(db, upvote)["author"], DELETED_USER)

        self.assertIsNone(user_response(None))
        self.assertNotIn("password", user_response(alice))


class GuardPipelineTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.adult = self.db.create_user("alice", "pw", date(1990, 1, 1), False)
        self.teen = self.db.create_user("tim", "pw", date(2012, 1, 1), True)

    def test_run_guards_stops_at_first_failure(self):
        calls = []

        def passes(ctx):
            calls.append("passes")
            return None

        def fails(ctx):
            calls.append("fails")
            return g.GuardError(418, "nope")

        def never(ctx):
            calls.append("never")
            return None

        ctx = g.GuardContext(db=self.db, viewer=None)
        with self.assertRaises(HTTPException) as raised:
            g.run_guards([passes, fails, never], ctx)
        self.assertEqual(raised.exception.status_code, 418)
        self.assertEqual(raised.exception.detail, "nope")
        self.assertEqual(calls, ["passes", "fails"])

    def test_content_guard_codes(self):
        def check(content):
            ctx = g.GuardContext(db=self.db, viewer=self.adult, params={"content": content})
            return g.is_valid_freet_content(ctx)

        self.assertIsNone(check("x"))
        self.assertIsNone(check(" " + "x" * 279))
        self.assertIsNone(check("  " + "x" * 280 + "\n"))
        self.assertEqual(check("").status_code, 400)
        self.assertEqual(check("\t ").status_code, 400)
        self.assertEqual(check(42).status_code, 400)
        self.assertEqual(check("x" * 281).status_code, 413)

    def test_flagged_freet_viewable(self):
        flagged = self.db.create_freet(self.adult.user_id, "f", ["reason"])

        def check(viewer):
            ctx = g.GuardContext(db=self.db, viewer=viewer, params={"freetId": flagged.freet_id})
            return g.is_flagged_freet_viewable(ctx)

        self.assertIsNone(check(self.adult))
        self.assertEqual(check(None).status_code, 403)
        self.assertEqual(check(self.teen).status_code, 403)

    def test_require_fields(self):
        guard = g.require_fields("username", "password")
        ctx = g.GuardContext(db=self.db, viewer=None, params={"username": "a"})
        error = guard(ctx)
        self.assertEqual(error.status_code, 400)
        self.assertIn("password", error.message)


class CollectionTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()

    def test_calculate_age(self):
        birthday = date(2008, 6, 15)
        self.assertEqual(users.calculate_age(birthday, date(2026, 6, 14)), 17)
        self.assertEqual(users.calculate_age(birthday, date(2026, 6, 15)), 18)
        self.assertEqual(users.calculate_age(birthday, date(2026, 12, 1)), 18)

    def test_underage_fixed_at_signup(self):
        today = date.today()
        teen = users.create_user(self.db, "tim", "pw", date(today.year - 16, 1, 1))
        adult = users.create_user(self.db, "ann", "pw", date(today.year - 30, 1, 1))
        self.assertTrue(teen.underage)
        self.assertFalse(adult.underage)

    def test_collect_flags_skips_content_and_blanks(self):
        body = {"flag_a": "violence", "content": "hi", "flag_b": "  ", "flag_c": 3, "flag_d": None}
        self.assertEqual(freets.collect_flags(body), ["violence", "3"])

    def test_collect_flags_ignores_unchecked_boxes(self):
        self.assertEqual(freets.collect_flags({"content": "hi", "selfFlag": False}), [])
        self.assertEqual(freets.collect_flags({"content": "hi", "selfFlag": True}), ["True"])

    def test_store_rejects_duplicate_usernames(self):
        alice = self.db.create_user("alice", "pw", date(1990, 1, 1), False)
        bob = self.db.create_user("bob", "pw", date(1990, 1, 1), False)

        with self.assertRaises(DuplicateUsernameError):
            self.db.create_user("ALICE", "pw", date(1990, 1, 1), False)
        with self.assertRaises(DuplicateUsernameError):
            self.db.update_user(bob.user_id, username="Alice")
        self.assertEqual(self.db.get_user(bob.user_id).username, "bob")
        self.assertEqual(self.db.update_user(alice.user_id, username="Alice").username, "Alice")

    def test_store_rejects_duplicate_upvotes(self):
        alice = self.db.create_user("alice", "pw", date(1990, 1, 1), False)
        freet = self.db.create_freet(alice.user_id, "hi", [])
        self.db.create_upvote(alice.user_id, freet.freet_id)

        with self.assertRaises(DuplicateUpvoteError):
            self.db.create_upvote(alice.user_id, freet.freet_id)
        self.assertEqual(len(self.db.list_upvotes()), 1)

    def test_upvote_keeps_list_in_sync(self):
        alice = self.db.create_user("alice", "pw", date(1990, 1, 1), False)
        freet = self.db.create_freet(alice.user_id, "hi", [])

        upvote = upvotes.add_upvote(self.db, alice, freet.freet_id)
        self.assertEqual(self.db.get_user(alice.user_id).upvoted_freets, [freet.freet_id])

        upvotes.remove_upvote(self.db, upvote)
        self.assertEqual(self.db.get_user(alice.user_id).upvoted_freets, [])
        self.assertEqual(self.db.list_upvotes(), [])

    def test_visible_freets_for_underage(self):
        alice = self.db.create_user("alice", "pw", date(1990, 1, 1), False)
        teen = self.db.create_user("tim", "pw", date(2012, 1, 1), True)
        self.db.create_freet(alice.user_id, "flagged", ["x"])
        plain = self.db.create_freet(alice.user_id, "plain", [])

        self.assertEqual(
            [f.freet_id for f in freets.list_visible_freets(self.db, teen)], [plain.freet_id]
        )
        self.assertEqual(len(freets.list_visible_freets(self.db, alice)), 2)
        self.assertEqual(len(freets.list_visible_freets(self.db, None)), 2)


if __name__ == "__main__":
    unittest.main()

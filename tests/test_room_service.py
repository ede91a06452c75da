"""Tests for RoomService."""

from __future__ import annotations

import unittest
from typing import Any
from unittest.mock import patch

from arenapulse.errors import AccessDeniedError, NotFoundError, ValidationError
from arenapulse.room.services import RoomService, visible_messages
from tests.helpers import ORGANIZER, OUTSIDER, player, seed_group, seed_room, seed_tournament
from tests.mock_utils import mock_db


class RoomServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = mock_db()
        seed_tournament(self.db, count=4)
        seed_group(self.db, "t1", "g1", ["p1", "p2"])

    def _group(self) -> dict:
        return self.db.collection("groups").document("g1").get().to_dict()

    def _messages(self) -> list[dict]:
        room_id = self._group()["roomId"]
        return self.db.collection("rooms").document(room_id).get().to_dict()["messages"]

    def test_ensure_room_creates_and_links_once(self) -> None:
        room = RoomService.ensure_room("t1", "g1", ORGANIZER, db=self.db)

        self.assertEqual(room["messages"], [])
        self.assertEqual(room["participant_ids"], ["p1", "p2"])
        self.assertEqual(self._group()["roomId"], room["id"])

        again = RoomService.ensure_room("t1", "g1", ORGANIZER, db=self.db)
        self.assertEqual(again["id"], room["id"])

    def test_send_hello_to_fresh_room(self) -> None:
        RoomService.ensure_room("t1", "g1", ORGANIZER, db=self.db)

        RoomService.send_message("t1", ORGANIZER, "hello", group_id="g1", db=self.db)

        messages = self._messages()
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0]["content"], "hello")
        self.assertIsNotNone(messages[0]["timestamp"])
        self.assertEqual(messages[0]["state"], "active")

    def test_member_sends_to_own_group_room(self) -> None:
        message = RoomService.send_message("t1", player(1), "gg", db=self.db)

        self.assertEqual(message["senderId"], "p1")
        self.assertEqual(self._messages()[0]["id"], message["id"])

    def test_messages_keep_insertion_order(self) -> None:
        for text in ("one", "two", "three"):
            RoomService.send_message("t1", player(2), text, db=self.db)
        result = RoomService.list_messages("t1", player(1), db=self.db)
        self.assertEqual(
            [m["content"] for m in result["room"]["messages"]], ["one", "two", "three"]
        )

    def test_member_cannot_post_through_organizer_route(self) -> None:
        with self.assertRaises(AccessDeniedError):
            RoomService.send_message("t1", player(1), "hi", group_id="g1", db=self.db)

    def test_member_can_read_through_group_route(self) -> None:
        result = RoomService.list_messages("t1", player(1), group_id="g1", db=self.db)
        self.assertEqual(result["group"]["id"], "g1")

    def test_member_read_does_not_create_room(self) -> None:
        result = RoomService.list_messages("t1", player(1), group_id="g1", db=self.db)

        self.assertIsNone(result["group"]["roomId"])
        self.assertEqual(result["room"]["messages"], [])
        self.assertIsNone(self._group()["roomId"])

        own = RoomService.list_messages("t1", player(2), db=self.db)
        self.assertEqual(own["room"]["messages"], [])
        self.assertIsNone(self._group()["roomId"])

    def test_organizer_read_creates_room(self) -> None:
        result = RoomService.list_messages("t1", ORGANIZER, group_id="g1", db=self.db)

        self.assertEqual(self._group()["roomId"], result["group"]["roomId"])
        self.assertEqual(result["room"]["messages"], [])

    def test_outsider_cannot_read(self) -> None:
        with self.assertRaises(AccessDeniedError):
            RoomService.list_messages("t1", OUTSIDER, group_id="g1", db=self.db)

    def test_not_in_any_group(self) -> None:
        with self.assertRaises(NotFoundError):
            RoomService.list_messages("t1", player(4), db=self.db)

    def test_invalid_message_type(self) -> None:
        for message_type in ("system", "deleted", "video"):
            with self.assertRaises(ValidationError):
                RoomService.send_message(
                    "t1", ORGANIZER, "x", message_type=message_type, group_id="g1", db=self.db
                )

    def test_empty_message(self) -> None:
        with self.assertRaises(ValidationError):
            RoomService.send_message("t1", ORGANIZER, "  ", group_id="g1", db=self.db)

    def test_image_without_text(self) -> None:
        message = RoomService.send_message(
            "t1",
            ORGANIZER,
            "",
            message_type="image",
            image_url="https://cdn.example.com/a.png",
            group_id="g1",
            db=self.db,
        )
        self.assertEqual(message["type"], "image")
        self.assertEqual(message["imageUrl"], "https://cdn.example.com/a.png")

    def test_edit_message(self) -> None:
        message = RoomService.send_message("t1", player(1), "helo", db=self.db)

        edited = RoomService.edit_message("t1", player(1), message["id"], "hello", db=self.db)

        self.assertEqual(edited["content"], "hello")
        self.assertEqual(edited["state"], "edited")
        self.assertIsNotNone(edited["editedAt"])
        self.assertEqual(self._messages()[0]["content"], "hello")

    def test_member_cannot_edit_others_message(self) -> None:
        message = RoomService.send_message("t1", player(1), "mine", db=self.db)
        with self.assertRaises(AccessDeniedError):
            RoomService.edit_message("t1", player(2), message["id"], "yours", db=self.db)

    def test_organizer_can_edit_any_message(self) -> None:
        message = RoomService.send_message("t1", player(1), "mine", db=self.db)
        RoomService.edit_message(
            "t1", ORGANIZER, message["id"], "moderated", group_id="g1", db=self.db
        )
        self.assertEqual(self._messages()[0]["content"], "moderated")

    def test_unknown_message(self) -> None:
        RoomService.send_message("t1", player(1), "hi", db=self.db)
        with self.assertRaises(NotFoundError):
            RoomService.delete_message("t1", player(1), "missing", db=self.db)

    def test_soft_delete_keeps_length(self) -> None:
        first = RoomService.send_message("t1", player(1), "first", db=self.db)
        RoomService.send_message("t1", player(2), "second", db=self.db)

        RoomService.delete_message("t1", player(1), first["id"], db=self.db)

        messages = self._messages()
        self.assertEqual(len(messages), 2)
        self.assertEqual(messages[0]["type"], "deleted")
        self.assertEqual(messages[0]["state"], "deleted")
        self.assertEqual(messages[0]["originalType"], "text")
        self.assertIsNotNone(messages[0]["deletedAt"])

    def test_deleted_messages_hidden_from_reads(self) -> None:
        first = RoomService.send_message("t1", player(1), "first", db=self.db)
        RoomService.send_message("t1", player(2), "second", db=self.db)
        RoomService.delete_message("t1", player(1), first["id"], db=self.db)

        member_view = RoomService.list_messages(
            "t1", player(2), include_deleted=True, db=self.db
        )
        self.assertEqual(
            [m["content"] for m in member_view["room"]["messages"]], ["second"]
        )

        audit = RoomService.list_messages(
            "t1", ORGANIZER, group_id="g1", include_deleted=True, db=self.db
        )
        self.assertEqual(len(audit["room"]["messages"]), 2)

    def _send_while_locating(self, content: str) -> Any:
        locate = RoomService._locate_message

        def locate_then_send(*args: Any) -> Any:
            room_ref = locate(*args)
            RoomService.send_message("t1", player(2), content, db=self.db)
            return room_ref

        return patch.object(RoomService, "_locate_message", side_effect=locate_then_send)

    def test_edit_keeps_message_sent_meanwhile(self) -> None:
        first = RoomService.send_message("t1", player(1), "helo", db=self.db)

        with self._send_while_locating("late"):
            RoomService.edit_message("t1", player(1), first["id"], "hello", db=self.db)

        self.assertEqual([m["content"] for m in self._messages()], ["hello", "late"])

    def test_delete_keeps_message_sent_meanwhile(self) -> None:
        first = RoomService.send_message("t1", player(1), "first", db=self.db)

        with self._send_while_locating("late"):
            RoomService.delete_message("t1", player(1), first["id"], db=self.db)

        messages = self._messages()
        self.assertEqual([m["state"] for m in messages], ["deleted", "active"])
        self.assertEqual(messages[1]["content"], "late")

    def test_deleted_message_cannot_be_edited(self) -> None:
        message = RoomService.send_message("t1", player(1), "oops", db=self.db)
        RoomService.delete_message("t1", player(1), message["id"], db=self.db)
        with self.assertRaises(ValidationError):
            RoomService.edit_message("t1", player(1), message["id"], "fixed", db=self.db)

    def test_delete_room(self) -> None:
        seed_group(self.db, "t1", "g2", ["p3"], order=2, room_id="r2")
        seed_room(self.db, "t1", "g2", "r2", ["p3"])
        room = RoomService.ensure_room("t1", "g1", ORGANIZER, db=self.db)

        deleted = RoomService.delete_room("t1", "g1", ORGANIZER, db=self.db)

        self.assertEqual(deleted, room["id"])
        self.assertIsNone(self._group()["roomId"])
        self.assertFalse(self.db.collection("rooms").document(room["id"]).get().exists)
        self.assertTrue(self.db.collection("rooms").document("r2").get().exists)

        with self.assertRaises(NotFoundError):
            RoomService.delete_room("t1", "g1", ORGANIZER, db=self.db)

    def test_visible_messages(self) -> None:
        messages = [
            {"id": "a", "type": "text", "state": "active"},
            {"id": "b", "type": "deleted", "state": "deleted"},
            {"id": "c", "type": "deleted"},
        ]
        self.assertEqual([m["id"] for m in visible_messages(messages)], ["a"])
        self.assertEqual(len(visible_messages(messages, include_deleted=True)), 3)


if __name__ == "__main__":
    unittest.main()

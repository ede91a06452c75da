"""Tests for GroupService."""

from __future__ import annotations

import unittest

from arenapulse.errors import AccessDeniedError, NotFoundError, ValidationError
from arenapulse.group.services import GroupService
from tests.helpers import ORGANIZER, OUTSIDER, player, seed_group, seed_room, seed_tournament
from tests.mock_utils import mock_db


class GroupServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = mock_db()

    def _docs(self, collection: str, tournament_id: str = "t1") -> list[dict]:
        docs = []
        for doc in self.db.collection(collection).stream():
            data = doc.to_dict() or {}
            if doc.exists and data.get("tournamentId") == tournament_id:
                data["id"] = doc.id
                docs.append(data)
        return docs

    def _group(self, group_id: str) -> dict:
        return self.db.collection("groups").document(group_id).get().to_dict()

    def _room(self, room_id: str) -> dict:
        return self.db.collection("rooms").document(room_id).get().to_dict()


class AutoGroupTestCase(GroupServiceTestCase):
    def test_auto_group_splits_in_storage_order(self) -> None:
        seed_tournament(self.db, count=33)

        groups = GroupService.auto_group("t1", ORGANIZER, size=16, db=self.db)

        self.assertEqual([g["name"] for g in groups], ["Group 1", "Group 2", "Group 3"])
        self.assertEqual([len(g["member_ids"]) for g in groups], [16, 16, 1])
        self.assertEqual(groups[0]["member_ids"][0], "p1")
        self.assertEqual(groups[2]["member_ids"], ["p33"])
        self.assertEqual(groups[2]["members"], [{"user_id": "p33", "teamName": "Team 33"}])

    def test_each_group_gets_a_room_with_system_message(self) -> None:
        seed_tournament(self.db, count=33)

        groups = GroupService.auto_group("t1", ORGANIZER, size=16, db=self.db)

        for group in groups:
            room = self._room(group["roomId"])
            self.assertEqual(room["groupId"], group["id"])
            self.assertEqual(room["participant_ids"], group["member_ids"])
            self.assertTrue(room["roomCode"].startswith("RM-"))
            self.assertEqual(len(room["messages"]), 1)
            self.assertEqual(room["messages"][0]["type"], "system")
        last_room = self._room(groups[2]["roomId"])
        self.assertEqual(
            last_room["messages"][0]["content"],
            "Room created for Group 3 with 1 player(s).",
        )

    def test_rerun_replaces_previous_groups_and_rooms(self) -> None:
        seed_tournament(self.db, count=33)
        seed_tournament(self.db, count=4, tournament_id="t2")
        seed_group(self.db, "t2", "other", ["p1"], room_id="other_room")
        seed_room(self.db, "t2", "other", "other_room", ["p1"])

        GroupService.auto_group("t1", ORGANIZER, size=16, db=self.db)
        groups = GroupService.auto_group("t1", ORGANIZER, size=10, db=self.db)

        self.assertEqual(len(groups), 4)
        self.assertEqual(len(self._docs("groups")), 4)
        self.assertEqual(len(self._docs("rooms")), 4)
        # Other tournaments are untouched
        self.assertEqual(len(self._docs("groups", "t2")), 1)
        self.assertEqual(len(self._docs("rooms", "t2")), 1)

    def test_every_participant_grouped_exactly_once(self) -> None:
        seed_tournament(self.db, count=21)

        groups = GroupService.auto_group("t1", ORGANIZER, size=4, db=self.db)

        members = [m for g in groups for m in g["member_ids"]]
        self.assertEqual(sorted(members), sorted(f"p{n}" for n in range(1, 22)))
        self.assertEqual(len(groups), 6)

    def test_default_size_is_sixteen(self) -> None:
        seed_tournament(self.db, count=17)
        groups = GroupService.auto_group("t1", ORGANIZER, db=self.db)
        self.assertEqual([len(g["member_ids"]) for g in groups], [16, 1])

    def test_no_participants(self) -> None:
        seed_tournament(self.db, count=0)
        self.assertEqual(GroupService.auto_group("t1", ORGANIZER, db=self.db), [])

    def test_invalid_size(self) -> None:
        seed_tournament(self.db, count=5)
        with self.assertRaises(ValidationError):
            GroupService.auto_group("t1", ORGANIZER, size=0, db=self.db)

    def test_requires_organizer(self) -> None:
        seed_tournament(self.db, count=5)
        with self.assertRaises(AccessDeniedError):
            GroupService.auto_group("t1", OUTSIDER, db=self.db)

    def test_missing_tournament(self) -> None:
        with self.assertRaises(NotFoundError):
            GroupService.auto_group("nope", ORGANIZER, db=self.db)


class ManualGroupTestCase(GroupServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        seed_tournament(self.db, count=6)

    def test_create_group(self) -> None:
        group = GroupService.create_group("t1", ORGANIZER, ["p1", "p2", "p1"], db=self.db)

        self.assertEqual(group["name"], "Group 1")
        self.assertEqual(group["member_ids"], ["p1", "p2"])
        self.assertIsNone(group["roomId"])
        self.assertEqual(self._group(group["id"])["order"], 1)

        second = GroupService.create_group(
            "t1", ORGANIZER, ["p3"], name="Finals", db=self.db
        )
        self.assertEqual(second["name"], "Finals")
        self.assertEqual(self._group(second["id"])["order"], 2)

    def test_create_group_needs_members(self) -> None:
        with self.assertRaises(ValidationError):
            GroupService.create_group("t1", ORGANIZER, [], db=self.db)

    def test_create_group_rejects_unregistered(self) -> None:
        with self.assertRaises(ValidationError):
            GroupService.create_group("t1", ORGANIZER, ["p1", "ghost"], db=self.db)

    def test_rename_keeps_members_and_room(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1", "p2"], room_id="r1")
        seed_room(self.db, "t1", "g1", "r1", ["p1", "p2"])

        GroupService.rename_group("t1", "g1", ORGANIZER, "  Semis  ", db=self.db)

        group = self._group("g1")
        self.assertEqual(group["name"], "Semis")
        self.assertEqual(group["member_ids"], ["p1", "p2"])
        self.assertEqual(group["roomId"], "r1")
        self.assertEqual(self._room("r1")["groupName"], "Semis")

    def test_rename_rejects_empty_name(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"])
        with self.assertRaises(ValidationError):
            GroupService.rename_group("t1", "g1", ORGANIZER, "   ", db=self.db)

    def test_group_of_other_tournament_is_not_found(self) -> None:
        seed_tournament(self.db, count=2, tournament_id="t2")
        seed_group(self.db, "t2", "g2", ["p1"])
        with self.assertRaises(NotFoundError):
            GroupService.rename_group("t1", "g2", ORGANIZER, "X", db=self.db)

    def test_add_member_once(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"], room_id="r1")
        seed_room(self.db, "t1", "g1", "r1", ["p1"])

        GroupService.add_member("t1", "g1", ORGANIZER, "p2", db=self.db)
        GroupService.add_member("t1", "g1", ORGANIZER, "p2", db=self.db)

        self.assertEqual(self._group("g1")["member_ids"], ["p1", "p2"])
        self.assertEqual(self._room("r1")["participant_ids"], ["p1", "p2"])

    def test_add_member_must_be_registered(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"])
        with self.assertRaises(ValidationError):
            GroupService.add_member("t1", "g1", ORGANIZER, "ghost", db=self.db)

    def test_remove_member(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1", "p2"], room_id="r1")
        seed_room(self.db, "t1", "g1", "r1", ["p1", "p2"])

        GroupService.remove_member("t1", "g1", ORGANIZER, "p1", db=self.db)

        self.assertEqual(self._group("g1")["member_ids"], ["p2"])
        self.assertEqual(self._room("r1")["participant_ids"], ["p2"])

    def test_move_member(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1", "p2"], order=1, room_id="r1")
        seed_group(self.db, "t1", "g2", ["p3"], order=2, room_id="r2")
        seed_room(self.db, "t1", "g1", "r1", ["p1", "p2"])
        seed_room(self.db, "t1", "g2", "r2", ["p3"])

        groups = GroupService.move_member("t1", ORGANIZER, "p2", "g1", "g2", db=self.db)

        self.assertEqual([g["member_ids"] for g in groups], [["p1"], ["p3", "p2"]])
        self.assertEqual(self._room("r1")["participant_ids"], ["p1"])
        self.assertEqual(self._room("r2")["participant_ids"], ["p3", "p2"])

    def test_move_member_retry_changes_nothing(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1", "p2"], order=1)
        seed_group(self.db, "t1", "g2", ["p3"], order=2)

        GroupService.move_member("t1", ORGANIZER, "p2", "g1", "g2", db=self.db)
        GroupService.move_member("t1", ORGANIZER, "p2", "g1", "g2", db=self.db)

        self.assertEqual(self._group("g1")["member_ids"], ["p1"])
        self.assertEqual(self._group("g2")["member_ids"], ["p3", "p2"])

    def test_move_member_missing_from_source_is_still_added(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"], order=1)
        seed_group(self.db, "t1", "g2", ["p3"], order=2)

        GroupService.move_member("t1", ORGANIZER, "p4", "g1", "g2", db=self.db)

        self.assertEqual(self._group("g1")["member_ids"], ["p1"])
        self.assertEqual(self._group("g2")["member_ids"], ["p3", "p4"])

    def test_move_member_must_be_registered(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"], order=1, room_id="r1")
        seed_group(self.db, "t1", "g2", ["p2"], order=2, room_id="r2")
        seed_room(self.db, "t1", "g2", "r2", ["p2"])

        with self.assertRaises(ValidationError):
            GroupService.move_member("t1", ORGANIZER, "stranger", "g1", "g2", db=self.db)

        self.assertEqual(self._group("g2")["member_ids"], ["p2"])
        self.assertEqual(self._room("r2")["participant_ids"], ["p2"])

    def test_move_member_from_a_third_group_is_rejected(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"], order=1)
        seed_group(self.db, "t1", "g2", ["p2"], order=2)
        seed_group(self.db, "t1", "g3", ["p3"], order=3)

        with self.assertRaises(ValidationError):
            GroupService.move_member("t1", ORGANIZER, "p3", "g1", "g2", db=self.db)

        self.assertEqual(self._group("g2")["member_ids"], ["p2"])

    def test_add_member_already_in_another_group(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"], order=1)
        seed_group(self.db, "t1", "g2", ["p2"], order=2)

        with self.assertRaises(ValidationError):
            GroupService.add_member("t1", "g2", ORGANIZER, "p1", db=self.db)

        self.assertEqual(self._group("g1")["member_ids"], ["p1"])
        self.assertEqual(self._group("g2")["member_ids"], ["p2"])

    def test_create_group_with_grouped_member(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"], order=1)

        with self.assertRaises(ValidationError):
            GroupService.create_group("t1", ORGANIZER, ["p2", "p1"], db=self.db)

        self.assertEqual(len(self._docs("groups")), 1)

    def test_create_group_returns_stored_fields(self) -> None:
        group = GroupService.create_group("t1", ORGANIZER, ["p1"], db=self.db)

        self.assertFalse(str(group.get("createdAt")).startswith("Sentinel"))
        self.assertEqual(group["tournamentId"], "t1")
        self.assertEqual(group["members"], [{"user_id": "p1", "teamName": "Team 01"}])

    def test_move_member_same_group(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"])
        with self.assertRaises(ValidationError):
            GroupService.move_member("t1", ORGANIZER, "p1", "g1", "g1", db=self.db)

    def test_delete_group_cascades_to_its_room_only(self) -> None:
        seed_group(self.db, "t1", "g1", ["p1"], order=1, room_id="r1")
        seed_group(self.db, "t1", "g2", ["p2"], order=2, room_id="r2")
        seed_room(self.db, "t1", "g1", "r1", ["p1"])
        seed_room(self.db, "t1", "g2", "r2", ["p2"])

        GroupService.delete_group("t1", "g1", ORGANIZER, db=self.db)

        self.assertFalse(self.db.collection("groups").document("g1").get().exists)
        self.assertFalse(self.db.collection("rooms").document("r1").get().exists)
        self.assertEqual(self._group("g2")["member_ids"], ["p2"])
        self.assertEqual(self._room("r2")["participant_ids"], ["p2"])

    def test_list_groups_requires_organizer(self) -> None:
        with self.assertRaises(AccessDeniedError):
            GroupService.list_groups("t1", player(1), db=self.db)


class MyGroupTestCase(GroupServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        seed_tournament(self.db, count=4)
        seed_group(self.db, "t1", "g1", ["p3", "p1", "p2"], room_id="r1")

    def test_get_my_group(self) -> None:
        group = GroupService.get_my_group("t1", player(1), db=self.db)
        self.assertEqual(group, {"id": "g1", "name": "Group 1", "roomId": "r1"})

    def test_get_my_group_when_not_grouped(self) -> None:
        self.assertIsNone(GroupService.get_my_group("t1", player(4), db=self.db))

    def test_my_group_teams_sorted_by_name(self) -> None:
        teams = GroupService.get_my_group_teams("t1", player(2), db=self.db)
        self.assertEqual(
            [t["teamName"] for t in teams], ["Team 01", "Team 02", "Team 03"]
        )

    def test_my_group_teams_fallback_name(self) -> None:
        seed_group(self.db, "t1", "g2", ["p4", "ghost"], order=2)
        teams = GroupService.get_my_group_teams("t1", player(4), db=self.db)
        self.assertEqual(
            teams,
            [
                {"userId": "ghost", "teamName": "Team"},
                {"userId": "p4", "teamName": "Team 04"},
            ],
        )

    def test_my_group_teams_not_grouped(self) -> None:
        with self.assertRaises(NotFoundError):
            GroupService.get_my_group_teams("t1", player(4), db=self.db)


if __name__ == "__main__":
    unittest.main()

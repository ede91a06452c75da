"""Seed data shared by the service and route tests."""

from __future__ import annotations

import datetime
from typing import Any

ORGANIZER = {"uid": "org1", "name": "Organizer", "isAdmin": False}
ADMIN = {"uid": "admin1", "name": "Admin", "isAdmin": True}
OUTSIDER = {"uid": "stranger", "name": "Stranger", "isAdmin": False}


def player(n: int) -> dict[str, Any]:
    return {"uid": f"p{n}", "name": f"Player {n}", "isAdmin": False}


def participant(n: int) -> dict[str, Any]:
    return {
        "user_id": f"p{n}",
        "teamName": f"Team {n:02d}",
        "phone": f"90000{n:05d}",
        "realName": f"Player {n}",
        "players": [{"ignName": f"ign{n}{i}", "ignId": f"id{n}{i}"} for i in range(4)],
        "registeredAt": datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc),
    }


def seed_tournament(
    db: Any, count: int = 0, tournament_id: str = "t1", **overrides: Any
) -> str:
    """A tournament owned by ORGANIZER with ``count`` registered teams."""
    participants = [participant(n) for n in range(1, count + 1)]
    data = {
        "title": "Arena Cup",
        "organizer_id": ORGANIZER["uid"],
        "isActive": True,
        "capacity": 20000,
        "price": 0.0,
        "startAt": None,
        "participants": participants,
        "participant_ids": [p["user_id"] for p in participants],
        "registeredCount": count,
    }
    data.update(overrides)
    db.collection("tournaments").document(tournament_id).set(data)
    return tournament_id


def seed_group(
    db: Any,
    tournament_id: str,
    group_id: str,
    member_ids: list[str],
    order: int = 1,
    room_id: str | None = None,
    name: str | None = None,
) -> str:
    db.collection("groups").document(group_id).set(
        {
            "tournamentId": tournament_id,
            "name": name or f"Group {order}",
            "order": order,
            "member_ids": list(member_ids),
            "roomId": room_id,
        }
    )
    return group_id


def seed_room(
    db: Any,
    tournament_id: str,
    group_id: str,
    room_id: str,
    member_ids: list[str],
    messages: list[dict[str, Any]] | None = None,
) -> str:
    db.collection("rooms").document(room_id).set(
        {
            "tournamentId": tournament_id,
            "groupId": group_id,
            "groupName": "Group 1",
            "roomCode": "RM-1-1",
            "createdBy": ORGANIZER["uid"],
            "participant_ids": list(member_ids),
            "messages": messages or [],
        }
    )
    return room_id

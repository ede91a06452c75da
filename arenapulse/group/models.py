"""Data models for the group blueprint."""

from __future__ import annotations

from typing import Any, TypedDict

from arenapulse.core.types import FirestoreDocument


class GroupMember(TypedDict):
    """A group member as shown to organizers."""

    user_id: str
    teamName: str


class Group(FirestoreDocument, total=False):
    """A group document in Firestore."""

    tournamentId: str
    name: str
    order: int
    member_ids: list[str]
    roomId: str | None
    createdAt: Any

    # UI and calculated fields
    members: list[GroupMember]

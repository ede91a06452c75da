"""Data models for the tournament blueprint."""

from __future__ import annotations

from typing import Any, TypedDict

from arenapulse.core.types import FirestoreDocument


class PlayerEntry(TypedDict):
    """One in-game identity on a registered team."""

    ignName: str
    ignId: str


class Participant(TypedDict, total=False):
    """A team registration embedded in a tournament document."""

    user_id: str
    teamName: str
    phone: str
    realName: str
    players: list[PlayerEntry]
    registeredAt: Any


class Tournament(FirestoreDocument, total=False):
    """A tournament document in Firestore."""

    title: str
    description: str
    game: str
    bannerUrl: str
    startAt: Any
    endAt: Any
    capacity: int
    price: float
    rules: str
    prizes: str
    organizer_id: str
    isActive: bool
    participants: list[Participant]
    participant_ids: list[str]
    registeredCount: int
    createdAt: Any

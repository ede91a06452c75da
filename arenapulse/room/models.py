"""Data models for group rooms."""

from __future__ import annotations

import enum
from typing import Any, TypedDict

from arenapulse.core.types import FirestoreDocument


class MessageType(str, enum.Enum):
    """Kinds of room messages."""

    TEXT = "text"
    IMAGE = "image"
    CREDENTIALS = "credentials"
    SYSTEM = "system"
    DELETED = "deleted"

    def __str__(self) -> str:
        return self.value


# Types a user may send; system and deleted are set by the server
SENDABLE_TYPES = frozenset(
    {MessageType.TEXT.value, MessageType.IMAGE.value, MessageType.CREDENTIALS.value}
)


class MessageState(str, enum.Enum):
    """Lifecycle of a message. Deleted messages are hidden from normal reads."""

    ACTIVE = "active"
    EDITED = "edited"
    DELETED = "deleted"


class Message(TypedDict, total=False):
    """A message embedded in a room document."""

    id: str
    senderId: str
    type: str
    content: str
    imageUrl: str | None
    timestamp: Any
    state: str
    editedAt: Any
    deletedAt: Any
    originalType: str


class Room(FirestoreDocument, total=False):
    """A room document in Firestore, scoped to one group."""

    tournamentId: str
    groupId: str
    groupName: str
    roomCode: str
    createdBy: str
    participant_ids: list[str]
    messages: list[Message]
    createdAt: Any

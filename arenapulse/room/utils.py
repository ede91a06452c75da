"""Builders for room and message documents."""

from __future__ import annotations

import random
import time
import uuid

from firebase_admin import firestore

from arenapulse.utils import utcnow

from .models import Message, MessageState, MessageType, Room


def generate_room_code() -> str:
    """Human-facing room code, e.g. RM-1700000000000-4821."""
    return f"RM-{int(time.time() * 1000)}-{random.randint(0, 9999)}"  # nosec B311


def new_message(
    sender_id: str,
    content: str = "",
    message_type: str = MessageType.TEXT,
    image_url: str | None = None,
) -> Message:
    """Build a message entry for a room's message list."""
    return {
        "id": uuid.uuid4().hex,
        "senderId": sender_id,
        "type": str(message_type),
        "content": content,
        "imageUrl": image_url,
        "timestamp": utcnow(),
        "state": MessageState.ACTIVE.value,
        "editedAt": None,
        "deletedAt": None,
    }


def new_room(
    tournament_id: str,
    group_id: str,
    group_name: str,
    member_ids: list[str],
    created_by: str | None,
    system_message: str | None = None,
) -> Room:
    """Build a room document scoped to one group."""
    messages = []
    if system_message:
        messages.append(new_message(created_by, system_message, MessageType.SYSTEM))
    return {
        "tournamentId": tournament_id,
        "groupId": group_id,
        "groupName": group_name,
        "roomCode": generate_room_code(),
        "createdBy": created_by,
        "participant_ids": list(member_ids),
        "messages": messages,
        "createdAt": firestore.SERVER_TIMESTAMP,
    }

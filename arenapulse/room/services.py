"""Service layer for group rooms and their messages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from firebase_admin import firestore

from arenapulse.constants import ROOMS_COLLECTION
from arenapulse.errors import AccessDeniedError, NotFoundError, ValidationError
from arenapulse.group.utils import find_member_group, get_group_or_404
from arenapulse.tournament.utils import get_tournament_or_404, is_organizer
from arenapulse.utils import BatchWriter, to_jsonable, utcnow

from .models import SENDABLE_TYPES, MessageState, MessageType
from .utils import new_message, new_room

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)


def is_deleted(message: dict[str, Any]) -> bool:
    """True for soft-deleted messages."""
    return (
        message.get("state") == MessageState.DELETED.value
        or message.get("type") == MessageType.DELETED.value
    )


def visible_messages(
    messages: list[dict[str, Any]], include_deleted: bool = False
) -> list[dict[str, Any]]:
    """Messages in insertion order, without deleted ones unless asked for."""
    if include_deleted:
        return list(messages)
    return [m for m in messages if not is_deleted(m)]


class RoomService:
    """Handles rooms scoped to tournament groups.

    Methods taking ``group_id=None`` act on the caller's own group and
    require membership. With a ``group_id`` they are organizer operations,
    except reads which members of that group may also make.
    """

    @staticmethod
    def _resolve(
        db: Client,
        tournament_id: str,
        user: dict[str, Any],
        group_id: str | None,
        members_allowed: bool = False,
    ) -> tuple[dict[str, Any], DocumentReference, dict[str, Any], bool]:
        """Load tournament and group, checking the caller's access."""
        _, t_data = get_tournament_or_404(db, tournament_id)
        organizer = is_organizer(t_data, user)

        if group_id is None:
            found = find_member_group(db, tournament_id, user["uid"])
            if found is None:
                raise NotFoundError("You are not in any group yet")
            group_ref, group = found
            return t_data, group_ref, group, False

        group_ref, group = get_group_or_404(db, tournament_id, group_id)
        if not organizer:
            is_member = user.get("uid") in group.get("member_ids", [])
            if not (members_allowed and is_member):
                raise AccessDeniedError("Not allowed")
        return t_data, group_ref, group, organizer

    @staticmethod
    def _load(
        db: Client, group: dict[str, Any]
    ) -> tuple[DocumentReference, dict[str, Any]] | None:
        """The group's linked room, or None if it has none yet."""
        room_id = group.get("roomId")
        if not room_id:
            return None
        room_ref = db.collection(ROOMS_COLLECTION).document(room_id)
        doc = room_ref.get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return room_ref, data

    @staticmethod
    def _ensure(
        db: Client,
        tournament_id: str,
        group_ref: DocumentReference,
        group: dict[str, Any],
        actor_id: str | None,
    ) -> tuple[DocumentReference, dict[str, Any]]:
        """Return the group's room, creating and linking an empty one if missing."""
        found = RoomService._load(db, group)
        if found is not None:
            return found

        room_ref = db.collection(ROOMS_COLLECTION).document()
        data = new_room(
            tournament_id,
            group["id"],
            group.get("name", ""),
            group.get("member_ids", []),
            created_by=actor_id,
        )
        writer = BatchWriter(db)
        writer.set(room_ref, data)
        writer.update(group_ref, {"roomId": room_ref.id})
        writer.commit()
        group["roomId"] = room_ref.id
        logger.info(f"Room {room_ref.id} created for group {group['id']}")

        data = room_ref.get().to_dict() or {}
        data["id"] = room_ref.id
        return room_ref, data

    @staticmethod
    def _room_view(room: dict[str, Any], include_deleted: bool = False) -> dict[str, Any]:
        view = dict(room)
        view["messages"] = visible_messages(room.get("messages", []), include_deleted)
        return to_jsonable(view)

    @staticmethod
    def ensure_room(
        tournament_id: str,
        group_id: str,
        user: dict[str, Any],
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Return the group's room, creating it on first access."""
        if db is None:
            db = firestore.client()
        _, group_ref, group, _ = RoomService._resolve(db, tournament_id, user, group_id)
        _, room = RoomService._ensure(db, tournament_id, group_ref, group, user["uid"])
        return RoomService._room_view(room)

    @staticmethod
    def list_messages(
        tournament_id: str,
        user: dict[str, Any],
        group_id: str | None = None,
        include_deleted: bool = False,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """The full message list of a group's room.

        Deleted messages are left out; organizers may ask for them to audit.
        Only organizers create a missing room here. Members see an empty one
        until a room exists.
        """
        if db is None:
            db = firestore.client()
        _, group_ref, group, organizer = RoomService._resolve(
            db, tournament_id, user, group_id, members_allowed=True
        )
        if organizer:
            _, room = RoomService._ensure(
                db, tournament_id, group_ref, group, user["uid"]
            )
        else:
            found = RoomService._load(db, group)
            room = found[1] if found else {"id": None, "messages": []}
        return {
            "group": {"id": group["id"], "name": group.get("name"), "roomId": room["id"]},
            "room": RoomService._room_view(room, include_deleted and organizer),
        }

    @staticmethod
    def send_message(
        tournament_id: str,
        user: dict[str, Any],
        content: str | None,
        message_type: str | None = None,
        image_url: str | None = None,
        group_id: str | None = None,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Append a message to a group's room."""
        if db is None:
            db = firestore.client()
        message_type = str(message_type or MessageType.TEXT)
        if message_type not in SENDABLE_TYPES:
            raise ValidationError(f"Invalid message type: {message_type}")
        content = str(content or "").strip()
        if not content and not image_url:
            raise ValidationError("Message content or image is required")

        _, group_ref, group, _ = RoomService._resolve(db, tournament_id, user, group_id)
        room_ref, _ = RoomService._ensure(
            db, tournament_id, group_ref, group, user["uid"]
        )

        message = new_message(user["uid"], content, message_type, image_url or None)
        room_ref.update({"messages": firestore.ArrayUnion([message])})
        return to_jsonable(message)

    @staticmethod
    def _locate_message(
        db: Client,
        tournament_id: str,
        user: dict[str, Any],
        group_id: str | None,
        message_id: str,
    ) -> DocumentReference:
        """Find the room of a message the caller may change.

        Members may change their own messages, organizers any of them.
        """
        _, _, group, organizer = RoomService._resolve(db, tournament_id, user, group_id)
        found = RoomService._load(db, group)
        if found is None:
            raise NotFoundError("Message not found")
        room_ref, room = found

        message = next(
            (m for m in room.get("messages", []) if m.get("id") == message_id), None
        )
        if message is None:
            raise NotFoundError("Message not found")
        if not organizer and message.get("senderId") != user["uid"]:
            raise AccessDeniedError("Not allowed")
        return room_ref

    @staticmethod
    def _rewrite_message(
        db: Client,
        room_ref: DocumentReference,
        message_id: str,
        change: Callable[[dict[str, Any]], bool],
    ) -> dict[str, Any]:
        """Apply ``change`` to one message and write the list back.

        Runs in a transaction, so a message sent between the read and the
        write makes the commit retry on the fresh list. ``change`` returns
        False when there is nothing to write.
        """

        @firestore.transactional
        def apply(transaction: Any) -> dict[str, Any]:
            snapshot = next(iter(transaction.get(room_ref)), None)
            messages = []
            if snapshot is not None and snapshot.exists:
                messages = (snapshot.to_dict() or {}).get("messages", [])
            message = next((m for m in messages if m.get("id") == message_id), None)
            if message is None:
                raise NotFoundError("Message not found")
            if change(message):
                transaction.update(room_ref, {"messages": messages})
            return message

        return apply(db.transaction())

    @staticmethod
    def edit_message(
        tournament_id: str,
        user: dict[str, Any],
        message_id: str,
        content: str,
        group_id: str | None = None,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Replace a message's content in place. No history is kept."""
        if db is None:
            db = firestore.client()
        content = str(content or "").strip()
        if not content:
            raise ValidationError("Message content is required")

        room_ref = RoomService._locate_message(
            db, tournament_id, user, group_id, message_id
        )

        def edit(message: dict[str, Any]) -> bool:
            if is_deleted(message):
                raise ValidationError("Deleted messages cannot be edited")
            message.update(
                {
                    "content": content,
                    "state": MessageState.EDITED.value,
                    "editedAt": utcnow(),
                }
            )
            return True

        return to_jsonable(RoomService._rewrite_message(db, room_ref, message_id, edit))

    @staticmethod
    def delete_message(
        tournament_id: str,
        user: dict[str, Any],
        message_id: str,
        group_id: str | None = None,
        db: Client | None = None,
    ) -> None:
        """Soft-delete a message. The entry stays in the list, marked deleted."""
        if db is None:
            db = firestore.client()
        room_ref = RoomService._locate_message(
            db, tournament_id, user, group_id, message_id
        )

        def soft_delete(message: dict[str, Any]) -> bool:
            if is_deleted(message):
                return False
            message.update(
                {
                    "originalType": message.get("type"),
                    "type": MessageType.DELETED.value,
                    "state": MessageState.DELETED.value,
                    "deletedAt": utcnow(),
                }
            )
            return True

        RoomService._rewrite_message(db, room_ref, message_id, soft_delete)
        logger.info(f"Message {message_id} deleted by {user['uid']}")

    @staticmethod
    def delete_room(
        tournament_id: str,
        group_id: str,
        user: dict[str, Any],
        db: Client | None = None,
    ) -> str:
        """Delete a group's room with its messages and unlink it from the group."""
        if db is None:
            db = firestore.client()
        _, group_ref, group, _ = RoomService._resolve(db, tournament_id, user, group_id)

        room_id = group.get("roomId")
        if not room_id:
            raise NotFoundError("Room not found")
        room_ref = db.collection(ROOMS_COLLECTION).document(room_id)
        if not room_ref.get().exists:
            raise NotFoundError("Room not found")

        writer = BatchWriter(db)
        writer.delete(room_ref)
        writer.update(group_ref, {"roomId": None})
        writer.commit()
        logger.info(f"Room {room_id} of group {group_id} deleted")
        return room_id

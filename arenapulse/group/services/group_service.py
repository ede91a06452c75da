"""Service layer for tournament groups and their membership."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from arenapulse.constants import (
    DEFAULT_GROUP_SIZE,
    GROUPS_COLLECTION,
    ROOMS_COLLECTION,
)
from arenapulse.errors import NotFoundError, ValidationError
from arenapulse.group.utils import find_member_group, get_group_or_404, list_group_docs
from arenapulse.room.utils import new_room
from arenapulse.tournament.utils import get_tournament_or_404, require_organizer
from arenapulse.utils import BatchWriter, serialize_doc, to_jsonable

from ..models import Group
from .grouping import group_name, partition_participants

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


class GroupService:
    """Service class for group-related operations."""

    @staticmethod
    def _team_names(tournament_data: dict[str, Any]) -> dict[str, str]:
        """Map participant user ids to a display team name."""
        names = {}
        for p in tournament_data.get("participants", []):
            uid = p.get("user_id")
            if uid:
                names[uid] = str(p.get("teamName") or "").strip() or "Team"
        return names

    @staticmethod
    def _enrich(group: dict[str, Any], team_names: dict[str, str]) -> Group:
        """Attach member team names to a group dict."""
        group = dict(group)
        group["members"] = [
            {"user_id": uid, "teamName": team_names.get(uid, "Team")}
            for uid in group.get("member_ids", [])
        ]
        return to_jsonable(group)

    @staticmethod
    def _registered_members(
        tournament_data: dict[str, Any], member_ids: list[str]
    ) -> list[str]:
        """De-duplicate member ids and check that each one is registered."""
        registered = set(tournament_data.get("participant_ids", []))
        clean = list(dict.fromkeys(str(m).strip() for m in member_ids if m))
        unknown = [m for m in clean if m not in registered]
        if unknown:
            raise ValidationError(
                f"Not registered for this tournament: {', '.join(unknown)}"
            )
        return clean

    @staticmethod
    def _check_not_grouped(
        db: Client,
        tournament_id: str,
        user_id: str,
        allowed: tuple[str, ...] = (),
    ) -> None:
        """A participant belongs to at most one group of a tournament."""
        found = find_member_group(db, tournament_id, user_id)
        if found is not None and found[1]["id"] not in allowed:
            name = found[1].get("name") or found[1]["id"]
            raise ValidationError(f"{user_id} is already in {name}")

    @staticmethod
    def list_groups(
        tournament_id: str, user: dict[str, Any], db: Client | None = None
    ) -> list[Group]:
        """List a tournament's groups in creation order. Organizer only."""
        if db is None:
            db = firestore.client()
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)
        return GroupService._collect(db, tournament_id, t_data)

    @staticmethod
    def _collect(
        db: Client, tournament_id: str, tournament_data: dict[str, Any]
    ) -> list[Group]:
        team_names = GroupService._team_names(tournament_data)
        groups = []
        for doc in list_group_docs(db, tournament_id):
            data = doc.to_dict() or {}
            data["id"] = doc.id
            groups.append(GroupService._enrich(data, team_names))
        return groups

    @staticmethod
    def auto_group(
        tournament_id: str,
        user: dict[str, Any],
        size: int | None = None,
        db: Client | None = None,
    ) -> list[Group]:
        """Split registered participants into groups of ``size``, each with a room.

        Existing groups and rooms of the tournament are replaced. The deletes
        and the new groups and rooms are written in one batch.
        """
        if db is None:
            db = firestore.client()
        if size is None:
            size = DEFAULT_GROUP_SIZE
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)

        participant_ids = [p.get("user_id") for p in t_data.get("participants", [])]
        try:
            chunks = partition_participants(participant_ids, size)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        writer = BatchWriter(db)
        for collection in (ROOMS_COLLECTION, GROUPS_COLLECTION):
            stale = (
                db.collection(collection)
                .where(filter=firestore.FieldFilter("tournamentId", "==", tournament_id))
                .stream()
            )
            for doc in stale:
                writer.delete(doc.reference)

        for number, member_ids in enumerate(chunks, start=1):
            name = group_name(number)
            group_ref = db.collection(GROUPS_COLLECTION).document()
            room_ref = db.collection(ROOMS_COLLECTION).document()
            writer.set(
                room_ref,
                new_room(
                    tournament_id,
                    group_ref.id,
                    name,
                    member_ids,
                    created_by=user.get("uid"),
                    system_message=(
                        f"Room created for {name} with {len(member_ids)} player(s)."
                    ),
                ),
            )
            writer.set(
                group_ref,
                {
                    "tournamentId": tournament_id,
                    "name": name,
                    "order": number,
                    "member_ids": member_ids,
                    "roomId": room_ref.id,
                    "createdAt": firestore.SERVER_TIMESTAMP,
                },
            )
        writer.commit()

        logger.info(
            f"Auto-grouped {sum(len(c) for c in chunks)} participant(s) of "
            f"tournament {tournament_id} into {len(chunks)} group(s) of {size}"
        )
        return GroupService._collect(db, tournament_id, t_data)

    @staticmethod
    def create_group(
        tournament_id: str,
        user: dict[str, Any],
        member_ids: list[str],
        name: str | None = None,
        db: Client | None = None,
    ) -> Group:
        """Create a hand-picked group. The room is created on first access."""
        if db is None:
            db = firestore.client()
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)

        members = GroupService._registered_members(t_data, member_ids or [])
        if not members:
            raise ValidationError("At least one member is required")
        for member_id in members:
            GroupService._check_not_grouped(db, tournament_id, member_id)

        existing = list_group_docs(db, tournament_id)
        next_order = 1 + max(
            ((d.to_dict() or {}).get("order", 0) for d in existing), default=0
        )
        payload = {
            "tournamentId": tournament_id,
            "name": (name or "").strip() or group_name(len(existing) + 1),
            "order": next_order,
            "member_ids": members,
            "roomId": None,
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        ref = db.collection(GROUPS_COLLECTION).document()
        ref.set(payload)
        return GroupService._enrich(
            serialize_doc(ref.get()) or {}, GroupService._team_names(t_data)
        )

    @staticmethod
    def rename_group(
        tournament_id: str,
        group_id: str,
        user: dict[str, Any],
        name: str,
        db: Client | None = None,
    ) -> list[Group]:
        """Rename a group and its room. Membership and room link are untouched."""
        if db is None:
            db = firestore.client()
        new_name = (name or "").strip()
        if not new_name:
            raise ValidationError("Group name is required")
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)
        group_ref, group = get_group_or_404(db, tournament_id, group_id)

        writer = BatchWriter(db)
        writer.update(group_ref, {"name": new_name})
        if group.get("roomId"):
            room_ref = db.collection(ROOMS_COLLECTION).document(group["roomId"])
            if room_ref.get().exists:
                writer.update(room_ref, {"groupName": new_name})
        writer.commit()
        return GroupService._collect(db, tournament_id, t_data)

    @staticmethod
    def add_member(
        tournament_id: str,
        group_id: str,
        user: dict[str, Any],
        user_id: str,
        db: Client | None = None,
    ) -> list[Group]:
        """Append a registered participant to a group (and its room)."""
        if db is None:
            db = firestore.client()
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)
        group_ref, group = get_group_or_404(db, tournament_id, group_id)
        if not user_id:
            raise ValidationError("User is required")
        user_id = GroupService._registered_members(t_data, [user_id])[0]
        GroupService._check_not_grouped(db, tournament_id, user_id, (group_id,))

        writer = BatchWriter(db)
        if user_id not in group.get("member_ids", []):
            writer.update(group_ref, {"member_ids": firestore.ArrayUnion([user_id])})
        GroupService._sync_room(db, writer, group, add=user_id)
        writer.commit()
        return GroupService._collect(db, tournament_id, t_data)

    @staticmethod
    def remove_member(
        tournament_id: str,
        group_id: str,
        user: dict[str, Any],
        user_id: str,
        db: Client | None = None,
    ) -> list[Group]:
        """Drop a member from one group. The registration itself stays."""
        if db is None:
            db = firestore.client()
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)
        group_ref, group = get_group_or_404(db, tournament_id, group_id)

        writer = BatchWriter(db)
        if user_id in group.get("member_ids", []):
            writer.update(group_ref, {"member_ids": firestore.ArrayRemove([user_id])})
        GroupService._sync_room(db, writer, group, remove=user_id)
        writer.commit()
        return GroupService._collect(db, tournament_id, t_data)

    @staticmethod
    def move_member(
        tournament_id: str,
        user: dict[str, Any],
        user_id: str,
        from_group_id: str,
        to_group_id: str,
        db: Client | None = None,
    ) -> list[Group]:
        """Move a member from one group to another.

        Removal from the source is best effort: a member missing from it is
        still added to the target. Repeating the call changes nothing.
        """
        if db is None:
            db = firestore.client()
        if not user_id:
            raise ValidationError("User is required")
        if from_group_id == to_group_id:
            raise ValidationError("Source and target group must differ")
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)
        from_ref, from_group = get_group_or_404(db, tournament_id, from_group_id)
        to_ref, to_group = get_group_or_404(db, tournament_id, to_group_id)
        user_id = GroupService._registered_members(t_data, [user_id])[0]
        GroupService._check_not_grouped(
            db, tournament_id, user_id, (from_group_id, to_group_id)
        )

        writer = BatchWriter(db)
        if user_id in from_group.get("member_ids", []):
            writer.update(from_ref, {"member_ids": firestore.ArrayRemove([user_id])})
        if user_id not in to_group.get("member_ids", []):
            writer.update(to_ref, {"member_ids": firestore.ArrayUnion([user_id])})
        GroupService._sync_room(db, writer, from_group, remove=user_id)
        GroupService._sync_room(db, writer, to_group, add=user_id)
        writer.commit()
        return GroupService._collect(db, tournament_id, t_data)

    @staticmethod
    def _sync_room(
        db: Client,
        writer: BatchWriter,
        group: dict[str, Any],
        add: str | None = None,
        remove: str | None = None,
    ) -> None:
        """Mirror a membership change onto the group's room, if it has one."""
        room_id = group.get("roomId")
        if not room_id:
            return
        room_ref = db.collection(ROOMS_COLLECTION).document(room_id)
        room = room_ref.get()
        if not room.exists:
            return
        current = (room.to_dict() or {}).get("participant_ids", [])
        if add and add not in current:
            writer.update(room_ref, {"participant_ids": firestore.ArrayUnion([add])})
        if remove and remove in current:
            writer.update(
                room_ref, {"participant_ids": firestore.ArrayRemove([remove])}
            )

    @staticmethod
    def delete_group(
        tournament_id: str,
        group_id: str,
        user: dict[str, Any],
        db: Client | None = None,
    ) -> None:
        """Delete a group and its room. Members are not reassigned."""
        if db is None:
            db = firestore.client()
        _, t_data = get_tournament_or_404(db, tournament_id)
        require_organizer(t_data, user)
        group_ref, group = get_group_or_404(db, tournament_id, group_id)

        writer = BatchWriter(db)
        rooms = (
            db.collection(ROOMS_COLLECTION)
            .where(filter=firestore.FieldFilter("groupId", "==", group_id))
            .stream()
        )
        for room_doc in rooms:
            writer.delete(room_doc.reference)
        writer.delete(group_ref)
        writer.commit()
        logger.info(f"Group {group_id} of tournament {tournament_id} deleted")

    @staticmethod
    def get_my_group(
        tournament_id: str, user: dict[str, Any], db: Client | None = None
    ) -> dict[str, Any] | None:
        """The caller's group in a tournament, or None if not grouped yet."""
        if db is None:
            db = firestore.client()
        get_tournament_or_404(db, tournament_id)
        found = find_member_group(db, tournament_id, user["uid"])
        if found is None:
            return None
        _, group = found
        return to_jsonable(
            {"id": group["id"], "name": group.get("name"), "roomId": group.get("roomId")}
        )

    @staticmethod
    def get_my_group_teams(
        tournament_id: str, user: dict[str, Any], db: Client | None = None
    ) -> list[dict[str, str]]:
        """Team names of the caller's group, sorted by name."""
        if db is None:
            db = firestore.client()
        _, t_data = get_tournament_or_404(db, tournament_id)
        found = find_member_group(db, tournament_id, user["uid"])
        if found is None:
            raise NotFoundError("You are not in any group yet")
        _, group = found

        team_names = GroupService._team_names(t_data)
        teams = [
            {"userId": uid, "teamName": team_names.get(uid, "Team")}
            for uid in dict.fromkeys(group.get("member_ids", []))
        ]
        teams.sort(key=lambda t: t["teamName"].lower())
        return teams

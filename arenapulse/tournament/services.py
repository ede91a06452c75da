"""Service layer for tournament business logic."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from arenapulse.constants import (
    DEFAULT_CAPACITY,
    GROUPS_COLLECTION,
    MAX_TEAM_PLAYERS,
    MIN_TEAM_PLAYERS,
    ROOMS_COLLECTION,
    TOURNAMENTS_COLLECTION,
)
from arenapulse.errors import DuplicateResourceError, ValidationError
from arenapulse.utils import BatchWriter, serialize_doc, to_jsonable, utcnow

from .utils import (
    clean_phone,
    get_tournament_or_404,
    parse_datetime,
    require_organizer,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

# API field -> document field
EDITABLE_FIELDS = {
    "title": "title",
    "description": "description",
    "game": "game",
    "banner_url": "bannerUrl",
    "start_at": "startAt",
    "end_at": "endAt",
    "capacity": "capacity",
    "price": "price",
    "rules": "rules",
    "prizes": "prizes",
    "is_active": "isActive",
}


PUBLIC_PARTICIPANT_FIELDS = ("user_id", "teamName", "registeredAt")


def public_view(data: dict[str, Any]) -> dict[str, Any]:
    """Drop registration contact details from a tournament for public reads."""
    view = dict(data)
    view["participants"] = [
        {k: p.get(k) for k in PUBLIC_PARTICIPANT_FIELDS}
        for p in data.get("participants", [])
    ]
    return view


class TournamentService:
    """Handles business logic and data access for tournaments."""

    @staticmethod
    def _normalize_fields(data: dict[str, Any]) -> dict[str, Any]:
        """Map API fields onto document fields, coercing and validating values."""
        payload: dict[str, Any] = {}
        for api_key, doc_key in EDITABLE_FIELDS.items():
            if api_key in data:
                payload[doc_key] = data[api_key]

        if "title" in payload:
            title = str(payload["title"] or "").strip()
            if not title:
                raise ValidationError("Title is required")
            payload["title"] = title

        for key in ("startAt", "endAt"):
            if key in payload:
                payload[key] = parse_datetime(payload[key], key)

        if "capacity" in payload:
            try:
                capacity = int(payload["capacity"] or 0)
            except (TypeError, ValueError):
                capacity = 0
            payload["capacity"] = capacity if capacity > 0 else DEFAULT_CAPACITY

        if "price" in payload:
            try:
                price = float(payload["price"] or 0)
            except (TypeError, ValueError):
                price = 0.0
            payload["price"] = price if price >= 0 else 0.0

        if "isActive" in payload:
            payload["isActive"] = bool(payload["isActive"])
        return payload

    @staticmethod
    def create_tournament(
        data: dict[str, Any], user: dict[str, Any], db: Client | None = None
    ) -> str:
        """Create a tournament owned by the user and return its ID."""
        if db is None:
            db = firestore.client()
        if "title" not in data:
            raise ValidationError("Title is required")

        payload = {
            "description": None,
            "game": None,
            "bannerUrl": None,
            "startAt": None,
            "endAt": None,
            "capacity": DEFAULT_CAPACITY,
            "price": 0.0,
            "rules": None,
            "prizes": None,
            "isActive": True,
        }
        payload.update(TournamentService._normalize_fields(data))
        payload.update(
            {
                "organizer_id": user["uid"],
                "participants": [],
                "participant_ids": [],
                "registeredCount": 0,
                "createdAt": firestore.SERVER_TIMESTAMP,
            }
        )
        _, ref = db.collection(TOURNAMENTS_COLLECTION).add(payload)
        logger.info(f"Tournament {ref.id} created by {user['uid']}")
        return str(ref.id)

    @staticmethod
    def list_tournaments(
        organizer_id: str | None = None,
        participant_id: str | None = None,
        active: bool = True,
        page: int = 1,
        limit: int = 20,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """List tournaments, soonest first, one page at a time."""
        if db is None:
            db = firestore.client()
        page = max(1, page)
        limit = max(1, limit)

        query = db.collection(TOURNAMENTS_COLLECTION)
        if active:
            query = query.where(filter=firestore.FieldFilter("isActive", "==", True))
        if organizer_id:
            query = query.where(
                filter=firestore.FieldFilter("organizer_id", "==", organizer_id)
            )
        if participant_id:
            query = query.where(
                filter=firestore.FieldFilter(
                    "participant_ids", "array_contains", participant_id
                )
            )

        items = [public_view(serialize_doc(doc)) for doc in query.stream()]
        # Undated tournaments go last; ISO strings sort chronologically
        items.sort(key=lambda t: (t.get("startAt") is None, t.get("startAt") or ""))

        total = len(items)
        start = (page - 1) * limit
        return {
            "items": items[start : start + limit],
            "total": total,
            "page": page,
            "totalPages": math.ceil(total / limit),
        }

    @staticmethod
    def get_tournament(tournament_id: str, db: Client | None = None) -> dict[str, Any]:
        """Fetch a single tournament."""
        if db is None:
            db = firestore.client()
        _, data = get_tournament_or_404(db, tournament_id)
        return to_jsonable(public_view(data))

    @staticmethod
    def update_tournament(
        tournament_id: str,
        user: dict[str, Any],
        update_data: dict[str, Any],
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Update tournament details with ownership check."""
        if db is None:
            db = firestore.client()
        ref, data = get_tournament_or_404(db, tournament_id)
        require_organizer(data, user)

        payload = TournamentService._normalize_fields(update_data)
        if payload:
            ref.update(payload)
        return TournamentService.get_tournament(tournament_id, db=db)

    @staticmethod
    def delete_tournament(
        tournament_id: str, user: dict[str, Any], db: Client | None = None
    ) -> None:
        """Delete a tournament together with its groups and rooms."""
        if db is None:
            db = firestore.client()
        ref, data = get_tournament_or_404(db, tournament_id)
        require_organizer(data, user)

        writer = BatchWriter(db)
        for collection in (ROOMS_COLLECTION, GROUPS_COLLECTION):
            docs = (
                db.collection(collection)
                .where(filter=firestore.FieldFilter("tournamentId", "==", tournament_id))
                .stream()
            )
            for doc in docs:
                writer.delete(doc.reference)
        writer.delete(ref)
        writer.commit()
        logger.info(f"Tournament {tournament_id} deleted by {user.get('uid')}")

    @staticmethod
    def _validate_players(players: Any) -> list[dict[str, str]]:
        """Check the roster: four named players plus an optional substitute."""
        entries = [p for p in players if p] if isinstance(players, list) else []
        if not MIN_TEAM_PLAYERS <= len(entries) <= MAX_TEAM_PLAYERS:
            raise ValidationError(
                f"Provide {MIN_TEAM_PLAYERS}-{MAX_TEAM_PLAYERS} players"
            )

        roster = []
        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                raise ValidationError("Each player must be an object")
            ign_name = str(entry.get("ign_name") or entry.get("ignName") or "").strip()
            ign_id = str(entry.get("ign_id") or entry.get("ignId") or "").strip()
            if index < MIN_TEAM_PLAYERS and not (ign_name and ign_id):
                raise ValidationError(
                    f"First {MIN_TEAM_PLAYERS} players must include IGN name & ID"
                )
            roster.append({"ignName": ign_name, "ignId": ign_id})
        return roster

    @staticmethod
    def register(
        tournament_id: str,
        user: dict[str, Any],
        payload: dict[str, Any],
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Register the user's team for a tournament."""
        if db is None:
            db = firestore.client()

        team_name = str(payload.get("team_name") or "").strip()
        phone = clean_phone(payload.get("phone"))
        real_name = str(payload.get("real_name") or "").strip()
        if not team_name:
            raise ValidationError("Team name is required")
        if not phone:
            raise ValidationError("Phone number is required")
        if not real_name:
            raise ValidationError("Real name is required")
        players = TournamentService._validate_players(payload.get("players"))

        ref, data = get_tournament_or_404(db, tournament_id)
        uid = user["uid"]
        for p in data.get("participants", []):
            if (
                p.get("user_id") == uid
                or clean_phone(p.get("phone")) == phone
                or str(p.get("teamName") or "").strip().lower() == team_name.lower()
            ):
                raise DuplicateResourceError(
                    "Already registered for this tournament (phone/team/user)"
                )

        capacity = data.get("capacity") or DEFAULT_CAPACITY
        if int(data.get("registeredCount") or 0) >= capacity:
            raise ValidationError("Capacity full")

        participant = {
            "user_id": uid,
            "teamName": team_name,
            "phone": phone,
            "realName": real_name,
            "players": players,
            "registeredAt": utcnow(),
        }
        ref.update(
            {
                "participants": firestore.ArrayUnion([participant]),
                "participant_ids": firestore.ArrayUnion([uid]),
                "registeredCount": firestore.Increment(1),
            }
        )
        logger.info(f"Team {team_name!r} registered for tournament {tournament_id}")
        return to_jsonable(participant)

    @staticmethod
    def list_participants(
        tournament_id: str, user: dict[str, Any], db: Client | None = None
    ) -> list[dict[str, Any]]:
        """List registrations in storage order. Organizer only."""
        if db is None:
            db = firestore.client()
        _, data = get_tournament_or_404(db, tournament_id)
        require_organizer(data, user)
        return to_jsonable(data.get("participants", []))

    @staticmethod
    def remove_participant(
        tournament_id: str,
        user: dict[str, Any],
        user_id: str,
        db: Client | None = None,
    ) -> list[dict[str, Any]]:
        """Remove a registration and strip the user from groups and rooms.

        All writes go out in one batch so the registration, group membership
        and room membership change together.
        """
        if db is None:
            db = firestore.client()
        ref, data = get_tournament_or_404(db, tournament_id)
        require_organizer(data, user)

        participants = data.get("participants", [])
        remaining = [p for p in participants if p.get("user_id") != user_id]
        removed = len(participants) - len(remaining)

        writer = BatchWriter(db)
        update: dict[str, Any] = {
            "participants": remaining,
            "participant_ids": [p.get("user_id") for p in remaining],
        }
        if removed:
            update["registeredCount"] = max(
                0, int(data.get("registeredCount") or 0) - removed
            )
        writer.update(ref, update)

        groups = (
            db.collection(GROUPS_COLLECTION)
            .where(filter=firestore.FieldFilter("tournamentId", "==", tournament_id))
            .where(filter=firestore.FieldFilter("member_ids", "array_contains", user_id))
            .stream()
        )
        for group_doc in groups:
            writer.update(
                group_doc.reference, {"member_ids": firestore.ArrayRemove([user_id])}
            )

        rooms = (
            db.collection(ROOMS_COLLECTION)
            .where(filter=firestore.FieldFilter("tournamentId", "==", tournament_id))
            .where(
                filter=firestore.FieldFilter("participant_ids", "array_contains", user_id)
            )
            .stream()
        )
        for room_doc in rooms:
            writer.update(
                room_doc.reference,
                {"participant_ids": firestore.ArrayRemove([user_id])},
            )
        writer.commit()

        if removed:
            logger.info(f"Removed {user_id} from tournament {tournament_id}")
        return to_jsonable(remaining)

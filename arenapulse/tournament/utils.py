"""Shared helpers for tournament-scoped operations."""

from __future__ import annotations

import datetime
import re
from typing import TYPE_CHECKING, Any

from arenapulse.constants import TOURNAMENTS_COLLECTION
from arenapulse.errors import AccessDeniedError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


def get_tournament_or_404(
    db: Client, tournament_id: str
) -> tuple[DocumentReference, dict[str, Any]]:
    """Fetch a tournament, raising NotFoundError if it does not exist."""
    if not tournament_id:
        raise NotFoundError("Tournament not found")
    ref = db.collection(TOURNAMENTS_COLLECTION).document(tournament_id)
    doc = ref.get()
    if not doc.exists:
        raise NotFoundError("Tournament not found")
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return ref, data


def is_organizer(tournament_data: dict[str, Any], user: dict[str, Any] | None) -> bool:
    """True if the user owns the tournament or is an admin."""
    if not user:
        return False
    if user.get("isAdmin"):
        return True
    return bool(user.get("uid")) and tournament_data.get("organizer_id") == user["uid"]


def require_organizer(tournament_data: dict[str, Any], user: dict[str, Any] | None) -> None:
    """Raise AccessDeniedError unless the user may manage the tournament."""
    if not is_organizer(tournament_data, user):
        raise AccessDeniedError("Not allowed")


def clean_phone(phone: Any) -> str:
    """Strip everything but digits from a phone number."""
    return re.sub(r"\D", "", str(phone or ""))


def parse_datetime(value: Any, field: str) -> datetime.datetime | None:
    """Parse an ISO-8601 string into a datetime, passing datetimes through."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime.datetime):
        return value
    try:
        # fromisoformat does not accept a trailing Z before Python 3.11
        return datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date") from None

"""Lookup helpers for tournament groups."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from arenapulse.constants import GROUPS_COLLECTION
from arenapulse.errors import NotFoundError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


def get_group_or_404(
    db: Client, tournament_id: str, group_id: str
) -> tuple[DocumentReference, dict[str, Any]]:
    """Fetch a group that belongs to the tournament."""
    if not group_id:
        raise NotFoundError("Group not found")
    ref = db.collection(GROUPS_COLLECTION).document(group_id)
    doc = ref.get()
    if not doc.exists:
        raise NotFoundError("Group not found")
    data = doc.to_dict() or {}
    if data.get("tournamentId") != tournament_id:
        raise NotFoundError("Group not found")
    data["id"] = doc.id
    return ref, data


def list_group_docs(db: Client, tournament_id: str) -> list[DocumentSnapshot]:
    """All groups of a tournament in creation order."""
    query = (
        db.collection(GROUPS_COLLECTION)
        .where(filter=firestore.FieldFilter("tournamentId", "==", tournament_id))
        .order_by("order")
    )
    return list(query.stream())


def find_member_group(
    db: Client, tournament_id: str, user_id: str
) -> tuple[DocumentReference, dict[str, Any]] | None:
    """Find the first group of the tournament listing the user."""
    docs = (
        db.collection(GROUPS_COLLECTION)
        .where(filter=firestore.FieldFilter("tournamentId", "==", tournament_id))
        .where(filter=firestore.FieldFilter("member_ids", "array_contains", user_id))
        .stream()
    )
    matches = sorted(docs, key=lambda d: (d.to_dict() or {}).get("order", 0))
    if not matches:
        return None
    data = matches[0].to_dict() or {}
    data["id"] = matches[0].id
    return matches[0].reference, data

"""Utility functions for the application."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from .constants import FIRESTORE_BATCH_LIMIT

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def to_jsonable(value: Any) -> Any:
    """Convert Firestore values (timestamps, sentinels) into JSON-safe values."""
    if value is firestore.SERVER_TIMESTAMP:
        # Not resolved until the write lands
        return None
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    if hasattr(value, "id") and hasattr(value, "path"):
        # DocumentReference
        return value.id
    return str(value)


def serialize_doc(doc: Any) -> dict[str, Any] | None:
    """Turn a document snapshot into a plain dict carrying its id."""
    if doc is None or not doc.exists:
        return None
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return to_jsonable(data)


class BatchWriter:
    """Collects writes into Firestore batches, committing at the batch limit.

    Sequences that fit under the limit are committed as a single atomic batch.
    """

    def __init__(self, db: Client):
        self.db = db
        self.batch = db.batch()
        self.count = 0

    def set(self, ref: Any, data: dict[str, Any], merge: bool = False) -> None:
        """Adds a set operation to the batch."""
        self.batch.set(ref, data, merge=merge)
        self._bump()

    def update(self, ref: Any, data: dict[str, Any]) -> None:
        """Adds an update operation to the batch."""
        self.batch.update(ref, data)
        self._bump()

    def delete(self, ref: Any) -> None:
        """Adds a delete operation to the batch."""
        self.batch.delete(ref)
        self._bump()

    def _bump(self) -> None:
        self.count += 1
        if self.count >= FIRESTORE_BATCH_LIMIT:
            self.commit()

    def commit(self) -> None:
        """Commits the current batch."""
        if self.count > 0:
            self.batch.commit()
            self.batch = self.db.batch()
            self.count = 0

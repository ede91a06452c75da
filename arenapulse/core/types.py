"""Base document types."""

from __future__ import annotations

from typing import TypedDict


class FirestoreDocument(TypedDict, total=False):
    """Fields common to every document read from Firestore."""

    id: str

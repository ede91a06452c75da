"""Data models for payments and bookings."""

from __future__ import annotations

import enum
from typing import Any, TypedDict

from arenapulse.core.types import FirestoreDocument


class PaymentStatus(str, enum.Enum):
    """Local lifecycle of a payment."""

    CREATED = "created"
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"

    def __str__(self) -> str:
        return self.value


# Local statuses the reconciler re-checks against the gateway
OPEN_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.CREATED.value)

# Gateway order_status / payment_status values
GATEWAY_PAID = frozenset({"PAID", "SUCCESS"})
GATEWAY_FAILED = frozenset({"FAILED"})


class WebhookEntry(TypedDict, total=False):
    at: Any
    type: str | None
    paymentStatus: str | None


class Payment(FirestoreDocument, total=False):
    """A payment document in Firestore, keyed by the gateway order id."""

    orderId: str
    provider: str
    scrimId: str | None
    tournamentId: str | None
    userId: str
    playerId: str | None
    bookingId: str | None
    amount: float
    currency: str
    status: str
    paymentSessionId: str | None
    transactionId: str | None
    paidAt: Any
    webhooks: list[WebhookEntry]
    createdAt: Any


class Booking(FirestoreDocument, total=False):
    """A player's slot in a scrim, keyed ``{scrimId}_{playerId}``."""

    scrimId: str
    playerId: str
    paid: bool
    status: str

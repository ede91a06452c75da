"""Service layer for gateway orders, webhooks and reconciliation."""

from __future__ import annotations

import base64
import binascii
import datetime
import hashlib
import hmac
import json
import logging
import random
import re
import time
from typing import TYPE_CHECKING, Any, Mapping

from firebase_admin import firestore

from arenapulse.constants import BOOKINGS_COLLECTION, PAYMENTS_COLLECTION
from arenapulse.errors import AccessDeniedError, AppError, NotFoundError, ValidationError
from arenapulse.utils import BatchWriter, serialize_doc, to_jsonable, utcnow

from .models import (
    GATEWAY_FAILED,
    GATEWAY_PAID,
    OPEN_STATUSES,
    Booking,
    Payment,
    PaymentStatus,
)

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from .gateway import CashfreeClient

logger = logging.getLogger(__name__)

HEX_SIGNATURE = re.compile(r"^[0-9a-fA-F]+$")


def new_order_id() -> str:
    """Gateway order id, e.g. AP_1700000000000_4821."""
    return f"AP_{int(time.time() * 1000)}_{random.randint(0, 9998)}"  # nosec B311


def _normalize_signature(signature: str) -> str:
    """Hex signatures are accepted and compared in their base64 form."""
    signature = signature.strip()
    if (
        len(signature) >= 32
        and len(signature) % 2 == 0
        and HEX_SIGNATURE.match(signature)
    ):
        try:
            return base64.b64encode(bytes.fromhex(signature)).decode()
        except ValueError:
            return signature
    return signature


def compute_signature(raw_body: bytes, timestamp: str, secret: str) -> str:
    """base64(HMAC-SHA256(timestamp + body))."""
    digest = hmac.new(
        secret.encode(), timestamp.encode() + raw_body, hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode()


def verify_signature(
    raw_body: bytes, signature: str | None, timestamp: str | None, secret: str
) -> bool:
    """Check a webhook signature header against the raw request body."""
    if not signature:
        return False
    expected = compute_signature(raw_body, (timestamp or "").strip(), secret)
    try:
        return hmac.compare_digest(_normalize_signature(signature), expected)
    except (TypeError, binascii.Error):
        return False


class PaymentService:
    """Handles payments against the gateway and their local records."""

    @staticmethod
    def create_order(
        user: dict[str, Any],
        payload: dict[str, Any],
        gateway: CashfreeClient,
        return_url: str | None = None,
        notify_url: str | None = None,
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Create a gateway order and record it as a pending payment."""
        if db is None:
            db = firestore.client()
        try:
            amount = float(payload.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0.0
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        currency = str(payload.get("currency") or "INR").upper()

        customer = payload.get("customer") or {}
        player_id = payload.get("player_id") or customer.get("id") or user["uid"]
        customer_details = {
            "customer_id": str(customer.get("id") or user["uid"]),
            "customer_name": customer.get("name") or user.get("name") or "Guest",
            "customer_email": customer.get("email")
            or user.get("email")
            or "guest@example.com",
            "customer_phone": customer.get("phone") or "9999999999",
        }

        order_id = new_order_id()
        data = gateway.create_order(
            order_id,
            amount,
            currency,
            customer_details,
            return_url=return_url,
            notify_url=notify_url,
            note=payload.get("note"),
        )

        db.collection(PAYMENTS_COLLECTION).document(order_id).set(
            {
                "orderId": order_id,
                "provider": "cashfree",
                "scrimId": payload.get("scrim_id"),
                "tournamentId": payload.get("tournament_id"),
                "userId": user["uid"],
                "playerId": player_id,
                "bookingId": payload.get("booking_id"),
                "amount": amount,
                "currency": currency,
                "status": PaymentStatus.PENDING.value,
                "paymentSessionId": data.get("payment_session_id"),
                "transactionId": None,
                "paidAt": None,
                "webhooks": [],
                "createdAt": utcnow(),
            }
        )
        logger.info(f"Order {order_id} created for {player_id} ({amount} {currency})")

        result = dict(data)
        result["order_id"] = order_id
        return to_jsonable(result)

    @staticmethod
    def apply_gateway_status(
        order_id: str,
        gateway_status: str | None,
        amount: Any = None,
        transaction_id: str | None = None,
        db: Client | None = None,
    ) -> str | None:
        """Mirror a gateway status onto the local payment.

        Returns the new local status, or None when nothing changed. A paid
        order also marks the matching booking as paid.
        """
        if db is None:
            db = firestore.client()
        ref = db.collection(PAYMENTS_COLLECTION).document(order_id)
        doc = ref.get()
        payment = (doc.to_dict() or {}) if doc.exists else {}
        current = payment.get("status")

        if gateway_status in GATEWAY_PAID:
            update: dict[str, Any] = {
                "orderId": order_id,
                "status": PaymentStatus.COMPLETED.value,
                "paidAt": utcnow(),
            }
            if amount is not None:
                update["amount"] = amount
            if transaction_id:
                update["transactionId"] = str(transaction_id)

            writer = BatchWriter(db)
            scrim_id, player_id = payment.get("scrimId"), payment.get("playerId")
            if scrim_id and player_id:
                booking_ref = db.collection(BOOKINGS_COLLECTION).document(
                    f"{scrim_id}_{player_id}"
                )
                booking: Booking = {
                    "scrimId": scrim_id,
                    "playerId": player_id,
                    "paid": True,
                    "status": "active",
                }
                writer.set(booking_ref, booking, merge=True)
                if not payment.get("bookingId"):
                    update["bookingId"] = booking_ref.id
            writer.set(ref, update, merge=True)
            writer.commit()
            logger.info(f"Payment {order_id} completed")
            return PaymentStatus.COMPLETED.value

        if gateway_status in GATEWAY_FAILED:
            if current in (PaymentStatus.COMPLETED.value, PaymentStatus.REFUNDED.value):
                logger.warning(
                    f"Ignoring FAILED for payment {order_id} already {current}"
                )
                return None
            ref.set(
                {"orderId": order_id, "status": PaymentStatus.FAILED.value}, merge=True
            )
            logger.info(f"Payment {order_id} failed")
            return PaymentStatus.FAILED.value

        return None

    @staticmethod
    def _owned_payment(
        db: Client, order_id: str, user: dict[str, Any]
    ) -> Payment:
        """Load a payment the user may see: their own, or any for admins."""
        payment = serialize_doc(db.collection(PAYMENTS_COLLECTION).document(order_id).get())
        if payment is None:
            raise NotFoundError("Payment not found")
        if not user.get("isAdmin") and user.get("uid") not in (
            payment.get("userId"),
            payment.get("playerId"),
        ):
            raise AccessDeniedError("Not allowed")
        return payment

    @staticmethod
    def order_status(
        order_id: str,
        gateway: CashfreeClient,
        user: dict[str, Any],
        db: Client | None = None,
    ) -> dict[str, Any]:
        """Query the gateway for an order and apply its status locally."""
        if db is None:
            db = firestore.client()
        PaymentService._owned_payment(db, order_id, user)
        data = gateway.get_order(order_id)
        PaymentService.apply_gateway_status(
            order_id,
            data.get("order_status"),
            amount=data.get("order_amount"),
            db=db,
        )
        payment = serialize_doc(db.collection(PAYMENTS_COLLECTION).document(order_id).get())
        return {"order": to_jsonable(data), "payment": payment}

    @staticmethod
    def get_payment(
        order_id: str, user: dict[str, Any], db: Client | None = None
    ) -> Payment:
        if db is None:
            db = firestore.client()
        return PaymentService._owned_payment(db, order_id, user)

    @staticmethod
    def handle_webhook(
        raw_body: bytes,
        headers: Mapping[str, str],
        secret: str | None,
        db: Client | None = None,
    ) -> str | None:
        """Verify and apply a gateway webhook. Returns the new local status."""
        if db is None:
            db = firestore.client()
        if not secret:
            logger.error("Webhook secret is not configured")
            raise AppError("Webhook secret is not configured", 500)

        signature = headers.get("x-webhook-signature")
        timestamp = headers.get("x-webhook-timestamp")
        if not verify_signature(raw_body, signature, timestamp, secret):
            logger.warning(f"Webhook signature mismatch (timestamp {timestamp!r})")
            raise AppError("Invalid signature", 401)

        try:
            event = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ValidationError("Malformed webhook body") from e

        event_data = event.get("data") or {}
        order = event_data.get("order") or {}
        payment = event_data.get("payment") or {}
        order_id = order.get("order_id")
        if not order_id:
            raise ValidationError("Webhook has no order id")
        payment_status = payment.get("payment_status")

        entry = {
            "at": utcnow(),
            "type": event.get("type"),
            "paymentStatus": payment_status,
        }
        ref = db.collection(PAYMENTS_COLLECTION).document(order_id)
        if ref.get().exists:
            ref.update({"webhooks": firestore.ArrayUnion([entry])})
        else:
            ref.set({"orderId": order_id, "provider": "cashfree", "webhooks": [entry]})

        if payment_status == "SUCCESS":
            return PaymentService.apply_gateway_status(
                order_id,
                payment_status,
                amount=order.get("order_amount"),
                transaction_id=payment.get("cf_payment_id"),
                db=db,
            )
        if payment_status == "FAILED":
            return PaymentService.apply_gateway_status(order_id, payment_status, db=db)
        logger.info(f"Webhook for {order_id} logged ({payment_status})")
        return None

    @staticmethod
    def reconcile_pending(
        gateway: CashfreeClient,
        older_than_minutes: int = 15,
        limit: int = 50,
        db: Client | None = None,
    ) -> dict[str, int]:
        """Re-check stale open payments against the gateway, one at a time.

        A failure on one order is logged and counted and the run continues.
        """
        if db is None:
            db = firestore.client()
        cutoff = utcnow() - datetime.timedelta(minutes=older_than_minutes)
        query = (
            db.collection(PAYMENTS_COLLECTION)
            .where(filter=firestore.FieldFilter("status", "in", list(OPEN_STATUSES)))
            .where(filter=firestore.FieldFilter("createdAt", "<=", cutoff))
            .limit(limit)
        )

        summary = {"checked": 0, "completed": 0, "failed": 0, "unchanged": 0, "errors": 0}
        for doc in query.stream():
            order_id = (doc.to_dict() or {}).get("orderId") or doc.id
            summary["checked"] += 1
            try:
                data = gateway.get_order(order_id)
                status = data.get("order_status")
                result = PaymentService.apply_gateway_status(
                    order_id, status, amount=data.get("order_amount"), db=db
                )
            except Exception as e:
                summary["errors"] += 1
                logger.warning(f"Reconcile error {order_id}: {e}")
                continue

            if result == PaymentStatus.COMPLETED.value:
                summary["completed"] += 1
            elif result == PaymentStatus.FAILED.value:
                summary["failed"] += 1
            else:
                summary["unchanged"] += 1
            logger.info(f"Reconciled {order_id}: {status}")

        logger.info(f"Reconciliation finished: {summary}")
        return summary

"""Routes for the payments blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, g, jsonify, request

from arenapulse.auth.decorators import login_required
from arenapulse.extensions import csrf

from . import bp
from .gateway import CashfreeClient
from .services import PaymentService


def _gateway() -> CashfreeClient:
    return CashfreeClient.from_config(current_app.config)


@bp.route("/create-order", methods=["POST"])
@login_required
def create_order() -> Any:
    """Create a gateway order for the current user."""
    body = request.get_json(silent=True) or {}
    config = current_app.config
    notify_url = None
    if config.get("BACKEND_PUBLIC_URL"):
        notify_url = f"{config['BACKEND_PUBLIC_URL'].rstrip('/')}/api/payments/webhook"
    result = PaymentService.create_order(
        g.user,
        body,
        _gateway(),
        return_url=config.get("CF_RETURN_URL"),
        notify_url=notify_url,
    )
    return jsonify(dict(result, ok=True))


@bp.route("/status/<string:order_id>", methods=["GET"])
@login_required
def order_status(order_id: str) -> Any:
    """Check an order with the gateway and sync the local payment."""
    return jsonify(PaymentService.order_status(order_id, _gateway(), g.user))


@bp.route("/<string:order_id>", methods=["GET"])
@login_required
def get_payment(order_id: str) -> Any:
    return jsonify({"payment": PaymentService.get_payment(order_id, g.user)})


@bp.route("/webhook", methods=["POST"])
@csrf.exempt
def webhook() -> Any:
    """Gateway callback. Authenticated by its HMAC signature, not a session."""
    config = current_app.config
    secret = (config.get("CF_WEBHOOK_SECRET") or config.get("CASHFREE_SECRET_KEY") or "").strip()
    status = PaymentService.handle_webhook(request.get_data(), request.headers, secret)
    current_app.logger.info(f"Webhook processed (status {status})")
    return "", 200

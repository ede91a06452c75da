"""HTTP client for the Cashfree payment gateway."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import requests

from arenapulse.errors import GatewayError

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://sandbox.cashfree.com/pg"
PRODUCTION_BASE_URL = "https://api.cashfree.com/pg"
DEFAULT_TIMEOUT = 10


class CashfreeClient:
    """Thin wrapper over the Cashfree orders API."""

    def __init__(
        self,
        app_id: str,
        secret_key: str,
        env: str = "sandbox",
        api_version: str = "2022-09-01",
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        if not app_id or not secret_key:
            raise GatewayError("Payment gateway is not configured")
        self.app_id = app_id
        self.secret_key = secret_key
        self.api_version = api_version
        self.base_url = PRODUCTION_BASE_URL if env == "production" else SANDBOX_BASE_URL
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> CashfreeClient:
        """Build a client from app config or any mapping with the same keys."""
        return cls(
            app_id=(config.get("CASHFREE_APP_ID") or "").strip(),
            secret_key=(config.get("CASHFREE_SECRET_KEY") or "").strip(),
            env=config.get("CASHFREE_ENV") or "sandbox",
            api_version=config.get("CASHFREE_API_VERSION") or "2022-09-01",
        )

    def _headers(self, idempotency_key: str | None = None) -> dict[str, str]:
        headers = {
            "x-client-id": self.app_id,
            "x-client-secret": self.secret_key,
            "x-api-version": self.api_version,
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["x-idempotency-key"] = idempotency_key
        return headers

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout calling Cashfree {method} {path}")
            raise GatewayError("Payment gateway timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error calling Cashfree {method} {path}: {e}")
            raise GatewayError("Payment gateway unreachable") from e

        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text[:240]}

        if not response.ok:
            logger.error(f"Cashfree {method} {path} failed: {response.status_code} {data}")
            message = data.get("message") or data.get("error") or "Cashfree error"
            raise GatewayError(message, details=data)
        return data

    def create_order(
        self,
        order_id: str,
        amount: float,
        currency: str,
        customer: dict[str, Any],
        return_url: str | None = None,
        notify_url: str | None = None,
        note: str | None = None,
    ) -> dict[str, Any]:
        """Create an order. Retries of the same order share its idempotency key."""
        payload = {
            "order_id": order_id,
            "order_amount": amount,
            "order_currency": currency,
            "customer_details": customer,
            "order_meta": {
                "return_url": return_url,
                "notify_url": notify_url,
                "payment_methods": "upi",
            },
            "order_note": note or "ArenaPulse booking",
        }
        return self._request(
            "POST",
            "/orders",
            json=payload,
            headers=self._headers(idempotency_key=f"order-{order_id}"),
        )

    def get_order(self, order_id: str) -> dict[str, Any]:
        """Fetch an order, including its ``order_status``."""
        return self._request("GET", f"/orders/{order_id}", headers=self._headers())

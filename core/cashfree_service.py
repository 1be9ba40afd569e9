# Cashfree Payment Gateway Service (India, hosted checkout)
import base64
import hashlib
import hmac
import logging
from typing import Optional, Dict, Any

import requests

from config import app_config
from core.errors import PaymentGatewayError

logger = logging.getLogger(__name__)


class CashfreeConfig:
    """Cashfree configuration"""
    SANDBOX_URL = "https://sandbox.cashfree.com"
    PRODUCTION_URL = "https://api.cashfree.com"
    PAYOUT_SANDBOX_URL = "https://payout-gamma.cashfree.com"
    PAYOUT_PRODUCTION_URL = "https://payout-api.cashfree.com"

    @staticmethod
    def is_configured() -> bool:
        return bool(app_config.CASHFREE_APP_ID and app_config.CASHFREE_SECRET_KEY)

    @staticmethod
    def environment() -> str:
        return "production" if app_config.CASHFREE_ENV == "production" else "sandbox"

    @classmethod
    def base_url(cls) -> str:
        return cls.PRODUCTION_URL if cls.environment() == "production" else cls.SANDBOX_URL

    @classmethod
    def payout_base_url(cls) -> str:
        return cls.PAYOUT_PRODUCTION_URL if cls.environment() == "production" else cls.PAYOUT_SANDBOX_URL


class CashfreeService:
    """Service for handling Cashfree orders (create, fetch)"""

    def __init__(self):
        self.base_url = CashfreeConfig.base_url()
        self.headers = {
            "x-client-id": app_config.CASHFREE_APP_ID,
            "x-client-secret": app_config.CASHFREE_SECRET_KEY,
            "x-api-version": app_config.CASHFREE_API_VERSION,
            "Content-Type": "application/json",
        }

    def _make_request(self, method: str, endpoint: str, data: Optional[Dict] = None) -> Dict[str, Any]:
        """Make a request to the Cashfree PG API"""
        url = f"{self.base_url}{endpoint}"
        try:
            if method == "GET":
                response = requests.get(url, headers=self.headers, timeout=30)
            elif method == "POST":
                response = requests.post(url, headers=self.headers, json=data, timeout=30)
            else:
                raise ValueError(f"Unsupported method: {method}")

            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Cashfree API error: {e}")
            raise PaymentGatewayError(f"Payment service error: {str(e)}")

    def create_order(
        self,
        order_id: str,
        amount: float,
        customer_id: str,
        customer_phone: str,
        return_url: str,
        tags: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Create a hosted checkout order.

        Args:
            order_id: Our order id, also used as the idempotency key
            amount: Amount in rupees
            customer_id: Internal user id
            customer_phone: Required by the gateway
            return_url: Where the checkout redirects after payment
            tags: Metadata echoed back on fetch (purpose, related id, emi id...)

        Returns:
            Gateway order including payment_session_id
        """
        data = {
            "order_id": order_id,
            "order_amount": round(amount, 2),
            "order_currency": app_config.CURRENCY,
            "customer_details": {
                "customer_id": customer_id,
                "customer_phone": customer_phone,
            },
            "order_meta": {"return_url": return_url},
            "order_tags": {k: str(v) for k, v in (tags or {}).items()},
        }
        return self._make_request("POST", "/pg/orders", data)

    def get_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch an order; order_status is ACTIVE, PAID or EXPIRED."""
        return self._make_request("GET", f"/pg/orders/{order_id}")


class CashfreeWebhookHandler:
    """Handle Cashfree webhook signatures"""

    @staticmethod
    def verify_webhook(payload: bytes, timestamp: str, signature: str, secret_key: str) -> bool:
        """
        Verify webhook signature from Cashfree.

        The signature is base64(HMAC-SHA256(timestamp + raw body)).
        """
        message = timestamp.encode("utf-8") + payload
        computed = base64.b64encode(
            hmac.new(secret_key.encode("utf-8"), message, hashlib.sha256).digest()
        ).decode("utf-8")
        return hmac.compare_digest(computed, signature)

    @staticmethod
    def extract_order_id(event: Dict[str, Any]) -> Optional[str]:
        """Supports both the v2 and v3 payload shapes."""
        data = event.get("data") or {}
        order = data.get("order") or {}
        return order.get("order_id") or event.get("orderId") or data.get("order_id")

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Thin wrapper over the Razorpay orders API."""

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None):
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        self.api_url = "https://api.razorpay.com/v1/orders"

        if self.key_id and self.key_secret:
            logger.info("Razorpay gateway initialized")
        else:
            logger.warning("Razorpay credentials not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET")

    async def create_order(self, amount: float, currency: str, receipt: str, notes: Dict[str, Any]) -> Dict[str, Any]:
        if not self.key_id or not self.key_secret:
            raise UpstreamError("Online payments are not available")

        payload = {
            "amount": int(round(amount * 100)),
            "currency": currency,
            "receipt": receipt[:40],
            "notes": notes,
        }
        try:
            async with httpx.AsyncClient(timeout=30) as client:
                response = await client.post(self.api_url, json=payload, auth=(self.key_id, self.key_secret))
                response.raise_for_status()
                order = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Razorpay order creation failed ({e.response.status_code}): {e.response.text}")
            raise UpstreamError("Failed to create payment order") from e
        except httpx.HTTPError as e:
            logger.error(f"Razorpay request error: {e}")
            raise UpstreamError("Failed to create payment order") from e

        logger.info(f"Created Razorpay order {order.get('id')} for receipt {payload['receipt']}")
        return order

    # Checks the checkout signature returned to the client for this order/payment pair
    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.key_secret:
            return False
        expected = hmac.new(
            self.key_secret.encode(),
            f"{order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(expected, signature)


payment_gateway = RazorpayGateway()

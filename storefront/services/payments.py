"""Payment gateway client (Stripe PaymentIntents over plain HTTPS)."""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from storefront.core.config import (
    PAYMENT_CURRENCY,
    PAYMENT_TIMEOUT_SECONDS,
    STRIPE_API_BASE,
    STRIPE_SECRET_KEY,
)
from storefront.core.errors import GatewayError
from storefront.models.schemas import PaymentIntent

logger = logging.getLogger(__name__)


class PaymentGateway(ABC):

    @abstractmethod
    def create_intent(self, amount: int) -> PaymentIntent:
        """``amount`` is in minor units (cents)."""

    @abstractmethod
    def confirm_intent(self, intent_id: str, payment_method_id: Optional[str] = None) -> PaymentIntent: ...


class StripeGateway(PaymentGateway):

    def __init__(
        self,
        secret_key: str,
        api_base: str = STRIPE_API_BASE,
        currency: str = PAYMENT_CURRENCY,
        timeout: float = PAYMENT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        self.secret_key = secret_key
        self.currency = currency
        self.client = client or httpx.Client(base_url=api_base, timeout=timeout)

    def _post(self, path: str, data: Dict[str, str]) -> Dict[str, Any]:
        try:
            res = self.client.post(path, data=data, headers={"Authorization": f"Bearer {self.secret_key}"})
        except httpx.HTTPError as e:
            logger.error("Payment gateway request failed: %s", e)
            raise GatewayError(f"Payment gateway unreachable: {e}") from e
        try:
            payload = res.json()
        except ValueError:
            payload = {}
        if res.status_code >= 400:
            message = (payload.get("error") or {}).get("message") or f"Payment gateway error ({res.status_code})"
            logger.error("Payment gateway rejected %s: %s", path, message)
            raise GatewayError(message)
        return payload

    @staticmethod
    def _to_intent(payload: Dict[str, Any]) -> PaymentIntent:
        return PaymentIntent(
            id=payload["id"],
            clientSecret=payload.get("client_secret"),
            amount=payload.get("amount", 0),
            currency=payload.get("currency", "usd"),
            status=payload.get("status", "unknown"),
        )

    def create_intent(self, amount):
        payload = self._post("/payment_intents", {
            "amount": str(amount),
            "currency": self.currency,
            "automatic_payment_methods[enabled]": "true",
            # confirmation happens server-side, no redirect target
            "automatic_payment_methods[allow_redirects]": "never",
        })
        return self._to_intent(payload)

    def confirm_intent(self, intent_id, payment_method_id=None):
        data = {"payment_method": payment_method_id} if payment_method_id else {}
        return self._to_intent(self._post(f"/payment_intents/{intent_id}/confirm", data))


def build_gateway() -> Optional[PaymentGateway]:
    """The configured gateway, or None for the unsecured checkout path."""
    if not STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY not set, checkout will create unpaid orders")
        return None
    return StripeGateway(STRIPE_SECRET_KEY)

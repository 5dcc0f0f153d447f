"""Checkout coordinator.

One call to ``checkout`` is one attempt::

    DRAFT -> INTENT_REQUESTED -> PAYMENT_CONFIRMED -> ORDER_PERSISTED
      \\______________ REJECTED / FAILED ______________/

Without a payment gateway the attempt skips INTENT_REQUESTED and the order
is stored unpaid. The cart is cleared only once the order is persisted.
Stock is checked against the catalog but not reserved, and attempts are not
deduplicated.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from storefront.core.errors import GatewayError, StorefrontError, ValidationError
from storefront.core.money import to_minor_units
from storefront.models.schemas import (
    Identity,
    Order,
    OrderCreate,
    OrderItem,
    PaymentIntent,
    PaymentResult,
    ShippingAddress,
)
from storefront.repositories.orders import OrderStore
from storefront.repositories.products import CatalogStore
from storefront.services.cart import CartLedger
from storefront.services.payments import PaymentGateway

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    DRAFT = "draft"
    INTENT_REQUESTED = "intent_requested"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ORDER_PERSISTED = "order_persisted"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class CheckoutResult:
    state: CheckoutState = CheckoutState.DRAFT
    order: Optional[Order] = None
    intent: Optional[PaymentIntent] = None
    failure: Optional[StorefrontError] = None
    history: List[CheckoutState] = field(default_factory=lambda: [CheckoutState.DRAFT])

    @property
    def ok(self) -> bool:
        return self.state is CheckoutState.ORDER_PERSISTED

    @property
    def error(self) -> Optional[str]:
        return self.failure.message if self.failure else None

    def move(self, state: CheckoutState, failure: Optional[StorefrontError] = None) -> "CheckoutResult":
        self.state = state
        self.history.append(state)
        if failure is not None:
            self.failure = failure
        return self

    def reject(self, reason: str) -> "CheckoutResult":
        return self.move(CheckoutState.REJECTED, ValidationError(reason))

    def fail(self, error: StorefrontError) -> "CheckoutResult":
        return self.move(CheckoutState.FAILED, error)


class CheckoutCoordinator:

    def __init__(self, catalog: CatalogStore, orders: OrderStore, gateway: Optional[PaymentGateway] = None):
        self.catalog = catalog
        self.orders = orders
        self.gateway = gateway

    def validate(self, cart: CartLedger, shipping: ShippingAddress) -> Optional[str]:
        """Shape checks that need no collaborator. Returns the rejection reason, if any."""
        if cart.is_empty():
            return "Your cart is empty"
        missing = shipping.missing_fields()
        if missing:
            return f"Please complete the shipping address ({', '.join(missing)})"
        return None

    def check_stock(self, cart: CartLedger) -> Optional[str]:
        for line in cart:
            product = self.catalog.get_by_id(line.productId)
            if product is None:
                return f"{line.name} is no longer available"
            if line.quantity > product.stock:
                return f"Not enough stock for {line.name}"
        return None

    def _pay(self, result: CheckoutResult, user: Identity, total: float, payment_method_id: Optional[str]) -> PaymentResult:
        result.intent = self.gateway.create_intent(to_minor_units(total))
        result.move(CheckoutState.INTENT_REQUESTED)
        result.intent = self.gateway.confirm_intent(result.intent.id, payment_method_id)
        if result.intent.status != "succeeded":
            raise GatewayError(f"Payment not completed (status: {result.intent.status})")
        return PaymentResult(
            id=result.intent.id,
            status=result.intent.status,
            update_time=datetime.now(timezone.utc).isoformat(),
            email_address=user.email,
        )

    def checkout(
        self,
        user: Identity,
        cart: CartLedger,
        shipping: ShippingAddress,
        payment_method: str = "stripe",
        payment_method_id: Optional[str] = None,
    ) -> CheckoutResult:
        result = CheckoutResult()

        reason = self.validate(cart, shipping)
        if reason:
            return result.reject(reason)
        try:
            reason = self.check_stock(cart)
        except StorefrontError as e:
            return result.fail(e)
        if reason:
            return result.reject(reason)

        total = cart.total()
        payment_result = None
        if self.gateway is not None:
            try:
                payment_result = self._pay(result, user, total, payment_method_id)
            except GatewayError as e:
                logger.error("Checkout for user %s failed at payment: %s", user.id, e.message)
                return result.fail(e)
        else:
            logger.info("No payment gateway configured, placing unsecured order for user %s", user.id)
        result.move(CheckoutState.PAYMENT_CONFIRMED)

        payload = OrderCreate(
            orderItems=[
                OrderItem(
                    product=line.productId,
                    name=line.name,
                    price=line.price,
                    image=line.image,
                    quantity=line.quantity,
                )
                for line in cart
            ],
            shippingAddress=shipping,
            paymentMethod=payment_method,
            itemsPrice=total,
            taxPrice=0,
            shippingPrice=0,
            totalPrice=total,
        )
        try:
            result.order = self.orders.create(user.id, payload, payment_result)
        except StorefrontError as e:
            if payment_result is not None:
                logger.error("Payment %s confirmed but order was not saved: %s", payment_result.id, e.message)
            return result.fail(e)

        cart.clear()
        return result.move(CheckoutState.ORDER_PERSISTED)

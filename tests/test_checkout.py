import json
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock
from urllib.parse import parse_qs

import httpx
import pytest

from storefront.core.errors import ConnectivityError, GatewayError, ValidationError
from storefront.models.schemas import CartItem, ProductIn, ShippingAddress
from storefront.repositories.orders import OrderStore
from storefront.services.cart import CartLedger, JsonFileSlot
from storefront.services.checkout import CheckoutCoordinator, CheckoutState
from storefront.services.payments import StripeGateway


@pytest.fixture
def mug(services):
    return services.catalog.create(ProductIn(name="Enamel Mug", description="", price=19.99, category="Other", stock=5))


@pytest.fixture
def coaster(services):
    return services.catalog.create(ProductIn(name="Cork Coaster", description="", price=5, category="Other", stock=10))


@pytest.fixture
def cart(tmp_path, mug, coaster):
    ledger = CartLedger(JsonFileSlot(tmp_path / "cart.json"))
    ledger.add(mug, 2)
    ledger.add(coaster)
    return ledger


def stripe(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://stripe.test/v1")
    return StripeGateway("sk_test_123", client=client)


def intent(status, **extra):
    return {"id": "pi_1", "client_secret": "pi_1_secret", "amount": 4498, "currency": "usd", "status": status, **extra}


def test_unsecured_checkout_places_unpaid_order(services, customer, cart, shipping, mug, tmp_path):
    result = services.checkout.checkout(customer, cart, shipping)

    assert result.ok
    assert result.history == [CheckoutState.DRAFT, CheckoutState.PAYMENT_CONFIRMED, CheckoutState.ORDER_PERSISTED]
    assert result.order.totalPrice == 44.98
    assert result.order.itemsPrice == 44.98
    assert result.order.taxPrice == 0 and result.order.shippingPrice == 0
    assert result.order.isPaid is False
    assert [(i.name, i.quantity) for i in result.order.orderItems] == [("Enamel Mug", 2), ("Cork Coaster", 1)]
    assert cart.is_empty()
    assert not (tmp_path / "cart.json").exists()
    # stock is checked, never decremented
    assert services.catalog.get_by_id(mug.id).stock == 5
    assert services.orders.list_by_user(customer.id)[0].id == result.order.id


def test_empty_cart_rejected_before_any_collaborator(customer, shipping):
    catalog, orders, gateway = MagicMock(), MagicMock(), MagicMock()
    coordinator = CheckoutCoordinator(catalog, orders, gateway)

    result = coordinator.checkout(customer, CartLedger(), shipping)

    assert result.state is CheckoutState.REJECTED
    assert result.error == "Your cart is empty"
    assert isinstance(result.failure, ValidationError)
    catalog.get_by_id.assert_not_called()
    gateway.create_intent.assert_not_called()
    orders.create.assert_not_called()


def test_incomplete_shipping_rejected(services, customer, cart):
    result = services.checkout.checkout(customer, cart, ShippingAddress(street="1 Main St", city="  "))

    assert result.state is CheckoutState.REJECTED
    assert result.error == "Please complete the shipping address (city, state, zipCode, country)"
    assert len(cart) == 2


def test_insufficient_stock_rejected(services, customer, shipping, mug):
    cart = CartLedger.from_items([CartItem(productId=mug.id, name=mug.name, price=mug.price, quantity=6)])

    result = services.checkout.checkout(customer, cart, shipping)

    assert result.state is CheckoutState.REJECTED
    assert result.error == "Not enough stock for Enamel Mug"
    assert services.orders.list_all() == []


def test_vanished_product_rejected(services, customer, shipping):
    cart = CartLedger.from_items([CartItem(productId="64b7f0c2a1b2c3d4e5f60718", name="Ghost Lamp", price=3)])

    result = services.checkout.checkout(customer, cart, shipping)

    assert result.state is CheckoutState.REJECTED
    assert result.error == "Ghost Lamp is no longer available"


def test_gateway_success_marks_order_paid(services, customer, cart, shipping):
    requests = []

    def handler(request):
        requests.append(request)
        if request.url.path.endswith("/confirm"):
            return httpx.Response(200, json=intent("succeeded"))
        return httpx.Response(200, json=intent("requires_confirmation"))

    coordinator = CheckoutCoordinator(services.catalog, services.orders, stripe(handler))
    result = coordinator.checkout(customer, cart, shipping, payment_method_id="pm_card_visa")

    assert result.ok
    assert result.history == [
        CheckoutState.DRAFT,
        CheckoutState.INTENT_REQUESTED,
        CheckoutState.PAYMENT_CONFIRMED,
        CheckoutState.ORDER_PERSISTED,
    ]
    assert parse_qs(requests[0].content.decode())["amount"] == ["4498"]
    assert parse_qs(requests[1].content.decode())["payment_method"] == ["pm_card_visa"]
    assert result.order.isPaid is True
    assert result.order.paymentResult.id == "pi_1"
    assert result.order.paymentResult.email_address == "jane@shop.io"
    assert cart.is_empty()


def test_declined_payment_keeps_cart(services, customer, cart, shipping):
    def handler(request):
        if request.url.path.endswith("/confirm"):
            return httpx.Response(402, json={"error": {"message": "Your card was declined."}})
        return httpx.Response(200, json=intent("requires_confirmation"))

    coordinator = CheckoutCoordinator(services.catalog, services.orders, stripe(handler))
    result = coordinator.checkout(customer, cart, shipping)

    assert result.state is CheckoutState.FAILED
    assert CheckoutState.INTENT_REQUESTED in result.history
    assert isinstance(result.failure, GatewayError)
    assert result.error == "Your card was declined."
    assert cart.count() == 3
    assert services.orders.list_all() == []


def test_unfinished_payment_is_a_failure(services, customer, cart, shipping):
    coordinator = CheckoutCoordinator(
        services.catalog, services.orders, stripe(lambda request: httpx.Response(200, json=intent("requires_action")))
    )

    result = coordinator.checkout(customer, cart, shipping)

    assert result.state is CheckoutState.FAILED
    assert result.error == "Payment not completed (status: requires_action)"
    assert not cart.is_empty()


def test_persistence_failure_keeps_cart(services, down_db, customer, cart, shipping, tmp_path):
    coordinator = CheckoutCoordinator(services.catalog, OrderStore(down_db, services.credentials))

    result = coordinator.checkout(customer, cart, shipping)

    assert result.state is CheckoutState.FAILED
    assert isinstance(result.failure, ConnectivityError)
    assert result.order is None
    assert len(cart) == 2
    assert json.loads((tmp_path / "cart.json").read_text())[0]["quantity"] == 2


class _RacingCatalog:
    """Holds every stock check until both shoppers have read the product."""

    def __init__(self, catalog, barrier):
        self.catalog = catalog
        self.barrier = barrier

    def get_by_id(self, product_id):
        product = self.catalog.get_by_id(product_id)
        self.barrier.wait(timeout=5)
        return product


def test_concurrent_checkouts_can_oversell_last_unit(services, customer, admin, shipping):
    lamp = services.catalog.create(ProductIn(name="Last Lamp", description="", price=40, category="Other", stock=1))
    coordinator = CheckoutCoordinator(_RacingCatalog(services.catalog, threading.Barrier(2)), services.orders)

    def attempt(user):
        cart = CartLedger.from_items([CartItem(productId=lamp.id, name=lamp.name, price=lamp.price)])
        return coordinator.checkout(user, cart, shipping)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, [customer, admin]))

    # no reservation: both attempts see stock=1 and both succeed
    assert all(r.ok for r in results)
    assert len(services.orders.list_all()) == 2
    assert services.catalog.get_by_id(lamp.id).stock == 1

from urllib.parse import parse_qs

import httpx
import pytest

from storefront.core.errors import GatewayError
from storefront.core.money import sum_lines, to_minor_units
from storefront.services import payments
from storefront.services.payments import StripeGateway


def gateway(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://stripe.test/v1")
    return StripeGateway("sk_test_abc", currency="eur", client=client)


@pytest.mark.parametrize("amount, cents", [(44.98, 4498), (19.995, 2000), (0.1, 10), (1, 100)])
def test_minor_units(amount, cents):
    assert to_minor_units(amount) == cents


def test_line_sums_avoid_float_drift():
    assert float(sum_lines([(0.1, 3), (19.99, 2)])) == 40.28


def test_create_intent_posts_form():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={
            "id": "pi_42", "client_secret": "pi_42_secret_x", "amount": 1250, "currency": "eur",
            "status": "requires_payment_method",
        })

    intent = gateway(handler).create_intent(1250)

    assert seen["path"] == "/v1/payment_intents"
    assert seen["auth"] == "Bearer sk_test_abc"
    assert seen["form"]["amount"] == ["1250"]
    assert seen["form"]["currency"] == ["eur"]
    assert seen["form"]["automatic_payment_methods[enabled]"] == ["true"]
    assert intent.clientSecret == "pi_42_secret_x"
    assert intent.status == "requires_payment_method"


def test_confirm_without_payment_method_sends_empty_form():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"id": "pi_42", "amount": 1250, "status": "succeeded"})

    intent = gateway(handler).confirm_intent("pi_42")

    assert seen["path"] == "/v1/payment_intents/pi_42/confirm"
    assert seen["form"] == {}
    assert intent.status == "succeeded"


def test_gateway_error_message_is_passed_through():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "Amount must be at least 50 cents"}})

    with pytest.raises(GatewayError, match="Amount must be at least 50 cents") as exc:
        gateway(handler).create_intent(10)
    assert exc.value.status_code == 502


def test_gateway_error_without_body():
    with pytest.raises(GatewayError, match=r"Payment gateway error \(500\)"):
        gateway(lambda request: httpx.Response(500, text="oops")).create_intent(100)


def test_network_failure_is_a_gateway_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GatewayError, match="Payment gateway unreachable"):
        gateway(handler).create_intent(100)


def test_build_gateway_without_key(monkeypatch):
    monkeypatch.setattr(payments, "STRIPE_SECRET_KEY", "")
    assert payments.build_gateway() is None

    monkeypatch.setattr(payments, "STRIPE_SECRET_KEY", "sk_live_x")
    assert isinstance(payments.build_gateway(), StripeGateway)
